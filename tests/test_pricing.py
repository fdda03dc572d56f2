"""
Tests for VAT-inclusive line pricing.
"""

from decimal import Decimal

import pytest

from takeaway_bot.models import Product, ProductModifier, ProductVariant
from takeaway_bot.services.pricing import (
    calculate_line_pricing,
    price_order_line,
    round_money,
    to_decimal,
    with_vat,
)


class TestRounding:
    def test_half_rounds_up(self):
        assert round_money(Decimal("0.125")) == Decimal("0.13")
        assert round_money(Decimal("2.675")) == Decimal("2.68")

    def test_four_places(self):
        assert with_vat("1.00005", "0") == Decimal("1.0001")

    def test_float_to_decimal_has_no_artefacts(self):
        assert to_decimal(0.1) == Decimal("0.1")
        assert to_decimal(None) == Decimal("0")


class TestLinePricing:
    def test_unit_price_rounds_half_up(self):
        result = calculate_line_pricing(Decimal("0.125"), 0, [], 1)
        assert result.unit_price == Decimal("0.13")

    def test_large_margherita_with_extra_cheese(self):
        result = calculate_line_pricing(9.00, 0.10, [(1.50, 0.10)], 2)

        assert result.base_price_with_vat == Decimal("9.9000")
        assert result.modifiers_total_with_vat == Decimal("1.6500")
        assert result.unit_price == Decimal("11.55")
        assert result.subtotal == Decimal("23.10")

    def test_modifiers_are_summed_after_their_own_rounding(self):
        result = calculate_line_pricing(0, 0, [("0.00005", 0), ("0.00005", 0)], 1)
        assert result.modifiers_total_with_vat == Decimal("0.0002")

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_non_positive_quantity(self, quantity):
        with pytest.raises(ValueError):
            calculate_line_pricing(9.00, 0.10, [], quantity)


class TestCatalogPricing:
    def test_variant_price_wins(self):
        product = Product(name="Margherita", price=7.50, vat_rate=0.10)
        variant = ProductVariant(name="Large", price=9.00, vat_rate=None)
        modifier = ProductModifier(name="Extra Cheese", price=1.50, vat_rate=0.10)

        result = price_order_line(product, variant, [modifier], 2)

        assert result.subtotal == Decimal("23.10")

    def test_variant_without_price_uses_product_price(self):
        product = Product(name="Margherita", price=7.50, vat_rate=0.10)
        variant = ProductVariant(name="Regular", price=None, vat_rate=None)

        result = price_order_line(product, variant, [], 1)

        assert result.unit_price == Decimal("8.25")
