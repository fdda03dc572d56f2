"""
Line-item pricing.

Prices are stored as floats but every calculation runs on Decimal so the
rounding matches the published rule exactly:

    basePriceWithVat = round(basePrice * (1 + vatRate), 4)
    modifierWithVat  = round(modifierPrice * (1 + modifierVatRate), 4)
    unitPrice        = round(basePriceWithVat + sum(modifierWithVat), 2)
    subtotal         = round(unitPrice * quantity, 2)

Every step rounds half away from zero (Decimal ROUND_HALF_UP), not the
banker's rounding of the builtin round().
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Sequence, Tuple, Union

from ..models import Product, ProductModifier, ProductVariant

Number = Union[Decimal, float, int, str]

_FOUR_PLACES = Decimal("0.0001")
_TWO_PLACES = Decimal("0.01")


def to_decimal(value: Optional[Number]) -> Decimal:
    """Convert a stored price to Decimal without float artefacts (0.1 -> Decimal('0.1'))."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(amount: Decimal, places: int = 2) -> Decimal:
    """Round half away from zero to 2 (or 4) decimal places."""
    quantum = _FOUR_PLACES if places == 4 else _TWO_PLACES
    return amount.quantize(quantum, rounding=ROUND_HALF_UP)


def with_vat(price: Number, vat_rate: Number) -> Decimal:
    """Gross price for one unit, rounded to 4 places."""
    return round_money(to_decimal(price) * (Decimal("1") + to_decimal(vat_rate)), places=4)


@dataclass(frozen=True)
class PricingResult:
    """Computed pricing for a single order line. Never persisted as-is."""

    unit_price: Decimal
    subtotal: Decimal
    base_price_with_vat: Decimal
    modifiers_total_with_vat: Decimal


def calculate_line_pricing(
    base_price: Number,
    vat_rate: Number,
    modifiers: Iterable[Tuple[Number, Number]],
    quantity: int,
) -> PricingResult:
    """
    Price one order line.

    Args:
        base_price: Net unit price (variant price if chosen, else product price)
        vat_rate: VAT rate as a fraction, e.g. 0.10
        modifiers: (net price, vat rate) pairs for each selected modifier
        quantity: Units ordered, must be positive

    Returns:
        PricingResult with unit price and subtotal

    Raises:
        ValueError: If quantity is not positive
    """
    if quantity <= 0:
        raise ValueError(f"Quantity must be positive, got {quantity}")

    base_with_vat = with_vat(base_price, vat_rate)
    modifiers_total = sum(
        (with_vat(price, rate) for price, rate in modifiers),
        Decimal("0"),
    )
    unit_price = round_money(base_with_vat + modifiers_total)
    subtotal = round_money(unit_price * quantity)

    return PricingResult(
        unit_price=unit_price,
        subtotal=subtotal,
        base_price_with_vat=base_with_vat,
        modifiers_total_with_vat=modifiers_total,
    )


def price_order_line(
    product: Product,
    variant: Optional[ProductVariant],
    modifiers: Sequence[ProductModifier],
    quantity: int,
) -> PricingResult:
    """Price a line from catalog rows. Variant price and VAT win over the product's when set."""
    base_price = product.price
    vat_rate = product.vat_rate
    if variant is not None:
        if variant.price is not None:
            base_price = variant.price
        if variant.vat_rate is not None:
            vat_rate = variant.vat_rate

    return calculate_line_pricing(
        base_price,
        vat_rate,
        [(modifier.price, modifier.vat_rate) for modifier in modifiers],
        quantity,
    )
