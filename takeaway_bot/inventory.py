from typing import Optional

from .models import Product, ProductVariant


class OutOfStockError(Exception):
    """Raised when there is not enough stock to fulfill an order line."""

    def __init__(self, item_name: str, requested: int, available: int):
        self.item_name = item_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Not enough stock for {item_name}: requested {requested}, available {available}"
        )


def available_stock(product: Product, variant: Optional[ProductVariant] = None) -> int:
    """Stock counter that an order line draws from: the variant's if one is chosen, else the product's."""
    if variant is not None:
        return variant.stock_quantity or 0
    return product.stock_quantity or 0


def is_product_in_stock(product: Product) -> bool:
    """True if the product, or any of its variants, still has stock."""
    if product.variants:
        return any((variant.stock_quantity or 0) > 0 for variant in product.variants)
    return (product.stock_quantity or 0) > 0


def decrement_stock(
    product: Product,
    variant: Optional[ProductVariant],
    quantity: int,
) -> None:
    """Decrement the matched stock counter for a confirmed order line.

    This function will:

    1. Verify the counter (variant stock if a variant was chosen, else product
       stock) covers the requested quantity.
       - If not, raise OutOfStockError and leave the rows unchanged.
    2. Decrement that counter.

    Nothing is flushed or committed here; the caller owns the transaction so
    the decrement lands together with the order row or not at all.
    """
    available = available_stock(product, variant)
    if available < quantity:
        name = f"{product.name} ({variant.name})" if variant is not None else product.name
        raise OutOfStockError(name, quantity, available)

    if variant is not None:
        variant.stock_quantity = available - quantity
    else:
        product.stock_quantity = available - quantity
