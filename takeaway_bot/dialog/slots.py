"""
Order slots for the voice dialog.

The slot set holds the five pieces of information needed to place an order:
product, variant, quantity, modifiers and pickup time. Variant and modifiers
belong to a product, so:

- selecting a different product clears variant and modifiers
- clearing the product clears every other slot
- a variant (or modifier) for another product is never accepted

The modifiers slot distinguishes "not asked yet" from "caller said no
extras" via ``modifiers_explicit_none``.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from ..config import QUANTITY_MAX, QUANTITY_MIN
from .models import (
    ModifierSelectionSnapshot,
    ModifiersSlotSnapshot,
    PickupTimeSlotSnapshot,
    ProductSlotSnapshot,
    QuantitySlotSnapshot,
    SlotSnapshot,
    VariantSlotSnapshot,
)


@dataclass(frozen=True)
class ProductSelection:
    product_id: int
    name: str


@dataclass(frozen=True)
class VariantSelection:
    variant_id: int
    name: str
    product_id: int


@dataclass(frozen=True)
class ModifierSelection:
    modifier_id: int
    name: str
    product_id: int


class SlotSet:
    """Mutable slot holder owned by a dialog context."""

    def __init__(self):
        self._product: ProductSelection | None = None
        self._variant: VariantSelection | None = None
        self._quantity: int | None = None
        self._modifiers: list[ModifierSelection] = []
        self._modifiers_filled = False
        self._modifiers_explicit_none = False
        self._pickup_time: datetime | None = None

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def product(self) -> ProductSelection | None:
        return self._product

    @property
    def variant(self) -> VariantSelection | None:
        return self._variant

    @property
    def quantity(self) -> int | None:
        return self._quantity

    @property
    def modifiers(self) -> tuple[ModifierSelection, ...]:
        return tuple(self._modifiers)

    @property
    def modifiers_filled(self) -> bool:
        return self._modifiers_filled

    @property
    def modifiers_explicit_none(self) -> bool:
        return self._modifiers_explicit_none

    @property
    def pickup_time(self) -> datetime | None:
        return self._pickup_time

    def is_empty(self) -> bool:
        return (
            self._product is None
            and self._quantity is None
            and self._pickup_time is None
        )

    # -------------------------------------------------------------------------
    # Product
    # -------------------------------------------------------------------------

    def set_product(self, product_id: int, name: str) -> bool:
        """
        Select a product.

        Returns:
            True if this replaced a different product (dependent slots were cleared)
        """
        changed = self._product is not None and self._product.product_id != product_id
        if changed:
            self.clear_variant()
            self.clear_modifiers()
        self._product = ProductSelection(product_id, name)
        return changed

    def clear_product(self) -> None:
        """Clear the product and every slot that depends on it."""
        self._product = None
        self.clear_variant()
        self.clear_quantity()
        self.clear_modifiers()
        self.clear_pickup_time()

    # -------------------------------------------------------------------------
    # Variant
    # -------------------------------------------------------------------------

    def set_variant(self, variant_id: int, name: str, product_id: int) -> bool:
        """Select a variant. Ignored (returns False) unless it belongs to the current product."""
        if self._product is None or self._product.product_id != product_id:
            return False
        self._variant = VariantSelection(variant_id, name, product_id)
        return True

    def clear_variant(self) -> None:
        self._variant = None

    # -------------------------------------------------------------------------
    # Quantity
    # -------------------------------------------------------------------------

    def set_quantity(self, quantity: int) -> bool:
        """Set the quantity. Values outside the accepted range are refused."""
        if not QUANTITY_MIN <= quantity <= QUANTITY_MAX:
            return False
        self._quantity = quantity
        return True

    def clear_quantity(self) -> None:
        self._quantity = None

    # -------------------------------------------------------------------------
    # Modifiers
    # -------------------------------------------------------------------------

    def set_modifiers(self, selections: Iterable[ModifierSelection]) -> bool:
        """
        Add modifiers for the current product, keeping first-seen order.

        Selections for other products are dropped. Returns True if at least
        one selection was kept.
        """
        if self._product is None:
            return False
        kept = [s for s in selections if s.product_id == self._product.product_id]
        if not kept:
            return False
        known = {s.modifier_id for s in self._modifiers}
        for selection in kept:
            if selection.modifier_id not in known:
                self._modifiers.append(selection)
                known.add(selection.modifier_id)
        self._modifiers_filled = True
        self._modifiers_explicit_none = False
        return True

    def remove_modifiers(self, modifier_ids: Iterable[int]) -> bool:
        """
        Drop selected modifiers ("without olives").

        Removing the last selected modifier leaves the slot answered with no
        extras. Returns True if anything was removed.
        """
        drop = set(modifier_ids)
        kept = [s for s in self._modifiers if s.modifier_id not in drop]
        if len(kept) == len(self._modifiers):
            return False
        if kept:
            self._modifiers = kept
        else:
            self.mark_no_modifiers()
        return True

    def mark_no_modifiers(self) -> None:
        """Caller declined extras, or the product has none to offer."""
        self._modifiers = []
        self._modifiers_filled = True
        self._modifiers_explicit_none = True

    def clear_modifiers(self) -> None:
        self._modifiers = []
        self._modifiers_filled = False
        self._modifiers_explicit_none = False

    # -------------------------------------------------------------------------
    # Pickup time
    # -------------------------------------------------------------------------

    def set_pickup_time(self, value: datetime) -> None:
        if value.tzinfo is None:
            raise ValueError("Pickup time must carry a UTC offset")
        self._pickup_time = value

    def clear_pickup_time(self) -> None:
        self._pickup_time = None

    def clear_all(self) -> None:
        self.clear_product()

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def to_snapshot(self) -> SlotSnapshot:
        return SlotSnapshot(
            product=ProductSlotSnapshot(
                product_id=self._product.product_id if self._product else None,
                name=self._product.name if self._product else None,
                is_filled=self._product is not None,
            ),
            variant=VariantSlotSnapshot(
                variant_id=self._variant.variant_id if self._variant else None,
                name=self._variant.name if self._variant else None,
                product_id=self._variant.product_id if self._variant else None,
                is_filled=self._variant is not None,
            ),
            quantity=QuantitySlotSnapshot(
                quantity=self._quantity,
                is_filled=self._quantity is not None,
            ),
            modifiers=ModifiersSlotSnapshot(
                selections=[
                    ModifierSelectionSnapshot(
                        modifier_id=s.modifier_id, name=s.name, product_id=s.product_id,
                    )
                    for s in self._modifiers
                ],
                is_filled=self._modifiers_filled,
                is_explicit_none=self._modifiers_explicit_none,
            ),
            pickup_time=PickupTimeSlotSnapshot(
                value=self._pickup_time,
                is_filled=self._pickup_time is not None,
            ),
        )

    def apply_snapshot(self, snapshot: SlotSnapshot) -> None:
        """
        Replace the current slots with a snapshot's content.

        The same rules apply as for live updates, so a tampered snapshot cannot
        attach a variant or modifier of another product, or an out-of-range
        quantity.
        """
        self.clear_all()

        product = snapshot.product
        if not (product.is_filled and product.product_id is not None and product.name):
            return
        self.set_product(product.product_id, product.name)

        variant = snapshot.variant
        if variant.is_filled and variant.variant_id is not None and variant.product_id is not None:
            self.set_variant(variant.variant_id, variant.name or "", variant.product_id)

        quantity = snapshot.quantity
        if quantity.is_filled and quantity.quantity is not None:
            self.set_quantity(quantity.quantity)

        modifiers = snapshot.modifiers
        if modifiers.is_explicit_none:
            self.mark_no_modifiers()
        elif modifiers.is_filled:
            self.set_modifiers(
                ModifierSelection(s.modifier_id, s.name, s.product_id)
                for s in modifiers.selections
            )

        pickup = snapshot.pickup_time
        if pickup.is_filled and pickup.value is not None and pickup.value.tzinfo is not None:
            self.set_pickup_time(pickup.value)

    @classmethod
    def from_snapshot(cls, snapshot: SlotSnapshot) -> "SlotSet":
        slots = cls()
        slots.apply_snapshot(snapshot)
        return slots
