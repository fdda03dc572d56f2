"""
Slot Orchestrator for voice order capture.

Decides which slot to ask about next and phrases the question. Slots are
checked in a fixed order:

    Product -> Variant -> Quantity -> Modifiers -> Pickup time

Variant only applies when the product has more than one variant, modifiers
only when the product defines any. Questions name the concrete options from
the current menu snapshot rather than static text.
"""

from dataclasses import dataclass
from datetime import tzinfo
from enum import Enum
from typing import Callable
import logging

from ..config import PICKUP_MIN_LEAD_MINUTES, QUANTITY_MAX, QUANTITY_MIN
from .models import MenuProduct, MenuSnapshot
from .slots import SlotSet

logger = logging.getLogger(__name__)

# How many products to list when asking what to order
MAX_LISTED_PRODUCTS = 5


class SlotCategory(str, Enum):
    """Order slots, in the order they are asked for."""
    PRODUCT = "product"
    VARIANT = "variant"
    QUANTITY = "quantity"
    MODIFIERS = "modifiers"
    PICKUP_TIME = "pickup_time"


@dataclass
class SlotDefinition:
    """Defines a slot that needs to be filled."""
    category: SlotCategory
    is_filled: Callable[[SlotSet], bool]
    condition: Callable[[MenuProduct | None], bool] | None = None  # When this slot applies

    def applies_to(self, product: MenuProduct | None) -> bool:
        """Check if this slot applies to the selected product."""
        if self.condition is None:
            return True
        return self.condition(product)


ORDER_SLOTS: list[SlotDefinition] = [
    SlotDefinition(
        category=SlotCategory.PRODUCT,
        is_filled=lambda slots: slots.product is not None,
    ),
    SlotDefinition(
        category=SlotCategory.VARIANT,
        is_filled=lambda slots: slots.variant is not None,
        condition=lambda product: product is not None and product.requires_variant,
    ),
    SlotDefinition(
        category=SlotCategory.QUANTITY,
        is_filled=lambda slots: slots.quantity is not None,
    ),
    SlotDefinition(
        category=SlotCategory.MODIFIERS,
        is_filled=lambda slots: slots.modifiers_filled,
        condition=lambda product: product is not None and bool(product.modifiers),
    ),
    SlotDefinition(
        category=SlotCategory.PICKUP_TIME,
        is_filled=lambda slots: slots.pickup_time is not None,
    ),
]


def join_choices(names: list[str], conjunction: str = "or") -> str:
    """["A"] -> "A", ["A", "B"] -> "A or B", ["A", "B", "C"] -> "A, B or C"."""
    if not names:
        return ""
    if len(names) == 1:
        return names[0]
    return f"{', '.join(names[:-1])} {conjunction} {names[-1]}"


class SlotOrchestrator:
    """Finds the next unfilled slot and builds its prompt."""

    def __init__(
        self,
        slots: list[SlotDefinition] | None = None,
        min_lead_minutes: int = PICKUP_MIN_LEAD_MINUTES,
    ):
        self.slots = slots or ORDER_SLOTS
        self.min_lead_minutes = min_lead_minutes

    def get_next_slot(self, slots: SlotSet, product: MenuProduct | None) -> SlotCategory | None:
        """
        Return the first slot that applies and is still empty.

        Returns:
            The slot category, or None when the order line is complete
        """
        for definition in self.slots:
            if not definition.applies_to(product):
                continue
            if not definition.is_filled(slots):
                logger.debug("Next slot: %s", definition.category.value)
                return definition.category
        return None

    def is_complete(self, slots: SlotSet, product: MenuProduct | None) -> bool:
        return product is not None and self.get_next_slot(slots, product) is None

    def build_prompt(
        self,
        category: SlotCategory,
        slots: SlotSet,
        product: MenuProduct | None,
        snapshot: MenuSnapshot,
    ) -> str:
        """Question for a slot, naming the options on the menu right now."""
        if category == SlotCategory.PRODUCT:
            names = [p.name for p in snapshot.sorted_products()[:MAX_LISTED_PRODUCTS]]
            if not names:
                return "I'm sorry, there's nothing available to order right now."
            return f"What would you like to order? We have {join_choices(names, 'and')}."

        product_name = product.name if product else "that"

        if category == SlotCategory.VARIANT:
            options = join_choices([v.name for v in product.variants])
            return f"Which option would you like for the {product_name}: {options}?"

        if category == SlotCategory.QUANTITY:
            return f"How many {describe_item(slots, product)} would you like?"

        if category == SlotCategory.MODIFIERS:
            options = join_choices([m.name for m in product.modifiers])
            return (
                f"Would you like any extras on the {product_name}? "
                f"You can choose {options}, or say no extras."
            )

        return "When would you like to pick it up?"

    def rejection_prompt(self, category: SlotCategory) -> str | None:
        """Explanation when the caller gave a value that cannot be accepted."""
        if category == SlotCategory.QUANTITY:
            return (
                f"I can take between {QUANTITY_MIN} and {QUANTITY_MAX} per order. "
                "How many would you like?"
            )
        if category == SlotCategory.PICKUP_TIME:
            return (
                f"Pickup needs to be at least {self.min_lead_minutes} minutes from now. "
                "What time works for you?"
            )
        return None


def describe_item(slots: SlotSet, product: MenuProduct | None) -> str:
    """ "Margherita (Large)" when a variant choice matters, else just the name."""
    name = slots.product.name if slots.product else (product.name if product else "")
    if slots.variant is not None and product is not None and product.requires_variant:
        return f"{name} ({slots.variant.name})"
    return name


def build_order_summary(slots: SlotSet, product: MenuProduct | None, timezone: tzinfo) -> str:
    """
    Human-readable line for the confirmation prompt.

    Example: "2 x Margherita (Large) with Extra Cheese, ready at 18:30"
    """
    summary = f"{slots.quantity} x {describe_item(slots, product)}"
    if slots.modifiers:
        summary += " with " + join_choices([m.name for m in slots.modifiers], "and")
    if slots.pickup_time is not None:
        summary += f", ready at {slots.pickup_time.astimezone(timezone):%H:%M}"
    return summary
