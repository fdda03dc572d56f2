"""
Slot Extractor - menu-grounded slot filling.

Turns a caller utterance plus the current MenuSnapshot into slot updates:

1. Product: first product (by name) mentioned in the utterance
2. Variant: mentioned variant, else the only variant, else the default
3. Quantity: bare number or number word, accepted in 1..50
4. Modifiers: mentioned modifiers, or "no extras" on negation
5. Pickup time: clock time or "in N minutes", with a minimum lead time

Only names present in the snapshot can fill a slot, so an item that sold out
since the last turn is never captured.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta, tzinfo
from zoneinfo import ZoneInfo

from ..clock import Clock
from ..config import BUSINESS_TIMEZONE, PICKUP_MIN_LEAD_MINUTES
from .intents import IntentLabel
from .models import MenuProduct, MenuSnapshot
from .parsers import (
    MODIFIER_NEGATION_WORDS,
    contains_phrase,
    name_matches,
    parse_pickup_time,
    parse_quantity,
    tokenize,
)
from .slot_orchestrator import SlotCategory
from .slots import ModifierSelection, SlotSet

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """What a single utterance contributed to the slot set."""
    product_matched: bool = False
    product_changed: bool = False
    variant_matched: bool = False
    quantity_set: bool = False
    quantity_rejected: bool = False
    modifiers_matched: bool = False
    modifiers_declined: bool = False
    pickup_set: bool = False
    pickup_rejected: bool = False

    @property
    def anything_filled(self) -> bool:
        return (
            self.product_matched
            or self.variant_matched
            or self.quantity_set
            or self.modifiers_matched
            or self.modifiers_declined
            or self.pickup_set
        )


class SlotExtractor:
    """Fills a SlotSet from free text, grounded on a menu snapshot."""

    def __init__(
        self,
        clock: Clock,
        timezone: tzinfo | None = None,
        min_lead_minutes: int = PICKUP_MIN_LEAD_MINUTES,
    ):
        self._clock = clock
        self._timezone = timezone or ZoneInfo(BUSINESS_TIMEZONE)
        self._min_lead = timedelta(minutes=min_lead_minutes)

    @property
    def timezone(self) -> tzinfo:
        return self._timezone

    @property
    def min_lead_minutes(self) -> int:
        return int(self._min_lead.total_seconds() // 60)

    def extract(
        self,
        utterance: str,
        snapshot: MenuSnapshot,
        slots: SlotSet,
        intent_label: str | None = None,
        awaiting: SlotCategory | None = None,
    ) -> ExtractionResult:
        """
        Apply everything the utterance says to the slot set.

        Args:
            utterance: Raw caller text
            snapshot: Products currently available
            slots: Slot set to update in place
            intent_label: Classifier label for this turn, if any
            awaiting: Slot the caller was just asked for; None when the
                caller is revising a complete order

        Returns:
            ExtractionResult describing which slots were touched
        """
        result = ExtractionResult()
        if not utterance or not utterance.strip():
            return result

        self._extract_product(utterance, snapshot, slots, result)

        product = snapshot.find_product(slots.product.product_id) if slots.product else None
        if product is not None:
            self._extract_variant(utterance, product, slots, result)
            self._extract_modifiers(utterance, product, slots, intent_label, result)

        self._extract_quantity(utterance, slots, result, awaiting)
        self._extract_pickup_time(utterance, slots, result)

        logger.debug("Extraction for %r: %s", utterance, result)
        return result

    # -------------------------------------------------------------------------
    # Individual slots
    # -------------------------------------------------------------------------

    def _extract_product(self, utterance, snapshot, slots, result):
        for product in snapshot.sorted_products():
            if name_matches(product.name, utterance):
                result.product_matched = True
                result.product_changed = slots.set_product(product.id, product.name)
                return

    def _extract_variant(self, utterance, product: MenuProduct, slots, result):
        if not product.variants:
            return

        if len(product.variants) == 1:
            only = product.variants[0]
            slots.set_variant(only.id, only.name, product.id)
            return

        for variant in sorted(product.variants, key=lambda v: v.name.lower()):
            if name_matches(variant.name, utterance):
                result.variant_matched = slots.set_variant(variant.id, variant.name, product.id)
                return

        default = product.default_variant
        if slots.variant is None and default is not None:
            slots.set_variant(default.id, default.name, product.id)

    def _extract_quantity(self, utterance, slots, result, awaiting):
        parsed = parse_quantity(utterance)
        if parsed is None:
            return
        # "a"/"an" only counts alongside a product and never overrides a spoken number
        if parsed.from_article and (slots.quantity is not None or not result.product_matched):
            return
        # A stray number while another slot is being asked for keeps the quantity
        if (
            slots.quantity is not None
            and not result.product_matched
            and awaiting not in (None, SlotCategory.QUANTITY)
        ):
            logger.debug("Ignoring quantity %d while asking for %s", parsed.value, awaiting.value)
            return
        if slots.set_quantity(parsed.value):
            result.quantity_set = True
        else:
            result.quantity_rejected = True

    def _extract_modifiers(self, utterance, product: MenuProduct, slots, intent_label, result):
        if not product.modifiers:
            slots.mark_no_modifiers()
            return

        lowered = utterance.lower()
        matches = []
        declined = []
        for modifier in product.modifiers:
            if not name_matches(modifier.name, utterance):
                continue
            if _is_declined(modifier.name, lowered):
                declined.append(modifier.id)
            else:
                matches.append(ModifierSelection(modifier.id, modifier.name, product.id))

        if declined and slots.remove_modifiers(declined):
            result.modifiers_declined = True
        if matches:
            result.modifiers_matched = slots.set_modifiers(matches)
            return
        if result.modifiers_declined:
            return

        negated = intent_label == IntentLabel.NEGATE or bool(
            MODIFIER_NEGATION_WORDS.intersection(tokenize(lowered))
        )
        if negated and not slots.modifiers_filled:
            slots.mark_no_modifiers()
            result.modifiers_declined = True

    def _extract_pickup_time(self, utterance, slots, result):
        parsed = parse_pickup_time(utterance, self._clock.now(), self._timezone, self._min_lead)
        if parsed.value is not None:
            slots.set_pickup_time(parsed.value)
            result.pickup_set = True
        elif parsed.rejected:
            result.pickup_rejected = True


def _is_declined(modifier_name: str, lowered_utterance: str) -> bool:
    """True for "no olives" / "without olives"."""
    name = modifier_name.lower()
    return any(
        contains_phrase(lowered_utterance, f"{word} {name}")
        for word in ("no", "without", "not")
    )
