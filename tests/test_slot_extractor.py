"""
Tests for menu-grounded slot extraction.
"""

from datetime import datetime, timezone

from takeaway_bot.dialog.intents import IntentLabel
from takeaway_bot.dialog.slot_orchestrator import SlotCategory
from takeaway_bot.dialog.slots import ModifierSelection, SlotSet

from conftest import EXTRA_CHEESE_ID, GARLIC_BREAD_ID, LARGE_ID, MARGHERITA_ID, REGULAR_ID


class TestFullUtterance:
    def test_fills_every_slot(self, extractor, menu_snapshot):
        slots = SlotSet()

        result = extractor.extract(
            "two large margheritas with extra cheese for pickup at 18:30", menu_snapshot, slots,
        )

        assert result.product_matched and result.variant_matched
        assert result.quantity_set and result.modifiers_matched and result.pickup_set
        assert slots.product.product_id == MARGHERITA_ID
        assert slots.variant.variant_id == LARGE_ID
        assert slots.quantity == 2
        assert [m.modifier_id for m in slots.modifiers] == [EXTRA_CHEESE_ID]
        assert slots.pickup_time == datetime(2026, 10, 18, 18, 30, tzinfo=timezone.utc)

    def test_empty_utterance_changes_nothing(self, extractor, menu_snapshot):
        slots = SlotSet()
        result = extractor.extract("   ", menu_snapshot, slots)

        assert not result.anything_filled
        assert slots.is_empty()


class TestVariants:
    def test_default_variant_when_none_mentioned(self, extractor, menu_snapshot):
        slots = SlotSet()
        extractor.extract("two margheritas", menu_snapshot, slots)

        assert slots.variant.variant_id == REGULAR_ID

    def test_later_variant_overrides_default(self, extractor, menu_snapshot):
        slots = SlotSet()
        extractor.extract("a margherita", menu_snapshot, slots)
        extractor.extract("make it large", menu_snapshot, slots)

        assert slots.variant.variant_id == LARGE_ID


class TestQuantities:
    def test_out_of_range_is_rejected(self, extractor, menu_snapshot):
        slots = SlotSet()
        result = extractor.extract("60 margheritas", menu_snapshot, slots)

        assert result.quantity_rejected
        assert slots.quantity is None

    def test_article_with_product_sets_one(self, extractor, menu_snapshot):
        slots = SlotSet()
        extractor.extract("a margherita", menu_snapshot, slots)

        assert slots.quantity == 1

    def test_article_does_not_override_spoken_quantity(self, extractor, menu_snapshot):
        slots = SlotSet()
        extractor.extract("three margheritas", menu_snapshot, slots)
        extractor.extract("a margherita", menu_snapshot, slots)

        assert slots.quantity == 3

    def test_pickup_time_is_not_read_as_quantity(self, extractor, menu_snapshot):
        slots = SlotSet()
        slots.set_product(MARGHERITA_ID, "Margherita")

        result = extractor.extract("at 18:30", menu_snapshot, slots)

        assert not result.quantity_set
        assert slots.quantity is None
        assert result.pickup_set

    def test_spoken_hour_is_a_pickup_time(self, extractor, menu_snapshot):
        slots = SlotSet()
        extractor.extract("two large margheritas with extra cheese", menu_snapshot, slots)

        result = extractor.extract("at 7", menu_snapshot, slots, awaiting=SlotCategory.PICKUP_TIME)

        assert not result.quantity_set
        assert slots.quantity == 2
        assert slots.pickup_time == datetime(2026, 10, 18, 19, 0, tzinfo=timezone.utc)

    def test_stray_number_keeps_quantity_while_asking_other_slot(self, extractor, menu_snapshot):
        slots = SlotSet()
        extractor.extract("two margheritas", menu_snapshot, slots)

        result = extractor.extract("7", menu_snapshot, slots, awaiting=SlotCategory.PICKUP_TIME)

        assert not result.quantity_set
        assert slots.quantity == 2

    def test_number_replaces_quantity_when_asked_or_revising(self, extractor, menu_snapshot):
        slots = SlotSet()
        extractor.extract("two margheritas", menu_snapshot, slots)

        extractor.extract("4", menu_snapshot, slots, awaiting=SlotCategory.QUANTITY)
        assert slots.quantity == 4

        extractor.extract("make it 3", menu_snapshot, slots)
        assert slots.quantity == 3

    def test_number_with_product_replaces_quantity(self, extractor, menu_snapshot):
        slots = SlotSet()
        extractor.extract("two margheritas", menu_snapshot, slots)

        extractor.extract("5 margheritas", menu_snapshot, slots, awaiting=SlotCategory.PICKUP_TIME)

        assert slots.quantity == 5


class TestModifiers:
    def test_declining_selected_modifier_removes_it(self, extractor, menu_snapshot):
        slots = SlotSet()
        extractor.extract("a margherita with extra cheese and olives", menu_snapshot, slots)

        result = extractor.extract("without olives please", menu_snapshot, slots)

        assert result.modifiers_declined
        assert [m.modifier_id for m in slots.modifiers] == [EXTRA_CHEESE_ID]
        assert not slots.modifiers_explicit_none

    def test_removing_last_modifier_means_no_extras(self, extractor, menu_snapshot):
        slots = SlotSet()
        extractor.extract("a margherita with olives", menu_snapshot, slots)

        extractor.extract("no olives", menu_snapshot, slots)

        assert slots.modifiers == ()
        assert slots.modifiers_filled and slots.modifiers_explicit_none

    def test_swap_one_modifier_for_another(self, extractor, menu_snapshot):
        slots = SlotSet()
        extractor.extract("a margherita with olives", menu_snapshot, slots)

        extractor.extract("extra cheese instead, no olives", menu_snapshot, slots)

        assert [m.modifier_id for m in slots.modifiers] == [EXTRA_CHEESE_ID]

    def test_declined_modifier(self, extractor, menu_snapshot):
        slots = SlotSet()
        result = extractor.extract("a margherita without olives", menu_snapshot, slots)

        assert result.modifiers_declined
        assert slots.modifiers_explicit_none

    def test_no_extras(self, extractor, menu_snapshot):
        slots = SlotSet()
        slots.set_product(MARGHERITA_ID, "Margherita")

        result = extractor.extract("no extras", menu_snapshot, slots)

        assert result.modifiers_declined
        assert slots.modifiers_filled and slots.modifiers_explicit_none

    def test_negate_intent_declines(self, extractor, menu_snapshot):
        slots = SlotSet()
        slots.set_product(MARGHERITA_ID, "Margherita")

        extractor.extract("nope", menu_snapshot, slots, IntentLabel.NEGATE)

        assert slots.modifiers_explicit_none

    def test_negation_does_not_undo_chosen_modifiers(self, extractor, menu_snapshot):
        slots = SlotSet()
        slots.set_product(MARGHERITA_ID, "Margherita")
        slots.set_modifiers([ModifierSelection(EXTRA_CHEESE_ID, "Extra Cheese", MARGHERITA_ID)])

        extractor.extract("no thanks", menu_snapshot, slots)

        assert [m.name for m in slots.modifiers] == ["Extra Cheese"]

    def test_product_without_modifiers_needs_none(self, extractor, menu_snapshot):
        slots = SlotSet()
        extractor.extract("garlic bread", menu_snapshot, slots)

        assert slots.product.product_id == GARLIC_BREAD_ID
        assert slots.modifiers_filled
        assert slots.variant is None


class TestProductChange:
    def test_switching_product_drops_dependents(self, extractor, menu_snapshot):
        slots = SlotSet()
        extractor.extract("two large margheritas with extra cheese", menu_snapshot, slots)

        result = extractor.extract("actually garlic bread", menu_snapshot, slots)

        assert result.product_changed
        assert slots.product.product_id == GARLIC_BREAD_ID
        assert slots.variant is None
        assert slots.modifiers == ()
        assert slots.quantity == 2

    def test_unknown_product_is_ignored(self, extractor, menu_snapshot):
        slots = SlotSet()
        result = extractor.extract("a calzone please", menu_snapshot, slots)

        assert not result.product_matched
        assert slots.product is None


class TestPickupTime:
    def test_too_soon_is_rejected(self, extractor, menu_snapshot):
        slots = SlotSet()
        result = extractor.extract("in 5 minutes", menu_snapshot, slots)

        assert result.pickup_rejected
        assert slots.pickup_time is None
