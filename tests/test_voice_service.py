"""
Tests for the voice dialog service: sessions, classification and error handling.
"""

import asyncio
from datetime import datetime, timezone

from takeaway_bot.dialog.models import (
    DialogState,
    ProductSlotSnapshot,
    QuantitySlotSnapshot,
    SlotSnapshot,
)
from takeaway_bot.dialog.service import UNEXPECTED_ERROR_PROMPT, VoiceDialogService
from takeaway_bot.dialog.intents import KeywordIntentClassifier
from takeaway_bot.services.menu import MenuProvider

CALLER = "+3912345678"


class TestConversation:
    def test_full_order_over_three_turns(self, voice_service, store):
        result = asyncio.run(voice_service.handle_utterance(CALLER, "I want to start an order"))
        assert result.state == DialogState.ORDERING
        assert result.metadata["intent.label"] == "order.start"

        result = asyncio.run(voice_service.handle_utterance(
            CALLER, "two large margheritas with extra cheese for pickup at 18:30",
        ))
        assert result.state == DialogState.CONFIRMING

        result = asyncio.run(voice_service.handle_utterance(CALLER, "yes"))
        assert result.state == DialogState.COMPLETED
        assert "ORD-202610181830-000001" in result.prompt_text

        # Finished sessions are dropped; the next call starts over
        assert store.get(CALLER) is None

    def test_session_is_kept_between_turns(self, voice_service, store):
        asyncio.run(voice_service.handle_utterance(CALLER, "I want to start an order"))

        session = store.get(CALLER)
        assert session is not None
        assert session.state == DialogState.ORDERING

    def test_callers_are_independent(self, voice_service):
        asyncio.run(voice_service.handle_utterance(CALLER, "cancel my order"))

        other = asyncio.run(voice_service.handle_utterance("+3900000000", "I want to start an order"))

        assert other.state == DialogState.ORDERING

    def test_timeout_and_wake(self, voice_service):
        asyncio.run(voice_service.handle_utterance(CALLER, "I want to start an order"))

        nudge = asyncio.run(voice_service.handle_timeout(CALLER))
        assert nudge.state == DialogState.ORDERING

        replay = asyncio.run(voice_service.handle_system(CALLER, {"channel": "phone"}))
        assert replay.prompt_text == nudge.prompt_text
        assert replay.metadata["channel"] == "phone"

    def test_end_session(self, voice_service, store):
        asyncio.run(voice_service.handle_utterance(CALLER, "I want to start an order"))

        voice_service.end_session(CALLER)

        assert store.get(CALLER) is None


class TestSlotSnapshots:
    def test_snapshot_resumes_fresh_session(self, voice_service):
        slots = SlotSnapshot(
            product=ProductSlotSnapshot(product_id=2, name="Garlic Bread", is_filled=True),
            quantity=QuantitySlotSnapshot(quantity=2, is_filled=True),
        )

        result = asyncio.run(voice_service.handle_utterance(CALLER, "at 18:30", slots))

        assert result.state == DialogState.CONFIRMING
        assert "2 x Garlic Bread, ready at 18:30" in result.prompt_text

    def test_snapshot_ignored_for_live_session(self, voice_service):
        asyncio.run(voice_service.handle_utterance(CALLER, "I want to start an order"))
        asyncio.run(voice_service.handle_utterance(CALLER, "three margheritas"))

        slots = SlotSnapshot(
            product=ProductSlotSnapshot(product_id=2, name="Garlic Bread", is_filled=True),
            quantity=QuantitySlotSnapshot(quantity=1, is_filled=True),
        )
        result = asyncio.run(voice_service.handle_utterance(CALLER, "large", slots))

        assert result.slots.product.name == "Margherita"
        assert result.slots.quantity.quantity == 3


class TestUnexpectedErrors:
    def test_crash_becomes_generic_error(self, make_machine, store):
        class BrokenMenu(MenuProvider):
            async def snapshot(self):
                raise RuntimeError("catalog offline")

        service = VoiceDialogService(
            store=store,
            state_machine=make_machine(menu_provider=BrokenMenu()),
            classifier=KeywordIntentClassifier(),
        )
        asyncio.run(service.handle_utterance(CALLER, "I want to start an order"))

        result = asyncio.run(service.handle_utterance(CALLER, "two margheritas"))

        assert result.state == DialogState.ERROR
        assert result.prompt_text == UNEXPECTED_ERROR_PROMPT
        assert "catalog" not in result.prompt_text
        assert store.get(CALLER).state == DialogState.ERROR


class TestSessionExpiry:
    def test_idle_session_starts_over(self, voice_service, store, clock):
        asyncio.run(voice_service.handle_utterance(CALLER, "I want to start an order"))

        clock.set(datetime(2026, 10, 18, 12, 31, tzinfo=timezone.utc))

        assert store.get(CALLER) is None
        result = asyncio.run(voice_service.handle_utterance(CALLER, "hello"))
        assert result.state == DialogState.ORDERING
