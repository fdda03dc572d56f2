"""
State Machine for the Voice Ordering Dialog.

This module drives a caller's conversation one event at a time. Each state
has its own handler that can only move to the states that make sense from
there:

- Start routes to Ordering, Modifying, Cancelling or CheckingStatus
- Ordering fills slots and moves to Confirming once the line is complete
- Modifying collects changes and moves to Confirming on "that's all"
- Cancelling and CheckingStatus wait for an order code
- Confirming places the order (Completed) or cancels one (Cancelled)

Before any handler runs, the dispatcher deals with terminal sessions, empty
utterances and the fallback intent. Timeout events only nudge; System events
replay the last prompt.

Every handler goes through ``_reply`` which moves the session, stores the
prompt as ``last_prompt`` and builds the DialogResult, so repeated System
events replay exactly what the caller last heard.

Intent labels and keyword lists are both checked at each guard because the
classifier abstains below its confidence floor. The two paths overlap
(e.g. the "status" keyword and the check-status intent); they are kept
separate here rather than merged into one rule table.
"""

from dataclasses import dataclass
from datetime import tzinfo
import logging

from ..clock import Clock
from ..config import CURRENCY_SYMBOL
from ..logging_config import bind_logger
from ..services.menu import MenuProvider
from ..services.order import OrderErrorCode
from .context import ConfirmationStatus, DialogSession
from .finalizer import FinalizationStatus, OrderFinalizer
from .intents import IntentLabel, IntentMetadataKeys
from .models import DialogEvent, DialogEventType, DialogResult, DialogState, MenuSnapshot
from .parsers import (
    AFFIRMATION_PHRASES,
    CANCEL_KEYWORDS,
    COMPLETION_CUES,
    MODIFY_KEYWORDS,
    NEGATION_PHRASES,
    OPENING_STATUS_KEYWORDS,
    RESTART_KEYWORDS,
    STATUS_KEYWORDS,
    clean_item_description,
    contains_any,
    extract_order_code,
    negates_affirmation,
    normalize_text,
)
from .slot_extractor import ExtractionResult, SlotExtractor
from .slot_orchestrator import SlotCategory, SlotOrchestrator, build_order_summary
from .slots import SlotSet


# =============================================================================
# Shared prompts
# =============================================================================

TERMINAL_PROMPT = 'This session is already finished. Say "start" if you need to begin again.'
REPEAT_PROMPT = "I didn't catch that. Could you repeat it?"
FALLBACK_PROMPT = "I'm not sure how to handle that. Let's start over. What do you need help with?"
DEFAULT_SYSTEM_PROMPT = "How can I help you with your takeaway order today?"
WELCOME_PROMPT = "Welcome back! What would you like to order today?"
GREETING_PROMPT = "Hi there! What would you like to order today?"
SYSTEM_FAILURE_PROMPT = "I couldn't place the order because of a system problem. Let's try again."

TIMEOUT_PROMPTS = {
    DialogState.ORDERING: "I'm still here. Would you like to add anything else to your order?",
    DialogState.MODIFYING: "Do you want to change something else in the order?",
    DialogState.CANCELLING: "I can help cancel the order. Could you share the order code?",
    DialogState.CHECKING_STATUS: "Please tell me the order code so I can check its status.",
}
DEFAULT_TIMEOUT_PROMPT = "Are you still there?"

# Which slot to release when the finalizer refuses the order, so the next
# turn asks for it again
_SLOT_RELEASE_ON_ERROR = {
    OrderErrorCode.SLOT_FULL: SlotSet.clear_pickup_time,
    OrderErrorCode.STOCK_UNAVAILABLE: SlotSet.clear_quantity,
    OrderErrorCode.VARIANT_NOT_FOUND: SlotSet.clear_variant,
    OrderErrorCode.MODIFIER_NOT_FOUND: SlotSet.clear_modifiers,
    OrderErrorCode.PRODUCT_NOT_FOUND: SlotSet.clear_product,
    OrderErrorCode.PRODUCT_UNAVAILABLE: SlotSet.clear_product,
}


@dataclass
class _Turn:
    """One utterance being handled."""
    session: DialogSession
    text: str
    normalized: str
    intent: str | None
    log: logging.LoggerAdapter

    @property
    def context(self):
        return self.session.context

    def wants_status(self, keywords=STATUS_KEYWORDS) -> bool:
        return self.intent == IntentLabel.CHECK_STATUS or contains_any(self.normalized, keywords)

    def wants_cancel(self) -> bool:
        return self.intent == IntentLabel.CANCEL_ORDER or contains_any(self.normalized, CANCEL_KEYWORDS)

    def wants_modify(self) -> bool:
        return self.intent == IntentLabel.MODIFY_ORDER or contains_any(self.normalized, MODIFY_KEYWORDS)

    def is_affirmation(self) -> bool:
        if negates_affirmation(self.normalized):
            return False
        return self.intent == IntentLabel.AFFIRM or contains_any(self.normalized, AFFIRMATION_PHRASES)

    def is_negation(self) -> bool:
        return self.intent == IntentLabel.NEGATE or contains_any(self.normalized, NEGATION_PHRASES)

    def is_completion(self) -> bool:
        return self.intent == IntentLabel.COMPLETE_ORDER or contains_any(self.normalized, COMPLETION_CUES)


class DialogStateMachine:
    """
    Voice dialog orchestrator.

    Collaborators are injected once at construction: the menu provider
    (grounding), the order finalizer (persistence + notifications) and a
    clock. The machine itself keeps no per-caller state; everything lives on
    the DialogSession passed to ``handle``.
    """

    initial_state = DialogState.START

    def __init__(
        self,
        menu_provider: MenuProvider,
        finalizer: OrderFinalizer,
        clock: Clock,
        extractor: SlotExtractor | None = None,
        orchestrator: SlotOrchestrator | None = None,
        currency_symbol: str = CURRENCY_SYMBOL,
        logger: logging.Logger | None = None,
    ):
        self._menu = menu_provider
        self._finalizer = finalizer
        self._clock = clock
        self._extractor = extractor or SlotExtractor(clock)
        self._orchestrator = orchestrator or SlotOrchestrator(min_lead_minutes=self._extractor.min_lead_minutes)
        self._currency_symbol = currency_symbol
        self._logger = logger or logging.getLogger(__name__)
        self._handlers = {
            DialogState.START: self._handle_start,
            DialogState.ORDERING: self._handle_ordering,
            DialogState.MODIFYING: self._handle_modifying,
            DialogState.CANCELLING: self._handle_cancelling,
            DialogState.CHECKING_STATUS: self._handle_checking_status,
            DialogState.CONFIRMING: self._handle_confirming,
            DialogState.ERROR: self._handle_error,
        }

    @property
    def timezone(self) -> tzinfo:
        return self._extractor.timezone

    @property
    def finalizer(self) -> OrderFinalizer:
        return self._finalizer

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    async def handle(self, session: DialogSession, event: DialogEvent) -> DialogResult:
        """
        Process one event for a session.

        Args:
            session: The caller's session (mutated in place)
            event: Utterance, System or Timeout event

        Returns:
            DialogResult with the new state, prompt, metadata and slots
        """
        log = bind_logger(self._logger, caller=session.caller_id)

        if event.type == DialogEventType.TIMEOUT:
            prompt = TIMEOUT_PROMPTS.get(session.state, DEFAULT_TIMEOUT_PROMPT)
            log.debug("Timeout in %s", session.state.value)
            return self._reply(session, session.state, prompt, session.is_terminal, log)

        if event.type == DialogEventType.SYSTEM:
            session.context.merge_metadata(event.metadata)
            prompt = session.context.last_prompt or DEFAULT_SYSTEM_PROMPT
            return self._reply(session, session.state, prompt, session.is_terminal, log)

        return await self._handle_utterance(session, event, log)

    async def _handle_utterance(self, session, event: DialogEvent, log) -> DialogResult:
        text = (event.utterance_text or "").strip()
        normalized = normalize_text(text)

        context = session.context
        intent = context.record_intent(event.metadata)
        context.merge_metadata({
            key: value for key, value in event.metadata.items()
            if key not in (IntentMetadataKeys.LABEL, IntentMetadataKeys.CONFIDENCE)
        })

        if session.is_terminal:
            return self._reply(session, session.state, TERMINAL_PROMPT, True, log)

        if not normalized:
            return self._reply(session, session.state, REPEAT_PROMPT, False, log)

        if intent == IntentLabel.FALLBACK:
            log.info("Fallback intent in %s", session.state.value)
            return self._reply(session, DialogState.ERROR, FALLBACK_PROMPT, False, log)

        context.last_utterance = text
        log.debug("Utterance in %s (intent=%s): %r", session.state.value, intent, text)
        turn = _Turn(session, text, normalized, intent, log)
        return await self._handlers[session.state](turn)

    def _reply(
        self,
        session: DialogSession,
        state: DialogState,
        prompt: str,
        is_complete: bool,
        log,
    ) -> DialogResult:
        previous = session.state
        session.transition_to(state, self._clock.now())
        session.context.last_prompt = prompt
        if previous != state:
            log.info("Dialog %s -> %s", previous.value, state.value)
        return DialogResult(
            state=state,
            prompt_text=prompt,
            is_session_complete=is_complete,
            metadata=session.context.to_metadata(),
            slots=session.context.slots.to_snapshot(),
        )

    def _say(self, turn: _Turn, state: DialogState, prompt: str, is_complete: bool = False) -> DialogResult:
        return self._reply(turn.session, state, prompt, is_complete, turn.log)

    # -------------------------------------------------------------------------
    # State handlers
    # -------------------------------------------------------------------------

    async def _handle_start(self, turn: _Turn) -> DialogResult:
        if turn.wants_status(OPENING_STATUS_KEYWORDS):
            return self._say(turn, DialogState.CHECKING_STATUS, "Sure, what order code should I check for you?")
        if turn.wants_cancel():
            return self._say(turn, DialogState.CANCELLING, "I can cancel an order. What's the order code?")
        if turn.wants_modify():
            return self._say(turn, DialogState.MODIFYING, "Tell me what needs to change in your order.")

        turn.context.confirmation_status = ConfirmationStatus.COLLECTING
        if turn.intent == IntentLabel.GREETING:
            return self._say(turn, DialogState.ORDERING, GREETING_PROMPT)

        if turn.context.requested_items:
            return self._say(turn, DialogState.ORDERING, "What else can I add to your order?")
        return self._say(turn, DialogState.ORDERING, WELCOME_PROMPT)

    async def _handle_ordering(self, turn: _Turn) -> DialogResult:
        if turn.wants_status():
            return self._say(turn, DialogState.CHECKING_STATUS, "Sure, what order code should I look up?")
        if turn.wants_cancel():
            return self._say(turn, DialogState.CANCELLING, "Okay, let's cancel an order. What's the code?")
        if turn.wants_modify():
            return self._say(turn, DialogState.MODIFYING, "Tell me what to change in the order.")

        context = turn.context
        context.confirmation_status = ConfirmationStatus.COLLECTING
        snapshot = await self._menu.snapshot()
        unavailable = _drop_unavailable_product(context.slots, snapshot)

        awaiting = self._orchestrator.get_next_slot(context.slots, _selected_product(context.slots, snapshot))
        extraction = self._extractor.extract(turn.text, snapshot, context.slots, turn.intent, awaiting)

        if not extraction.anything_filled and context.slots.product is None and turn.is_negation():
            return self._say(turn, DialogState.ORDERING, "No problem. Let me know when you're ready to order.")

        if extraction.anything_filled:
            context.requested_items.append(clean_item_description(turn.text))

        return self._continue_order(turn, snapshot, extraction, unavailable)

    async def _handle_modifying(self, turn: _Turn) -> DialogResult:
        if turn.wants_cancel():
            return self._say(turn, DialogState.CANCELLING, "Understood. What order code should I cancel?")
        if turn.wants_status():
            return self._say(turn, DialogState.CHECKING_STATUS, "Sure, what order code should I check?")

        context = turn.context
        snapshot = await self._menu.snapshot()
        unavailable = _drop_unavailable_product(context.slots, snapshot)
        extraction = self._extractor.extract(turn.text, snapshot, context.slots, turn.intent)

        if turn.is_completion():
            product = _selected_product(context.slots, snapshot)
            if self._orchestrator.is_complete(context.slots, product):
                summary = build_order_summary(context.slots, product, self.timezone)
                context.requested_items[:] = [summary]
            elif context.requested_items:
                summary = ", ".join(context.requested_items)
            else:
                return self._continue_order(turn, snapshot, extraction, unavailable)

            context.order_summary = summary
            context.confirmation_status = ConfirmationStatus.PENDING
            return self._say(turn, DialogState.CONFIRMING, f"Your order now has {summary}. Shall I finalize it?")

        context.requested_items.append(clean_item_description(turn.text))
        return self._say(turn, DialogState.MODIFYING, "Anything else you'd like to change?")

    async def _handle_cancelling(self, turn: _Turn) -> DialogResult:
        context = turn.context
        if turn.wants_status():
            return self._say(turn, DialogState.CHECKING_STATUS, "Okay, what order code would you like me to check?")

        code = extract_order_code(turn.text)
        if code:
            context.order_code = code
            context.pending_cancellation_code = code
            return self._say(turn, DialogState.CONFIRMING, f"I found order {code}. Do you want me to cancel it now?")

        if turn.is_affirmation() and context.order_code:
            code = context.order_code
            context.pending_cancellation_code = None
            return self._say(turn, DialogState.CANCELLED, f"Done. Order {code} has been cancelled.", True)

        if turn.is_negation():
            context.pending_cancellation_code = None
            return self._say(turn, DialogState.ORDERING, "No worries. What else can I help you with?")

        return self._say(turn, DialogState.CANCELLING, "Could you share the order code you want to cancel?")

    async def _handle_checking_status(self, turn: _Turn) -> DialogResult:
        context = turn.context
        if turn.wants_cancel():
            return self._say(turn, DialogState.CANCELLING, "Okay, I can cancel it. What order code is it?")

        code = extract_order_code(turn.text)
        if code:
            context.order_code = code
            return self._say(
                turn, DialogState.CHECKING_STATUS,
                f"Order {code} is currently being prepared. Anything else you need?",
            )

        if turn.is_affirmation() and context.order_code:
            return self._say(turn, DialogState.COMPLETED, f"Order {context.order_code} is ready for pickup.", True)

        if turn.is_negation():
            return self._say(turn, DialogState.ORDERING, "Alright. Do you want to place a new order?")

        return self._say(turn, DialogState.CHECKING_STATUS, "Please provide the order code so I can look it up.")

    async def _handle_confirming(self, turn: _Turn) -> DialogResult:
        context = turn.context
        if turn.is_affirmation():
            if context.pending_cancellation_code:
                code = context.pending_cancellation_code
                context.pending_cancellation_code = None
                return self._say(turn, DialogState.CANCELLED, f"Done. Order {code} is cancelled.", True)
            return await self._finalize(turn)

        if turn.is_negation():
            context.pending_cancellation_code = None
            context.confirmation_status = ConfirmationStatus.COLLECTING
            return self._say(turn, DialogState.ORDERING, "No problem. What should we adjust?")

        return self._say(turn, DialogState.CONFIRMING, "Just to confirm, should I go ahead?")

    async def _handle_error(self, turn: _Turn) -> DialogResult:
        # Only an explicit restart leaves the error state
        if turn.intent in (IntentLabel.START_ORDER, IntentLabel.GREETING) or contains_any(
            turn.normalized, RESTART_KEYWORDS,
        ):
            turn.log.info("Restarting dialog after error")
            turn.context.reset()
            turn.session.transition_to(DialogState.START, self._clock.now())
            return await self._handle_start(turn)
        return self._say(turn, DialogState.ERROR, FALLBACK_PROMPT)

    # -------------------------------------------------------------------------
    # Slot filling and finalization
    # -------------------------------------------------------------------------

    def _continue_order(
        self,
        turn: _Turn,
        snapshot: MenuSnapshot,
        extraction: ExtractionResult,
        unavailable: str | None = None,
    ) -> DialogResult:
        """Ask for the next missing slot, or move to confirmation when none is left."""
        context = turn.context
        slots = context.slots
        product = _selected_product(slots, snapshot)
        orchestrator = self._orchestrator

        if extraction.quantity_rejected and slots.product is not None:
            return self._say(turn, DialogState.ORDERING, orchestrator.rejection_prompt(SlotCategory.QUANTITY))

        next_slot = orchestrator.get_next_slot(slots, product)
        if next_slot is None:
            summary = build_order_summary(slots, product, self.timezone)
            context.requested_items[:] = [summary]
            context.order_summary = summary
            context.confirmation_status = ConfirmationStatus.PENDING
            return self._say(turn, DialogState.CONFIRMING, f"You've asked for {summary}. Should I place the order?")

        if next_slot == SlotCategory.PICKUP_TIME and extraction.pickup_rejected:
            prompt = orchestrator.rejection_prompt(SlotCategory.PICKUP_TIME)
        else:
            prompt = orchestrator.build_prompt(next_slot, slots, product, snapshot)
        if unavailable and next_slot == SlotCategory.PRODUCT:
            prompt = f"Sorry, {unavailable} is no longer available. {prompt}"
        return self._say(turn, DialogState.ORDERING, prompt)

    async def _finalize(self, turn: _Turn) -> DialogResult:
        context = turn.context
        snapshot = await self._menu.snapshot()
        product = _selected_product(context.slots, snapshot)
        if not self._orchestrator.is_complete(context.slots, product):
            context.confirmation_status = ConfirmationStatus.COLLECTING
            unavailable = _drop_unavailable_product(context.slots, snapshot)
            return self._continue_order(turn, snapshot, ExtractionResult(), unavailable)

        summary = context.order_summary or build_order_summary(context.slots, product, self.timezone)
        context.finalize_requested = True
        result = await self._finalizer.finalize(context.slots)
        context.finalize_requested = False

        if result.status == FinalizationStatus.PLACED:
            total = f"{result.total:.2f}"
            context.order_code = result.order_code
            context.order_id = result.order.order_id
            context.order_total = total
            context.confirmation_status = ConfirmationStatus.PERSISTED
            context.slots.clear_all()
            context.requested_items.clear()
            turn.log.info("Order %s placed", result.order_code)
            return self._say(
                turn, DialogState.COMPLETED,
                f"Order confirmed: {summary}. The total is {self._currency_symbol}{total}. "
                f"Your pickup code is {result.order_code}.",
                True,
            )

        if result.status == FinalizationStatus.REJECTED:
            release = _SLOT_RELEASE_ON_ERROR.get(result.error_code)
            if release is not None:
                release(context.slots)
            context.confirmation_status = ConfirmationStatus.COLLECTING
            turn.log.info("Order rejected: %s", result.error_code)
            return self._say(turn, DialogState.ORDERING, result.message)

        context.confirmation_status = ConfirmationStatus.ERROR
        return self._say(turn, DialogState.ERROR, SYSTEM_FAILURE_PROMPT)


def _selected_product(slots: SlotSet, snapshot: MenuSnapshot):
    if slots.product is None:
        return None
    return snapshot.find_product(slots.product.product_id)


def _drop_unavailable_product(slots: SlotSet, snapshot: MenuSnapshot) -> str | None:
    """Clear a selected product that is no longer on the menu; returns its name."""
    if slots.product is None or snapshot.find_product(slots.product.product_id) is not None:
        return None
    name = slots.product.name
    slots.clear_product()
    return name
