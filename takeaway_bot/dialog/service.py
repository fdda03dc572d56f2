"""
Voice dialog service - one call per caller turn.

Ties the pieces together for a transport layer:

1. serialize turns per caller (one in-flight event per session)
2. load or create the caller's session
3. classify the utterance (injected classifier)
4. run the state machine
5. save the session, or drop it once the conversation is over

Any unexpected exception is logged and turned into a generic apology in the
Error state; exception text never reaches the caller.
"""

import logging

from ..logging_config import bind_logger
from ..services.session import SessionStore
from .context import ConfirmationStatus, DialogSession
from .intents import IntentClassifier, intent_metadata
from .models import DialogEvent, DialogResult, DialogState, SlotSnapshot
from .state_machine import DialogStateMachine

UNEXPECTED_ERROR_PROMPT = "Something went wrong while placing the order. Should we try again?"


class VoiceDialogService:
    def __init__(
        self,
        store: SessionStore,
        state_machine: DialogStateMachine,
        classifier: IntentClassifier,
        logger: logging.Logger | None = None,
    ):
        self._store = store
        self._state_machine = state_machine
        self._classifier = classifier
        self._logger = logger or logging.getLogger(__name__)

    async def handle_utterance(
        self,
        caller_id: str,
        text: str,
        slots: SlotSnapshot | None = None,
    ) -> DialogResult:
        """
        Handle one utterance from a caller.

        Args:
            caller_id: Stable caller identity (phone number, session id)
            text: Recognized speech
            slots: Slots echoed back by a stateless client; only used when the
                server has no live state for this caller

        Returns:
            DialogResult for the transport to speak and echo
        """
        async with self._store.lock_for(caller_id):
            session = self._store.get_or_create(caller_id)
            if slots is not None and _is_fresh(session):
                session.context.slots.apply_snapshot(slots)
                if session.context.slots.product is not None:
                    # Resume slot filling instead of greeting again
                    session.state = DialogState.ORDERING

            prediction = await self._classifier.predict(text) if text and text.strip() else None
            metadata = intent_metadata(prediction) if prediction is not None else {}
            event = DialogEvent.utterance(text, metadata)
            return await self._run(session, event)

    async def handle_timeout(self, caller_id: str) -> DialogResult:
        async with self._store.lock_for(caller_id):
            session = self._store.get_or_create(caller_id)
            return await self._run(session, DialogEvent.timeout())

    async def handle_system(self, caller_id: str, metadata: dict[str, str] | None = None) -> DialogResult:
        async with self._store.lock_for(caller_id):
            session = self._store.get_or_create(caller_id)
            return await self._run(session, DialogEvent.system(metadata))

    def end_session(self, caller_id: str) -> None:
        self._store.remove(caller_id)

    async def _run(self, session: DialogSession, event: DialogEvent) -> DialogResult:
        log = bind_logger(self._logger, caller=session.caller_id)
        try:
            result = await self._state_machine.handle(session, event)
        except Exception:
            log.exception("Dialog turn failed in state %s", session.state.value)
            session.state = DialogState.ERROR
            session.context.last_prompt = UNEXPECTED_ERROR_PROMPT
            session.context.confirmation_status = ConfirmationStatus.ERROR
            session.context.finalize_requested = False
            result = DialogResult(
                state=DialogState.ERROR,
                prompt_text=UNEXPECTED_ERROR_PROMPT,
                metadata=session.context.to_metadata(),
                slots=session.context.slots.to_snapshot(),
            )

        if result.is_session_complete:
            log.info("Session finished in %s", result.state.value)
            self._store.remove(session.caller_id)
        else:
            self._store.save(session)
        return result


def _is_fresh(session: DialogSession) -> bool:
    return session.state == DialogState.START and session.context.slots.is_empty()
