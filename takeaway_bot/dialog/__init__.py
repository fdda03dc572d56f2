"""
Dialog Package for Takeaway Bot
===============================

The conversation engine. One ``DialogSession`` per caller is driven by
``DialogStateMachine`` through the states Start, Ordering, Modifying,
Cancelling, CheckingStatus, Confirming, Completed, Cancelled and Error.

Modules:
--------
- **models**: Pydantic DTOs (events, menu snapshot, slot snapshot, results)
- **slots**: The mutable slot set and its invariants
- **parsers**: Keyword lists and deterministic text parsers
- **intents**: Intent labels and the keyword intent classifier
- **slot_extractor**: Fills slots from an utterance
- **slot_orchestrator**: Picks the next slot to ask for and builds prompts
- **context**: Per-session context and its metadata projection
- **finalizer**: Turns filled slots into a placed order
- **state_machine**: Turn handling per dialog state
- **service**: Session lookup, locking and persistence around the machine
"""

from .models import DialogEvent, DialogEventType, DialogResult, DialogState

__all__ = [
    "DialogEvent",
    "DialogEventType",
    "DialogResult",
    "DialogState",
]
