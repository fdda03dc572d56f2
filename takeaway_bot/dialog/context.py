"""
Dialog session and context.

The context keeps every value the state machine relies on as a typed field
(intent, order code, confirmation status, ...) and renders them to the flat
string metadata map that the transport layer consumes. Keys the engine does
not know about are kept in ``extras`` and passed through untouched.
"""

from dataclasses import dataclass, field
from datetime import datetime

from .intents import IntentMetadataKeys
from .models import DialogState
from .slots import SlotSet


class OrderMetadataKeys:
    ITEMS = "order.items"
    CODE = "order.code"
    CONFIRMATION = "order.confirmation"
    FINALIZE = "order.finalize"
    TOTAL = "order.total"
    ORDER_ID = "order.id"


class SlotMetadataKeys:
    PRODUCT_ID = "slot.product.id"
    PRODUCT_NAME = "slot.product.name"
    VARIANT_ID = "slot.variant.id"
    VARIANT_NAME = "slot.variant.name"
    QUANTITY = "slot.quantity"
    MODIFIERS = "slot.modifiers"
    PICKUP = "slot.pickup"


class ConfirmationStatus:
    """Values of ``order.confirmation``."""
    COLLECTING = "collecting"
    PENDING = "pending"
    PERSISTED = "persisted"
    ERROR = "error"


@dataclass
class DialogContext:
    requested_items: list[str] = field(default_factory=list)
    slots: SlotSet = field(default_factory=SlotSet)

    intent_label: str | None = None
    intent_score: str | None = None
    last_intent: str | None = None

    order_code: str | None = None
    # Set while the caller is confirming a cancellation
    pending_cancellation_code: str | None = None
    order_summary: str | None = None
    confirmation_status: str | None = None
    finalize_requested: bool = False
    order_total: str | None = None
    order_id: int | None = None

    last_prompt: str | None = None
    last_utterance: str | None = None

    extras: dict[str, str] = field(default_factory=dict)

    def record_intent(self, metadata: dict[str, str]) -> str | None:
        """Store the turn's intent (or clear it when the classifier abstained)."""
        label = metadata.get(IntentMetadataKeys.LABEL) or None
        self.intent_label = label
        self.intent_score = metadata.get(IntentMetadataKeys.CONFIDENCE) or None
        if label:
            self.last_intent = label
        return label

    def merge_metadata(self, metadata: dict[str, str]) -> None:
        """Merge externally supplied metadata: known keys land on typed fields, the rest in extras."""
        for key, value in metadata.items():
            if key == IntentMetadataKeys.LABEL:
                self.intent_label = value or None
            elif key == IntentMetadataKeys.CONFIDENCE:
                self.intent_score = value or None
            elif key == IntentMetadataKeys.LAST_LABEL:
                self.last_intent = value or None
            elif key == OrderMetadataKeys.CODE:
                self.order_code = value or None
            elif key == OrderMetadataKeys.ITEMS:
                self.order_summary = value or None
            elif key == OrderMetadataKeys.CONFIRMATION:
                self.confirmation_status = value or None
            elif key.startswith("slot.") or key in (
                OrderMetadataKeys.FINALIZE, OrderMetadataKeys.TOTAL, OrderMetadataKeys.ORDER_ID,
            ):
                # Derived from engine state; never taken from the outside
                continue
            else:
                self.extras[key] = value

    def to_metadata(self) -> dict[str, str]:
        metadata = dict(self.extras)

        optional = {
            IntentMetadataKeys.LABEL: self.intent_label,
            IntentMetadataKeys.CONFIDENCE: self.intent_score,
            IntentMetadataKeys.LAST_LABEL: self.last_intent,
            OrderMetadataKeys.ITEMS: self.order_summary,
            OrderMetadataKeys.CODE: self.order_code,
            OrderMetadataKeys.CONFIRMATION: self.confirmation_status,
            OrderMetadataKeys.TOTAL: self.order_total,
            OrderMetadataKeys.ORDER_ID: str(self.order_id) if self.order_id is not None else None,
        }
        metadata.update({key: value for key, value in optional.items() if value is not None})
        metadata[OrderMetadataKeys.FINALIZE] = "true" if self.finalize_requested else "false"
        metadata.update(self._slot_metadata())
        return metadata

    def _slot_metadata(self) -> dict[str, str]:
        slots = self.slots
        mirror: dict[str, str] = {}
        if slots.product is not None:
            mirror[SlotMetadataKeys.PRODUCT_ID] = str(slots.product.product_id)
            mirror[SlotMetadataKeys.PRODUCT_NAME] = slots.product.name
        if slots.variant is not None:
            mirror[SlotMetadataKeys.VARIANT_ID] = str(slots.variant.variant_id)
            mirror[SlotMetadataKeys.VARIANT_NAME] = slots.variant.name
        if slots.quantity is not None:
            mirror[SlotMetadataKeys.QUANTITY] = str(slots.quantity)
        if slots.modifiers_explicit_none:
            mirror[SlotMetadataKeys.MODIFIERS] = "none"
        elif slots.modifiers:
            mirror[SlotMetadataKeys.MODIFIERS] = ";".join(m.name for m in slots.modifiers)
        if slots.pickup_time is not None:
            mirror[SlotMetadataKeys.PICKUP] = slots.pickup_time.isoformat()
        return mirror

    def reset(self) -> None:
        """Forget everything collected so far (explicit restart)."""
        self.requested_items.clear()
        self.slots.clear_all()
        self.order_code = None
        self.pending_cancellation_code = None
        self.order_summary = None
        self.confirmation_status = None
        self.finalize_requested = False
        self.order_total = None
        self.order_id = None
        self.last_prompt = None
        self.extras.clear()


@dataclass
class DialogSession:
    """One caller's conversation. Owned by the session store, mutated by the state machine."""
    caller_id: str
    state: DialogState
    updated_at: datetime
    context: DialogContext = field(default_factory=DialogContext)

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    def transition_to(self, state: DialogState, now: datetime) -> None:
        self.state = state
        self.updated_at = now

    def touch(self, now: datetime) -> None:
        self.updated_at = now
