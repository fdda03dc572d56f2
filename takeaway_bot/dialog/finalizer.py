"""
Order finalizer - from filled slots to a placed order.

The finalizer never raises for expected outcomes. It returns a
FinalizationResult the state machine switches on:

- PLACED: order committed, carries code and total
- REJECTED: a business rule refused the order (recoverable, code + message)
- FAILED: infrastructure problem (non-recoverable, generic message only)

Notifications run in the background after the commit: they neither delay
the reply to the caller nor fail the order.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ..config import DEFAULT_SHOP_ID, VOICE_ORDER_CHANNEL_ID
from ..services.notifier import OrderNotifier
from ..services.order import (
    OrderDraft,
    OrderLineDraft,
    OrderPersistence,
    OrderProcessingError,
    PlacedOrder,
)
from .slots import SlotSet

SYSTEM_ERROR_CODE = "system-error"
SLOTS_INCOMPLETE_CODE = "slots-incomplete"


class FinalizationStatus(str, Enum):
    PLACED = "placed"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class FinalizationResult:
    status: FinalizationStatus
    order: PlacedOrder | None = None
    error_code: str | None = None
    message: str | None = None

    @property
    def order_code(self) -> str | None:
        return self.order.order_code if self.order else None

    @property
    def total(self) -> Decimal | None:
        return self.order.total_amount if self.order else None

    @classmethod
    def placed(cls, order: PlacedOrder) -> "FinalizationResult":
        return cls(FinalizationStatus.PLACED, order=order)

    @classmethod
    def rejected(cls, code: str, message: str) -> "FinalizationResult":
        return cls(FinalizationStatus.REJECTED, error_code=code, message=message)

    @classmethod
    def failed(cls) -> "FinalizationResult":
        return cls(FinalizationStatus.FAILED, error_code=SYSTEM_ERROR_CODE)


def build_draft(
    slots: SlotSet,
    shop_id: int = DEFAULT_SHOP_ID,
    order_channel_id: int | None = VOICE_ORDER_CHANNEL_ID,
    notes: str | None = None,
) -> OrderDraft | None:
    """Draft for the current slots, or None if a required slot is still empty."""
    if slots.product is None or slots.quantity is None or slots.pickup_time is None:
        return None
    if not slots.modifiers_filled:
        return None
    variant = slots.variant
    return OrderDraft(
        shop_id=shop_id,
        order_channel_id=order_channel_id,
        line=OrderLineDraft(
            product_id=slots.product.product_id,
            product_name=slots.product.name,
            quantity=slots.quantity,
            variant_id=variant.variant_id if variant else None,
            variant_name=variant.name if variant else None,
            modifier_ids=tuple(m.modifier_id for m in slots.modifiers),
            modifier_names=tuple(m.name for m in slots.modifiers),
        ),
        pickup_time=slots.pickup_time,
        notes=notes,
    )


class OrderFinalizer:
    def __init__(
        self,
        persistence: OrderPersistence,
        notifier: OrderNotifier,
        shop_id: int = DEFAULT_SHOP_ID,
        order_channel_id: int | None = VOICE_ORDER_CHANNEL_ID,
        logger: logging.Logger | None = None,
    ):
        self._persistence = persistence
        self._notifier = notifier
        self._shop_id = shop_id
        self._order_channel_id = order_channel_id
        self._logger = logger or logging.getLogger(__name__)
        self._pending: set[asyncio.Task] = set()

    async def finalize(self, slots: SlotSet, notes: str | None = None) -> FinalizationResult:
        """
        Place the order described by the slots.

        Args:
            slots: Filled slot set (product, quantity, modifiers, pickup time)
            notes: Optional free-text notes for the kitchen

        Returns:
            FinalizationResult; the slot set itself is left untouched
        """
        draft = build_draft(slots, self._shop_id, self._order_channel_id, notes)
        if draft is None:
            return FinalizationResult.rejected(
                SLOTS_INCOMPLETE_CODE, "I still need a few details before I can place the order.",
            )

        try:
            order = await self._persistence.finalize(draft)
        except OrderProcessingError as exc:
            self._logger.info("Order rejected (%s): %s", exc.code, exc.message)
            return FinalizationResult.rejected(exc.code, exc.message)
        except Exception:
            self._logger.exception("Order persistence failed for product %s", draft.line.product_id)
            return FinalizationResult.failed()

        self._schedule_notifications(order)
        return FinalizationResult.placed(order)

    def _schedule_notifications(self, order: PlacedOrder) -> None:
        """Start the order-status and kitchen notifications without waiting for them."""
        for channel, notify in (
            ("order-status", self._notifier.order_created),
            ("kitchen", self._notifier.ticket_created),
        ):
            task = asyncio.create_task(notify(order))
            self._pending.add(task)
            task.add_done_callback(functools.partial(self._notification_done, channel, order.order_code))

    def _notification_done(self, channel: str, order_code: str, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            self._logger.warning("Notification to %s about %s was cancelled", channel, order_code)
            return
        exc = task.exception()
        if exc is not None:
            self._logger.error(
                "Failed to notify %s about %s: %s", channel, order_code, exc,
                exc_info=exc,
            )

    async def wait_for_notifications(self) -> None:
        """Wait until notifications still in flight have finished (shutdown, tests)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
