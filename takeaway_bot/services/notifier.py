"""
Order notifications.

After an order is committed the order-status screen and the kitchen display
are told about it. Delivery is best effort: the order already exists, so a
failing notifier is logged and never turned into an order failure.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List

from .order import PlacedOrder

logger = logging.getLogger(__name__)

TicketCallback = Callable[[Dict[str, Any]], Awaitable[None]]


def build_kitchen_ticket(order: PlacedOrder) -> Dict[str, Any]:
    """Payload pushed to kitchen screens for a new order."""
    return {
        "order_id": order.order_id,
        "order_code": order.order_code,
        "status": order.status,
        "pickup_at": order.pickup_at.isoformat(),
        "created_at": order.created_at.isoformat(),
        "total_amount": str(order.total_amount),
        "notes": order.notes,
        "items": [
            {
                "product_name": line.product_name,
                "variant_name": line.variant_name,
                "modifiers": list(line.modifiers),
                "quantity": line.quantity,
            }
            for line in order.lines
        ],
    }


class OrderNotifier(ABC):
    @abstractmethod
    async def order_created(self, order: PlacedOrder) -> None:
        """Order-status board: a new order exists."""

    @abstractmethod
    async def ticket_created(self, order: PlacedOrder) -> None:
        """Kitchen display: a new ticket to prepare."""


class LoggingOrderNotifier(OrderNotifier):
    """Default notifier when no push channel is configured."""

    async def order_created(self, order: PlacedOrder) -> None:
        logger.info("Order created: %s (pickup %s)", order.order_code, order.pickup_at.isoformat())

    async def ticket_created(self, order: PlacedOrder) -> None:
        logger.info("Kitchen ticket for %s: %d line(s)", order.order_code, len(order.lines))


class CallbackOrderNotifier(OrderNotifier):
    """
    Forwards kitchen tickets to registered async callbacks (websocket hubs,
    message queues, ...).
    """

    def __init__(self):
        self._order_callbacks: List[TicketCallback] = []
        self._ticket_callbacks: List[TicketCallback] = []

    def on_order_created(self, callback: TicketCallback) -> None:
        self._order_callbacks.append(callback)

    def on_ticket_created(self, callback: TicketCallback) -> None:
        self._ticket_callbacks.append(callback)

    async def order_created(self, order: PlacedOrder) -> None:
        payload = build_kitchen_ticket(order)
        for callback in self._order_callbacks:
            await callback(payload)

    async def ticket_created(self, order: PlacedOrder) -> None:
        payload = build_kitchen_ticket(order)
        for callback in self._ticket_callbacks:
            await callback(payload)
