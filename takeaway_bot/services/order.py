"""
Order Persistence Service for Takeaway Bot
==========================================

This module turns a confirmed voice order draft into persisted rows. It is
the only place where a voice order touches the database.

Key Functions:
--------------
- SqlAlchemyOrderPersistence.finalize: Throttle, re-validate, price and
  persist one order inside a single transaction
- generate_order_code: Human-readable code from pickup slot and order id
- get_order_by_code: Lookup used by the order status/cancel endpoints

Order Lifecycle:
----------------
1. Caller fills slots during the dialog (nothing persisted)
2. Caller confirms -> finalize() runs:
   a. floor pickup time to its 15-minute slot and check throttling
   b. re-read product/variant/modifiers from the live catalog
   c. price the line and check stock
   d. insert order + item, decrement stock, flush for the id
   e. assign order code, write OrderCreated audit entry, commit
3. Any failure rolls the whole transaction back

Error Handling:
---------------
Business rule violations raise OrderProcessingError with a short machine
code and a caller-facing message. Anything else (database down, integrity
errors) propagates unchanged for the caller to treat as a system failure.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Tuple

from sqlalchemy.orm import Session

from .. import order_status
from ..clock import Clock, as_utc, to_storage
from ..config import ORDER_MAX_PER_SLOT
from ..inventory import OutOfStockError, decrement_stock
from ..models import AuditLog, Order, OrderItem, Product
from .pricing import price_order_line
from .throttling import can_place_order, floor_to_slot


logger = logging.getLogger(__name__)


class OrderErrorCode:
    PRODUCT_NOT_FOUND = "product-not-found"
    PRODUCT_UNAVAILABLE = "product-unavailable"
    VARIANT_NOT_FOUND = "variant-not-found"
    STOCK_UNAVAILABLE = "stock-unavailable"
    MODIFIER_NOT_FOUND = "modifier-not-found"
    PRICING_FAILED = "pricing-failed"
    SLOT_FULL = "slot-full"


class OrderProcessingError(Exception):
    """A business rule refused the order. ``message`` is safe to read to the caller."""

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


@dataclass(frozen=True)
class OrderLineDraft:
    product_id: int
    product_name: str
    quantity: int
    variant_id: Optional[int] = None
    variant_name: Optional[str] = None
    modifier_ids: Tuple[int, ...] = ()
    modifier_names: Tuple[str, ...] = ()


@dataclass(frozen=True)
class OrderDraft:
    """Built from the slot set at finalize time; never stored mid-conversation."""
    shop_id: int
    order_channel_id: Optional[int]
    line: OrderLineDraft
    pickup_time: datetime
    notes: Optional[str] = None


@dataclass(frozen=True)
class PlacedOrderLine:
    product_name: str
    variant_name: Optional[str]
    modifiers: Tuple[str, ...]
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


@dataclass(frozen=True)
class PlacedOrder:
    order_id: int
    order_code: str
    status: str
    total_amount: Decimal
    pickup_at: datetime  # slot start, aware UTC
    created_at: datetime
    lines: Tuple[PlacedOrderLine, ...]
    notes: Optional[str] = None


def generate_order_code(slot_start: datetime, order_id: int) -> str:
    """
    Build the pickup code read back to the caller.

    Example: slot 2026-10-18 18:30 UTC, id 42 -> "ORD-202610181830-000042"
    """
    return f"ORD-{as_utc(slot_start):%Y%m%d%H%M}-{order_id:06d}"


def get_order_by_code(db: Session, order_code: str) -> Optional[Order]:
    return db.query(Order).filter(Order.order_code == order_code.strip().upper()).one_or_none()


class OrderPersistence(ABC):
    """Persists a confirmed draft. Raises OrderProcessingError for business rule failures."""

    @abstractmethod
    async def finalize(self, draft: OrderDraft) -> PlacedOrder:
        ...


class SqlAlchemyOrderPersistence(OrderPersistence):
    """
    Order persistence on a SQLAlchemy session factory.

    The synchronous transaction runs in a worker thread so other callers'
    turns keep flowing while this one waits on the database.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock,
        max_orders_per_slot: int = ORDER_MAX_PER_SLOT,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self._max_orders_per_slot = max_orders_per_slot

    async def finalize(self, draft: OrderDraft) -> PlacedOrder:
        return await asyncio.to_thread(self.finalize_sync, draft)

    def finalize_sync(self, draft: OrderDraft) -> PlacedOrder:
        db = self._session_factory()
        try:
            placed = self._persist(db, draft)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        logger.info(
            "Order #%d persisted as %s (slot %s, total %s)",
            placed.order_id, placed.order_code, placed.pickup_at.isoformat(), placed.total_amount,
        )
        return placed

    def _persist(self, db: Session, draft: OrderDraft) -> PlacedOrder:
        now = self._clock.now()
        slot_start = floor_to_slot(draft.pickup_time)

        # 1) Throttling
        if not can_place_order(db, slot_start, draft.shop_id, self._max_orders_per_slot):
            raise OrderProcessingError(
                OrderErrorCode.SLOT_FULL,
                "That pickup slot is fully booked. Please choose another time.",
            )

        # 2) Re-resolve against the live catalog
        line = draft.line
        product = db.get(Product, line.product_id)
        if product is None or product.shop_id != draft.shop_id:
            raise OrderProcessingError(
                OrderErrorCode.PRODUCT_NOT_FOUND,
                f"I couldn't find {line.product_name} on the menu.",
            )
        if not product.is_available:
            raise OrderProcessingError(
                OrderErrorCode.PRODUCT_UNAVAILABLE,
                f"{product.name} is not available right now.",
            )

        variant = None
        if line.variant_id is not None:
            variant = next((v for v in product.variants if v.id == line.variant_id), None)
            if variant is None:
                raise OrderProcessingError(
                    OrderErrorCode.VARIANT_NOT_FOUND,
                    f"I couldn't find the {line.variant_name or 'selected'} option for {product.name}.",
                )
        else:
            variant = next((v for v in product.variants if v.is_default), None)

        modifiers_by_id = {modifier.id: modifier for modifier in product.modifiers}
        modifiers = []
        for modifier_id, modifier_name in zip(line.modifier_ids, line.modifier_names):
            modifier = modifiers_by_id.get(modifier_id)
            if modifier is None:
                raise OrderProcessingError(
                    OrderErrorCode.MODIFIER_NOT_FOUND,
                    f"I couldn't find the {modifier_name} option for {product.name}.",
                )
            modifiers.append(modifier)

        # 3) Pricing
        try:
            pricing = price_order_line(product, variant, modifiers, line.quantity)
        except ValueError as exc:
            raise OrderProcessingError(
                OrderErrorCode.PRICING_FAILED,
                "I couldn't calculate the total for this order.",
            ) from exc
        if pricing.subtotal <= 0:
            raise OrderProcessingError(
                OrderErrorCode.PRICING_FAILED,
                "I couldn't calculate the total for this order.",
            )

        # 4) Stock + rows
        try:
            decrement_stock(product, variant, line.quantity)
        except OutOfStockError as exc:
            raise OrderProcessingError(
                OrderErrorCode.STOCK_UNAVAILABLE,
                f"We only have {exc.available} {product.name} left for today.",
            ) from exc

        modifier_names = [modifier.name for modifier in modifiers]
        order = Order(
            shop_id=draft.shop_id,
            order_channel_id=draft.order_channel_id,
            status=order_status.RECEIVED,
            pickup_at=to_storage(slot_start),
            created_at=to_storage(now),
            total_amount=float(pricing.subtotal),
            notes=draft.notes,
        )
        order.items.append(OrderItem(
            product_id=product.id,
            product_variant_id=variant.id if variant is not None else None,
            product_name=product.name,
            variant_name=variant.name if variant is not None else None,
            modifiers=modifier_names or None,
            quantity=line.quantity,
            unit_price=float(pricing.unit_price),
            subtotal=float(pricing.subtotal),
        ))
        db.add(order)
        db.flush()  # populate order.id

        order.order_code = generate_order_code(slot_start, order.id)
        db.add(AuditLog(
            order_id=order.id,
            event_type="OrderCreated",
            created_at=to_storage(now),
            payload=json.dumps({
                "order_code": order.order_code,
                "total_amount": str(pricing.subtotal),
                "items": [{
                    "product_id": product.id,
                    "product_variant_id": variant.id if variant is not None else None,
                    "quantity": line.quantity,
                    "unit_price": str(pricing.unit_price),
                    "subtotal": str(pricing.subtotal),
                }],
            }),
        ))
        db.flush()

        return PlacedOrder(
            order_id=order.id,
            order_code=order.order_code,
            status=order.status,
            total_amount=pricing.subtotal,
            pickup_at=slot_start,
            created_at=now,
            lines=(PlacedOrderLine(
                product_name=product.name,
                variant_name=variant.name if variant is not None else None,
                modifiers=tuple(modifier_names),
                quantity=line.quantity,
                unit_price=pricing.unit_price,
                subtotal=pricing.subtotal,
            ),),
            notes=draft.notes,
        )
