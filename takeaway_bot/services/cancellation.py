"""
Order cancellation rules.

An order can be cancelled unless it is already Cancelled, Completed or Ready,
and only up to a configurable window before its pickup time.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..clock import as_utc, to_storage
from ..config import ORDER_CANCELLATION_WINDOW_MINUTES
from ..models import AuditLog, Order
from .. import order_status

logger = logging.getLogger(__name__)

_NOT_CANCELLABLE = {
    order_status.CANCELLED: "Order is already cancelled.",
    order_status.COMPLETED: "Completed orders cannot be cancelled.",
    order_status.READY: "Orders ready for pickup cannot be cancelled.",
}


@dataclass(frozen=True)
class CancellationDecision:
    allowed: bool
    reason: Optional[str] = None


def check_cancellation(
    status: Optional[str],
    pickup_at: datetime,
    now: datetime,
    window_minutes: int = ORDER_CANCELLATION_WINDOW_MINUTES,
) -> CancellationDecision:
    """
    Decide whether an order may be cancelled at ``now``.

    Args:
        status: Current order status (any accepted spelling)
        pickup_at: Scheduled pickup (slot start)
        now: Current instant
        window_minutes: Minutes before pickup after which cancelling is refused

    Returns:
        CancellationDecision with a caller-facing reason when refused
    """
    canonical = order_status.normalize_status(status)
    if canonical in _NOT_CANCELLABLE:
        return CancellationDecision(False, _NOT_CANCELLABLE[canonical])

    window = timedelta(minutes=max(0, window_minutes))
    cutoff = as_utc(pickup_at) - window
    if as_utc(now) > cutoff:
        return CancellationDecision(
            False,
            f"Orders can no longer be cancelled within {window_minutes} minutes of pickup.",
        )

    return CancellationDecision(True)


def cancel_order(
    db: Session,
    order: Order,
    now: datetime,
    window_minutes: int = ORDER_CANCELLATION_WINDOW_MINUTES,
) -> CancellationDecision:
    """
    Cancel an order if the rules allow it, recording an audit entry.

    Commits on success; leaves the session untouched when refused.
    """
    decision = check_cancellation(order.status, order.pickup_at, now, window_minutes)
    if not decision.allowed:
        logger.info("Cancellation refused for %s: %s", order.order_code, decision.reason)
        return decision

    previous_status = order.status
    order.status = order_status.CANCELLED
    db.add(AuditLog(
        order_id=order.id,
        event_type="OrderCancelled",
        created_at=to_storage(now),
        payload=json.dumps({
            "order_code": order.order_code,
            "previous_status": previous_status,
        }),
    ))
    db.commit()
    logger.info("Order %s cancelled", order.order_code)
    return decision
