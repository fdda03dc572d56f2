"""
Pickup slot throttling.

Pickup times are grouped into fixed 15-minute buckets aligned on UTC. Each
bucket accepts a bounded number of orders so the kitchen is not flooded at
popular times.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..clock import as_utc, to_storage
from ..config import ORDER_MAX_PER_SLOT, PICKUP_SLOT_MINUTES
from ..models import Order

logger = logging.getLogger(__name__)


def floor_to_slot(value: datetime, slot_minutes: int = PICKUP_SLOT_MINUTES) -> datetime:
    """
    Floor a pickup time to the start of its slot.

    Idempotent: flooring a slot start returns the same instant.

    Args:
        value: Pickup time (aware, or naive UTC)
        slot_minutes: Bucket size in minutes

    Returns:
        Aware UTC datetime at the preceding slot boundary
    """
    utc_value = as_utc(value)
    minute = utc_value.minute - (utc_value.minute % slot_minutes)
    return utc_value.replace(minute=minute, second=0, microsecond=0)


def count_orders_in_slot(
    db: Session,
    slot_start: datetime,
    shop_id: int,
    slot_minutes: int = PICKUP_SLOT_MINUTES,
) -> int:
    """Number of persisted orders whose pickup falls in the slot starting at slot_start."""
    start = to_storage(floor_to_slot(slot_start, slot_minutes))
    end = start + timedelta(minutes=slot_minutes)
    return (
        db.query(func.count(Order.id))
        .filter(
            Order.shop_id == shop_id,
            Order.pickup_at >= start,
            Order.pickup_at < end,
        )
        .scalar()
        or 0
    )


def can_place_order(
    db: Session,
    slot_start: datetime,
    shop_id: int,
    max_orders_per_slot: int = ORDER_MAX_PER_SLOT,
) -> bool:
    """
    Check whether the slot still has room for one more order.

    Runs inside the caller's transaction so the count and the insert that
    follows see the same data.
    """
    existing = count_orders_in_slot(db, slot_start, shop_id)
    if existing >= max_orders_per_slot:
        logger.info(
            "Pickup slot %s is full (%d/%d orders)",
            floor_to_slot(slot_start).isoformat(), existing, max_orders_per_slot,
        )
        return False
    return True
