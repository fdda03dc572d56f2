"""
Order Routes for Takeaway Bot
=============================

Direct order lookups and updates, outside of a voice conversation.

Endpoints:
----------
- GET /orders/{order_code}: Current status of an order
- POST /orders/{order_code}/cancel: Cancel an order if the rules allow it
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..clock import Clock
from ..db import get_db
from ..dependencies import get_clock
from ..schemas.orders import OrderCancelOut, OrderStatusOut
from ..services.cancellation import cancel_order
from ..services.order import get_order_by_code

logger = logging.getLogger(__name__)

orders_router = APIRouter(prefix="/orders", tags=["Orders"])


@orders_router.get("/{order_code}", response_model=OrderStatusOut)
def get_order_status(order_code: str, db: Session = Depends(get_db)) -> OrderStatusOut:
    order = get_order_by_code(db, order_code)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return OrderStatusOut.model_validate(order)


@orders_router.post("/{order_code}/cancel", response_model=OrderCancelOut)
def cancel_order_by_code(
    order_code: str,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> OrderCancelOut:
    """
    Cancel an order.

    Refused with 409 when the order is already Cancelled/Completed/Ready or
    pickup is within the cancellation window.
    """
    order = get_order_by_code(db, order_code)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")

    decision = cancel_order(db, order, clock.now())
    if not decision.allowed:
        raise HTTPException(status_code=409, detail=decision.reason)

    return OrderCancelOut(
        order_code=order.order_code,
        status=order.status,
        cancelled=True,
    )
