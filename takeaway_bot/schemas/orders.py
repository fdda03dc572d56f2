"""
Order Schemas for Takeaway Bot
==============================

Response models for the order status and cancellation endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_name: str
    variant_name: Optional[str] = None
    modifiers: Optional[List[str]] = None
    quantity: int
    unit_price: float
    subtotal: float


class OrderStatusOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_code: Optional[str] = None
    status: str
    pickup_at: datetime
    total_amount: float
    items: List[OrderItemOut] = []


class OrderCancelOut(BaseModel):
    order_code: str
    status: str
    cancelled: bool
