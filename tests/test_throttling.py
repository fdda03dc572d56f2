"""
Tests for pickup slot flooring and per-slot capacity.
"""

from datetime import datetime, timedelta, timezone

import pytest

from takeaway_bot.models import Order
from takeaway_bot.services.throttling import can_place_order, count_orders_in_slot, floor_to_slot

SLOT = datetime(2026, 10, 18, 18, 30, tzinfo=timezone.utc)


def _add_order(db, pickup_at, shop_id=1, status="Received"):
    db.add(Order(
        shop_id=shop_id,
        status=status,
        pickup_at=pickup_at.astimezone(timezone.utc).replace(tzinfo=None),
        created_at=datetime(2026, 10, 18, 12, 0),
        total_amount=10.0,
    ))
    db.commit()


class TestFloorToSlot:
    @pytest.mark.parametrize("minute,expected", [(30, 30), (37, 30), (44, 30), (45, 45), (59, 45), (0, 0)])
    def test_floors_to_quarter_hour(self, minute, expected):
        value = datetime(2026, 10, 18, 18, minute, 12, 500, tzinfo=timezone.utc)
        assert floor_to_slot(value) == datetime(2026, 10, 18, 18, expected, tzinfo=timezone.utc)

    def test_idempotent(self):
        once = floor_to_slot(datetime(2026, 10, 18, 18, 37, tzinfo=timezone.utc))
        assert floor_to_slot(once) == once

    def test_naive_is_utc(self):
        assert floor_to_slot(datetime(2026, 10, 18, 18, 37)) == SLOT

    def test_converts_to_utc(self):
        local = datetime(2026, 10, 18, 20, 37, tzinfo=timezone(timedelta(hours=2)))
        assert floor_to_slot(local) == SLOT


class TestCapacity:
    def test_counts_only_orders_in_slot(self, db):
        _add_order(db, SLOT)
        _add_order(db, SLOT + timedelta(minutes=14))
        _add_order(db, SLOT + timedelta(minutes=15))
        _add_order(db, SLOT - timedelta(minutes=1))

        assert count_orders_in_slot(db, SLOT, shop_id=1) == 2

    def test_counts_per_shop(self, db):
        _add_order(db, SLOT, shop_id=2)

        assert count_orders_in_slot(db, SLOT, shop_id=1) == 0

    def test_full_slot(self, db):
        _add_order(db, SLOT)
        _add_order(db, SLOT + timedelta(minutes=5))

        assert can_place_order(db, SLOT, shop_id=1, max_orders_per_slot=3)
        assert not can_place_order(db, SLOT, shop_id=1, max_orders_per_slot=2)
