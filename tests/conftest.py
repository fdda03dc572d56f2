from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from takeaway_bot.clock import Clock
from takeaway_bot.dialog.context import DialogSession
from takeaway_bot.dialog.finalizer import OrderFinalizer
from takeaway_bot.dialog.intents import KeywordIntentClassifier
from takeaway_bot.dialog.models import (
    DialogState,
    MenuModifier,
    MenuProduct,
    MenuSnapshot,
    MenuVariant,
)
from takeaway_bot.dialog.service import VoiceDialogService
from takeaway_bot.dialog.slot_extractor import SlotExtractor
from takeaway_bot.dialog.state_machine import DialogStateMachine
from takeaway_bot.models import Base, Product, ProductModifier, ProductVariant
from takeaway_bot.services.menu import SqlAlchemyMenuProvider
from takeaway_bot.services.notifier import OrderNotifier
from takeaway_bot.services.order import SqlAlchemyOrderPersistence
from takeaway_bot.services.session import InMemorySessionStore

# Sunday 18 October 2026, midday UTC
NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

MARGHERITA_ID = 1
GARLIC_BREAD_ID = 2
CALZONE_ID = 3
REGULAR_ID = 1
LARGE_ID = 2
EXTRA_CHEESE_ID = 1
OLIVES_ID = 2


class FixedClock(Clock):
    """Clock pinned to a given instant; tests move it explicitly."""

    def __init__(self, now: datetime = NOW):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    def advance(self, **kwargs) -> None:
        self._now = self._now + timedelta(**kwargs)


class RecordingNotifier(OrderNotifier):
    def __init__(self):
        self.orders = []
        self.tickets = []

    async def order_created(self, order) -> None:
        self.orders.append(order)

    async def ticket_created(self, order) -> None:
        self.tickets.append(order)


def seed_catalog(db) -> None:
    """Margherita (Regular/Large, Extra Cheese/Olives), Garlic Bread, and an unavailable Calzone."""
    margherita = Product(
        id=MARGHERITA_ID, shop_id=1, name="Margherita",
        price=7.50, vat_rate=0.10, is_available=True, stock_quantity=0,
    )
    margherita.variants = [
        ProductVariant(id=REGULAR_ID, name="Regular", price=7.50, vat_rate=0.10,
                       is_default=True, stock_quantity=20),
        ProductVariant(id=LARGE_ID, name="Large", price=9.00, vat_rate=0.10,
                       is_default=False, stock_quantity=20),
    ]
    margherita.modifiers = [
        ProductModifier(id=EXTRA_CHEESE_ID, name="Extra Cheese", price=1.50, vat_rate=0.10),
        ProductModifier(id=OLIVES_ID, name="Olives", price=1.00, vat_rate=0.10),
    ]
    db.add(margherita)
    db.add(Product(
        id=GARLIC_BREAD_ID, shop_id=1, name="Garlic Bread",
        price=4.00, vat_rate=0.10, is_available=True, stock_quantity=5,
    ))
    db.add(Product(
        id=CALZONE_ID, shop_id=1, name="Calzone",
        price=10.00, vat_rate=0.10, is_available=False, stock_quantity=10,
    ))
    db.commit()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def session_factory():
    """In-memory SQLite shared across threads (order persistence runs in a worker thread).

    Uses StaticPool so all connections share the same in-memory database.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = TestingSessionLocal()
    seed_catalog(db)
    db.close()

    yield TestingSessionLocal
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def menu_snapshot():
    """Same catalog as seed_catalog, as the dialog sees it (Calzone is unavailable)."""
    return MenuSnapshot(products=[
        MenuProduct(
            id=MARGHERITA_ID,
            name="Margherita",
            variants=[
                MenuVariant(id=REGULAR_ID, name="Regular", is_default=True),
                MenuVariant(id=LARGE_ID, name="Large"),
            ],
            modifiers=[
                MenuModifier(id=EXTRA_CHEESE_ID, name="Extra Cheese"),
                MenuModifier(id=OLIVES_ID, name="Olives"),
            ],
        ),
        MenuProduct(id=GARLIC_BREAD_ID, name="Garlic Bread"),
    ])


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def extractor(clock):
    return SlotExtractor(clock, timezone=timezone.utc, min_lead_minutes=10)


@pytest.fixture
def make_machine(session_factory, clock, notifier, extractor):
    """Build a DialogStateMachine on the seeded database."""

    def _make(max_orders_per_slot: int = 20, persistence=None, menu_provider=None, min_lead_minutes=None):
        finalizer = OrderFinalizer(
            persistence=persistence or SqlAlchemyOrderPersistence(
                session_factory, clock, max_orders_per_slot,
            ),
            notifier=notifier,
            shop_id=1,
            order_channel_id=1,
        )
        return DialogStateMachine(
            menu_provider=menu_provider or SqlAlchemyMenuProvider(session_factory, shop_id=1),
            finalizer=finalizer,
            clock=clock,
            extractor=extractor if min_lead_minutes is None else SlotExtractor(
                clock, timezone=timezone.utc, min_lead_minutes=min_lead_minutes,
            ),
            currency_symbol="$",
        )

    return _make


@pytest.fixture
def machine(make_machine):
    return make_machine()


@pytest.fixture
def session(clock):
    return DialogSession(caller_id="+3912345678", state=DialogState.START, updated_at=clock.now())


@pytest.fixture
def store(clock):
    return InMemorySessionStore(ttl_seconds=1800, clock=clock, cleanup_probability=0.0)


@pytest.fixture
def voice_service(machine, store):
    return VoiceDialogService(
        store=store,
        state_machine=machine,
        classifier=KeywordIntentClassifier(min_confidence=0.25, enabled=True),
    )
