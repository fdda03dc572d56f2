"""
Wiring of the voice dialog service.

The service and its collaborators (session store, classifier, menu
provider, order persistence) are built once per process. Routes receive it
through ``Depends(get_voice_service)``; tests swap it with
``app.dependency_overrides``.
"""

import logging
from functools import lru_cache

from .clock import Clock, SystemClock
from .config import DEFAULT_SHOP_ID, ORDER_MAX_PER_SLOT, VOICE_ORDER_CHANNEL_ID
from .dialog.finalizer import OrderFinalizer
from .dialog.intents import KeywordIntentClassifier
from .dialog.service import VoiceDialogService
from .dialog.state_machine import DialogStateMachine
from .services.menu import SqlAlchemyMenuProvider
from .services.notifier import LoggingOrderNotifier
from .services.order import SqlAlchemyOrderPersistence
from .services.session import InMemorySessionStore

logger = logging.getLogger(__name__)


def build_voice_service(session_factory, clock: Clock) -> VoiceDialogService:
    """Assemble a VoiceDialogService on a SQLAlchemy session factory."""
    finalizer = OrderFinalizer(
        persistence=SqlAlchemyOrderPersistence(session_factory, clock, ORDER_MAX_PER_SLOT),
        notifier=LoggingOrderNotifier(),
        shop_id=DEFAULT_SHOP_ID,
        order_channel_id=VOICE_ORDER_CHANNEL_ID,
    )
    state_machine = DialogStateMachine(
        menu_provider=SqlAlchemyMenuProvider(session_factory, DEFAULT_SHOP_ID),
        finalizer=finalizer,
        clock=clock,
    )
    return VoiceDialogService(
        store=InMemorySessionStore(clock=clock),
        state_machine=state_machine,
        classifier=KeywordIntentClassifier(),
    )


@lru_cache(maxsize=1)
def get_clock() -> Clock:
    return SystemClock()


@lru_cache(maxsize=1)
def get_voice_service() -> VoiceDialogService:
    from .db import SessionLocal

    logger.info("Building voice dialog service")
    return build_voice_service(SessionLocal, get_clock())
