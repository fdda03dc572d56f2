"""
Menu snapshot provider.

Builds the per-turn MenuSnapshot from the live catalog: only available
products that still have stock, each with its variants and modifiers.
Snapshots are never cached, so slot grounding always reflects current
availability.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable

from sqlalchemy.orm import Session, selectinload

from ..config import DEFAULT_SHOP_ID
from ..dialog.models import MenuModifier, MenuProduct, MenuSnapshot, MenuVariant
from ..inventory import is_product_in_stock
from ..models import Product

logger = logging.getLogger(__name__)


class MenuProvider(ABC):
    @abstractmethod
    async def snapshot(self) -> MenuSnapshot:
        ...


class StaticMenuProvider(MenuProvider):
    """Serves a fixed snapshot (demos, tests, menus loaded from a file)."""

    def __init__(self, snapshot: MenuSnapshot):
        self._snapshot = snapshot

    async def snapshot(self) -> MenuSnapshot:
        return self._snapshot


class SqlAlchemyMenuProvider(MenuProvider):
    def __init__(self, session_factory: Callable[[], Session], shop_id: int = DEFAULT_SHOP_ID):
        self._session_factory = session_factory
        self._shop_id = shop_id

    async def snapshot(self) -> MenuSnapshot:
        return await asyncio.to_thread(self.load_snapshot)

    def load_snapshot(self) -> MenuSnapshot:
        db = self._session_factory()
        try:
            products = (
                db.query(Product)
                .options(selectinload(Product.variants), selectinload(Product.modifiers))
                .filter(Product.shop_id == self._shop_id, Product.is_available.is_(True))
                .order_by(Product.name)
                .all()
            )
            snapshot = MenuSnapshot(products=[
                _to_menu_product(product)
                for product in products
                if is_product_in_stock(product)
            ])
        finally:
            db.close()

        logger.debug("Menu snapshot: %d products", len(snapshot.products))
        return snapshot


def _to_menu_product(product: Product) -> MenuProduct:
    return MenuProduct(
        id=product.id,
        name=product.name,
        variants=[
            MenuVariant(id=v.id, name=v.name, is_default=bool(v.is_default))
            for v in product.variants
        ],
        modifiers=[MenuModifier(id=m.id, name=m.name) for m in product.modifiers],
    )
