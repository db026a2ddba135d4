# shopcore/engine.py
import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Tuple

from .cart import CartStore
from .catalog import CatalogIndex
from .favorites import FavoritesStore
from .gateway import Gateway
from .logger import get_logger
from .models import CartLine, CartTotals, ProductRecord
from .orders import OrdersStore
from .session import Session
from .totals import TAX_RATE

logger = get_logger(__name__)


@dataclass(frozen=True)
class DrawerSummary:
    lines: Tuple[Tuple[CartLine, ProductRecord], ...]
    totals: CartTotals
    is_loading: bool
    error: Optional[str]

    @property
    def is_empty(self) -> bool:
        return not self.lines


class Storefront:
    """
    The stores of one user session, wired to a single gateway and credential.
    Nothing refreshes on its own; callers run sync() or the store operations
    and then re-read.
    """

    def __init__(
        self,
        gateway: Gateway,
        session: Session,
        catalog: Optional[CatalogIndex] = None,
        tax_rate: Decimal = TAX_RATE,
    ) -> None:
        self.gateway = gateway
        self.session = session
        self.catalog = catalog if catalog is not None else CatalogIndex()
        self.favorites = FavoritesStore(gateway, session)
        self.cart = CartStore(gateway, session, self.catalog, tax_rate=tax_rate)
        self.orders = OrdersStore(gateway, session)

    def use_catalog(self, catalog: CatalogIndex) -> None:
        self.catalog = catalog
        self.cart.catalog = catalog

    async def sync(self, include_orders: bool = False) -> None:
        """Full reconciliation of every store with the backend."""
        jobs = [self.favorites.resync(), self.cart.refresh()]
        if include_orders:
            jobs.append(self.orders.refresh())
        await asyncio.gather(*jobs)

    def logout(self) -> None:
        self.session.clear()
        self.favorites.reset()
        self.cart.reset()
        self.orders.reset()
        logger.info("Session cleared; stores reset")

    def drawer_summary(self) -> DrawerSummary:
        return DrawerSummary(
            lines=tuple(self.cart.enriched_lines()),
            totals=self.cart.totals(),
            is_loading=self.cart.is_loading,
            error=self.cart.error,
        )

    def errors(self) -> List[str]:
        return [e for e in (self.favorites.error, self.cart.error, self.orders.error) if e]
