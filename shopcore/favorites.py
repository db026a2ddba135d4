# shopcore/favorites.py
"""
Favourites store.

Holds the favourite product ids reconciled with the favourites service and
the product records for those ids. Toggling never edits the id set locally:
the store issues the add/remove call and then re-reads the remote set.
"""
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from .catalog import join_records
from .gateway import Gateway, GatewayError
from .logger import get_logger
from .models import ProductRecord
from .normalize import coerce_id, normalize_favorite_ids, normalize_products
from .session import Session

logger = get_logger(__name__)

FAVORITES_UNAVAILABLE = "Favorites service not found"
FAVORITES_LOAD_FAILED = "Failed to load favorites"
DETAILS_LOAD_FAILED = "Failed to load product details"
TOGGLE_FAILED = "Failed to update favorite"


class ToggleOutcome(str, Enum):
    ADDED = "ADDED"
    REMOVED = "REMOVED"
    LOGIN_REQUIRED = "LOGIN_REQUIRED"
    INVALID_ID = "INVALID_ID"
    FAILED = "FAILED"


@dataclass(frozen=True)
class FavoritesSnapshot:
    favorite_ids: Tuple[int, ...]
    favorites: Tuple[ProductRecord, ...]
    loading: bool
    error: Optional[str]

    @property
    def favourites(self) -> Tuple[int, ...]:
        return self.favorite_ids


class FavoritesStore:
    def __init__(self, gateway: Gateway, session: Session) -> None:
        self.gateway = gateway
        self.session = session

        self._ids: Tuple[int, ...] = ()
        self._id_set: FrozenSet[int] = frozenset()
        self._favorites: Tuple[ProductRecord, ...] = ()

        self._ids_pending = 0
        self._details_pending = 0
        self.error: Optional[str] = None

        self._toggle_locks: Dict[int, asyncio.Lock] = {}

    # -- read surface --

    @property
    def favorite_ids(self) -> Tuple[int, ...]:
        return self._ids

    @property
    def favourites(self) -> Tuple[int, ...]:
        # Older consumers read the id set under this name
        return self._ids

    @property
    def favorites(self) -> Tuple[ProductRecord, ...]:
        return self._favorites

    @property
    def ids_loading(self) -> bool:
        return self._ids_pending > 0

    @property
    def details_loading(self) -> bool:
        return self._details_pending > 0

    @property
    def loading(self) -> bool:
        return self.ids_loading or self.details_loading

    def snapshot(self) -> FavoritesSnapshot:
        return FavoritesSnapshot(
            favorite_ids=self._ids,
            favorites=self._favorites,
            loading=self.loading,
            error=self.error,
        )

    def is_favorite(self, product_id: Any) -> bool:
        pid = coerce_id(product_id)
        return pid is not None and pid in self._id_set

    # -- explicit transitions --

    def apply_ids(self, payload: Any) -> Tuple[int, ...]:
        """Replace the id set with a normalized favourites payload."""
        ids = tuple(normalize_favorite_ids(payload))
        self._set_ids(ids)
        return ids

    def apply_details(self, payload: Any, ids: Optional[Iterable[int]] = None) -> Tuple[ProductRecord, ...]:
        """
        Replace the enriched list with records from a batch products payload,
        ordered like ids. Records for ids outside the set are ignored.
        """
        wanted = self._ids if ids is None else ids
        self._favorites = tuple(join_records(wanted, normalize_products(payload)))
        return self._favorites

    def reset(self) -> None:
        self._set_ids(())
        self._favorites = ()
        self.error = None
        self._toggle_locks.clear()

    def _set_ids(self, ids: Tuple[int, ...]) -> None:
        self._ids, self._id_set = ids, frozenset(ids)

    # -- remote operations --

    async def refresh_ids(self) -> Tuple[int, ...]:
        if not self.session.is_authenticated():
            logger.info("User not authenticated, favourites unavailable")
            self._set_ids(())
            self._favorites = ()
            return self._ids

        self._ids_pending += 1
        try:
            payload = await self.gateway.get_favourites()
            logger.debug("Raw favourites response: %r", payload)
            ids = self.apply_ids(payload)
            self.error = None
            logger.info("Loaded %d favourite ids", len(ids))
        except GatewayError as e:
            logger.error("Error fetching favourite ids (status=%s): %s", e.status, e)
            if e.status == 404:
                self.error = FAVORITES_UNAVAILABLE
            else:
                self.error = e.user_message(FAVORITES_LOAD_FAILED)
        finally:
            self._ids_pending -= 1
        return self._ids

    async def refresh_details(self, ids: Optional[Iterable[Any]] = None) -> Tuple[ProductRecord, ...]:
        wanted: List[int] = []
        for raw in self._ids if ids is None else ids:
            pid = coerce_id(raw)
            if pid is not None and pid not in wanted:
                wanted.append(pid)

        if not wanted:
            self._favorites = ()
            return self._favorites

        self._details_pending += 1
        try:
            logger.info("Fetching details for favourite ids: %s", wanted)
            payload = await self.gateway.get_products_batch(wanted)
            records = self.apply_details(payload, wanted)
            self.error = None
            if len(records) < len(wanted):
                logger.debug(
                    "Catalog returned %d of %d favourite products", len(records), len(wanted)
                )
        except GatewayError as e:
            logger.error("Error fetching favourite details (status=%s): %s", e.status, e)
            self._favorites = ()
            self.error = e.user_message(DETAILS_LOAD_FAILED)
        finally:
            self._details_pending -= 1
        return self._favorites

    async def resync(self) -> Tuple[ProductRecord, ...]:
        await self.refresh_ids()
        return await self.refresh_details()

    async def toggle_favorite(self, product_id: Any) -> ToggleOutcome:
        if not self.session.is_authenticated():
            logger.info("Toggle favourite for %r refused: not logged in", product_id)
            return ToggleOutcome.LOGIN_REQUIRED

        pid = coerce_id(product_id)
        if pid is None:
            logger.warning("Toggle favourite called with a non-numeric id: %r", product_id)
            return ToggleOutcome.INVALID_ID

        # Same-id toggles run one at a time so each sees the resynced set
        lock = self._toggle_locks.setdefault(pid, asyncio.Lock())
        async with lock:
            return await self._toggle(pid)

    async def _toggle(self, pid: int) -> ToggleOutcome:
        before = self._ids
        self._ids_pending += 1
        try:
            if self.is_favorite(pid):
                logger.info("Removing from favourites: %d", pid)
                await self.gateway.remove_favourite(pid)
                outcome = ToggleOutcome.REMOVED
            else:
                logger.info("Adding to favourites: %d", pid)
                await self.gateway.add_favourite(pid)
                outcome = ToggleOutcome.ADDED
        except GatewayError as e:
            logger.error("Error toggling favourite %d (status=%s): %s", pid, e.status, e)
            self.error = e.user_message(TOGGLE_FAILED)
            return ToggleOutcome.FAILED
        finally:
            self._ids_pending -= 1

        await self.refresh_ids()
        if self._ids != before:
            await self.refresh_details()
        return outcome
