# shopcore/cart.py
"""
Cart store.

Lines are addressed by product id; the store resolves the cart service's
line ids itself. Each mutation is shown optimistically, sent to the cart
service and then either confirmed or rolled back to the last confirmed
snapshot. Mutations are not serialized against each other, so rapid clicks
on the same product resolve in favour of the last response to land.
"""
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from .catalog import CatalogIndex, join_cart_lines
from .gateway import Gateway, GatewayError
from .logger import get_logger
from .models import CartLine, CartTotals, LineId, ProductRecord
from .normalize import (
    LINE_ID_KEYS,
    coerce_id,
    is_cart_snapshot,
    normalize_cart,
    normalize_cart_line,
)
from .session import Session
from .totals import TAX_RATE, compute_totals

logger = get_logger(__name__)

CART_LOAD_FAILED = "Failed to load cart"
CART_UPDATE_FAILED = "Failed to update cart"


@dataclass(frozen=True)
class CartSnapshot:
    cart_items: Tuple[CartLine, ...]
    is_loading: bool
    error: Optional[str]
    totals: CartTotals


class CartStore:
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
        self.tax_rate = tax_rate

        self._lines: Tuple[CartLine, ...] = ()
        self._confirmed: Tuple[CartLine, ...] = ()
        # product id -> ids of further server lines folded into its visible line
        self._extra_lines: Dict[int, Tuple[LineId, ...]] = {}
        self._pending = 0
        self.error: Optional[str] = None

    # -- read surface --

    @property
    def cart_items(self) -> Tuple[CartLine, ...]:
        return self._lines

    @property
    def is_loading(self) -> bool:
        return self._pending > 0

    def line_for(self, product_id: Any) -> Optional[CartLine]:
        pid = coerce_id(product_id)
        for line in self._lines:
            if line.product_id == pid:
                return line
        return None

    def totals(self) -> CartTotals:
        return compute_totals(self._lines, self.tax_rate)

    def get_total_price(self) -> Decimal:
        return self.totals().subtotal

    def get_tax_amount(self) -> Decimal:
        return self.totals().tax

    def enriched_lines(self) -> List[Tuple[CartLine, ProductRecord]]:
        return join_cart_lines(self._lines, self.catalog)

    def snapshot(self) -> CartSnapshot:
        return CartSnapshot(
            cart_items=self._lines,
            is_loading=self.is_loading,
            error=self.error,
            totals=self.totals(),
        )

    # -- explicit transitions --

    def apply_snapshot(self, payload: Any) -> Tuple[CartLine, ...]:
        """
        Replace every line with a normalized cart payload. Duplicate lines for
        one product are merged so each product appears once; the next mutation
        of that product folds them into the first line on the server.
        """
        merged: Dict[int, CartLine] = {}
        extras: Dict[int, List[LineId]] = {}
        for raw in normalize_cart(payload):
            pid = raw["product_id"]
            if raw["quantity"] < 1:
                logger.debug("Ignoring cart line for %s with quantity %s", pid, raw["quantity"])
                continue
            existing = merged.get(pid)
            if existing is not None:
                logger.warning("Cart payload has more than one line for product %s; merging", pid)
                merged[pid] = replace(existing, quantity=existing.quantity + raw["quantity"])
                if raw["line_id"] is not None:
                    extras.setdefault(pid, []).append(raw["line_id"])
                continue
            merged[pid] = CartLine(
                line_id=raw["line_id"],
                product_id=pid,
                quantity=raw["quantity"],
                price_at_add=self._price_for(pid, raw["price"]),
            )

        lines = tuple(merged.values())
        self._lines = self._confirmed = lines
        self._extra_lines = {pid: tuple(ids) for pid, ids in extras.items()}
        return lines

    def reset(self) -> None:
        self._lines = self._confirmed = ()
        self._extra_lines = {}
        self.error = None

    def _price_for(self, product_id: int, reported: Optional[Decimal] = None) -> Decimal:
        if reported is not None:
            return reported
        for line in self._lines:
            if line.product_id == product_id:
                return line.price_at_add
        price = self.catalog.price_of(product_id)
        if price is None:
            logger.warning("No catalog price for product %s; pricing the line at 0", product_id)
            return Decimal("0")
        return price

    def _line_from_report(self, reported: Dict[str, Any], optimistic: Optional[CartLine]) -> Optional[CartLine]:
        if reported["quantity"] < 1:
            return None
        line_id = reported["line_id"]
        if line_id is None and optimistic is not None:
            line_id = optimistic.line_id
        return CartLine(
            line_id=line_id,
            product_id=reported["product_id"],
            quantity=reported["quantity"],
            price_at_add=self._price_for(reported["product_id"], reported["price"]),
        )

    # -- remote operations --

    async def refresh(self) -> Tuple[CartLine, ...]:
        if not self.session.is_authenticated():
            self.reset()
            return self._lines

        self._pending += 1
        try:
            payload = await self.gateway.get_cart()
            logger.debug("Raw cart response: %r", payload)
            self.apply_snapshot(payload)
            self.error = None
            logger.info("Loaded cart with %d lines", len(self._lines))
        except GatewayError as e:
            logger.error("Error fetching cart (status=%s): %s", e.status, e)
            self.error = e.user_message(CART_LOAD_FAILED)
        finally:
            self._pending -= 1
        return self._lines

    async def increase_quantity(self, product_id: Any) -> bool:
        pid = self._gate(product_id, "increase")
        if pid is None:
            return False

        line = self.line_for(pid)
        if line is None:
            updated = CartLine(line_id=None, product_id=pid, quantity=1, price_at_add=self._price_for(pid))
            return await self._commit(pid, updated, lambda: self.gateway.add_to_cart(pid, 1))

        updated = replace(line, quantity=line.quantity + 1)
        if line.line_id is None:
            # add still unconfirmed; the cart service folds repeated adds into one line
            return await self._commit(pid, updated, lambda: self.gateway.add_to_cart(pid, 1))
        return await self._commit(
            pid, updated, lambda: self.gateway.update_cart_line(line.line_id, updated.quantity)
        )

    async def decrease_quantity(self, product_id: Any) -> bool:
        pid = self._gate(product_id, "decrease")
        if pid is None:
            return False

        line = self.line_for(pid)
        if line is None:
            logger.debug("Decrease for product %s ignored: not in cart", pid)
            return False
        if line.quantity <= 1:
            return await self.remove_from_cart(pid)

        updated = replace(line, quantity=line.quantity - 1)
        if line.line_id is None:
            await self.refresh()
            line = self.line_for(pid)
            if line is None or line.line_id is None:
                return False
            if line.quantity <= 1:
                return await self.remove_from_cart(pid)
            updated = replace(line, quantity=line.quantity - 1)
        return await self._commit(
            pid, updated, lambda: self.gateway.update_cart_line(line.line_id, updated.quantity)
        )

    async def remove_from_cart(self, product_id: Any) -> bool:
        pid = self._gate(product_id, "remove")
        if pid is None:
            return False

        line = self.line_for(pid)
        if line is not None and line.line_id is None:
            await self.refresh()
            line = self.line_for(pid)
        if line is None or line.line_id is None:
            logger.debug("Remove for product %s ignored: not in cart", pid)
            return False

        line_id = line.line_id
        return await self._commit(pid, None, lambda: self.gateway.remove_cart_line(line_id))

    def _gate(self, product_id: Any, action: str) -> Optional[int]:
        if not self.session.is_authenticated():
            logger.info("Cart %s for %r refused: not logged in", action, product_id)
            return None
        pid = coerce_id(product_id)
        if pid is None:
            logger.warning("Cart %s called with a non-numeric product id: %r", action, product_id)
        return pid

    async def _commit(
        self,
        product_id: int,
        updated: Optional[CartLine],
        call: Callable[[], Awaitable[Any]],
    ) -> bool:
        """
        Show updated (None removes the line), run call and settle the result.
        On failure the visible lines go back to the last confirmed snapshot.
        """
        self._lines = _with_line(self._lines, product_id, updated)
        folding = bool(self._extra_lines.get(product_id))
        self._pending += 1
        try:
            response = await call()
            if folding:
                response = await self._fold_extra_lines(product_id, response)
        except GatewayError as e:
            logger.error(
                "Cart update for product %s failed (status=%s): %s; reverting", product_id, e.status, e
            )
            self._lines = self._confirmed
            if folding:
                # the first line may already be changed on the server
                await self.refresh()
            self.error = e.user_message(CART_UPDATE_FAILED)
            return False
        finally:
            self._pending -= 1

        self.error = None
        if is_cart_snapshot(response):
            self.apply_snapshot(response)
            return True

        reported = normalize_cart_line(response)
        if reported is not None and reported["product_id"] == product_id:
            updated = self._line_from_report(reported, updated)
        elif updated is not None and updated.line_id is None:
            line_id = _ack_line_id(response)
            if line_id is not None:
                updated = replace(updated, line_id=line_id)

        self._lines = _with_line(self._lines, product_id, updated)
        self._confirmed = _with_line(self._confirmed, product_id, updated)

        if updated is not None and updated.line_id is None:
            logger.debug("Cart service did not report a line id for product %s; reloading cart", product_id)
            await self.refresh()
        return True

    async def _fold_extra_lines(self, product_id: int, response: Any) -> Any:
        """Delete the duplicate server lines of product_id. Returns the last reply."""
        for line_id in self._extra_lines.get(product_id, ()):
            logger.info("Folding duplicate cart line %s into product %s", line_id, product_id)
            response = await self.gateway.remove_cart_line(line_id)
        self._extra_lines.pop(product_id, None)
        return response


def _with_line(
    lines: Tuple[CartLine, ...], product_id: int, updated: Optional[CartLine]
) -> Tuple[CartLine, ...]:
    """New tuple with product_id's line replaced, appended or (updated=None) dropped."""
    out: List[CartLine] = []
    placed = False
    for line in lines:
        if line.product_id != product_id:
            out.append(line)
        elif updated is not None and not placed:
            out.append(updated)
            placed = True
    if updated is not None and not placed:
        out.append(updated)
    return tuple(out)


def _ack_line_id(response: Any) -> Any:
    if not isinstance(response, dict):
        return None
    for key in LINE_ID_KEYS:
        value = response.get(key)
        if value not in (None, ""):
            pid = coerce_id(value)
            return pid if pid is not None else str(value)
    return None
