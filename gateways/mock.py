# gateways/mock.py
"""
In-memory storefront backend.

Behaves like the favourites, cart, products and orders services behind the
API gateway closely enough to run the stores offline and in tests. Response
shapes are configurable because the real services do not agree on them.
"""
import asyncio
import itertools
import json
import os
from typing import Any, Dict, Iterable, List, Optional, Tuple

from shopcore.gateway import Gateway, GatewayError
from shopcore.logger import get_logger
from shopcore.session import Session

logger = get_logger(__name__)

MOCK_DATA_PATH = os.getenv("MOCK_DATA_PATH", "")

FAVOURITE_SHAPES = ("objects", "ids", "wrapped")
PRODUCT_SHAPES = ("list", "wrapped")
CART_REPLIES = ("ack", "line", "snapshot")
PUBLIC_OPERATIONS = ("get_products", "get_products_batch")


class MockGateway(Gateway):
    def __init__(
        self,
        session: Session,
        products: Iterable[Dict[str, Any]] = (),
        favourite_shape: str = "objects",
        product_shape: str = "list",
        cart_reply: str = "ack",
        latency: float = 0.0,
    ) -> None:
        if favourite_shape not in FAVOURITE_SHAPES:
            raise ValueError(f"favourite_shape must be one of {FAVOURITE_SHAPES}")
        if product_shape not in PRODUCT_SHAPES:
            raise ValueError(f"product_shape must be one of {PRODUCT_SHAPES}")
        if cart_reply not in CART_REPLIES:
            raise ValueError(f"cart_reply must be one of {CART_REPLIES}")

        self.session = session
        self.products: Dict[int, Dict[str, Any]] = {int(p["id"]): dict(p) for p in products}
        self.favourites: List[int] = []
        self.cart: List[Dict[str, Any]] = []
        self.orders: List[Dict[str, Any]] = []

        self.favourite_shape = favourite_shape
        self.product_shape = product_shape
        self.cart_reply = cart_reply
        self.latency = latency

        self.calls: List[Tuple[str, Any]] = []
        self._failures: Dict[str, List[GatewayError]] = {}
        self._line_ids = itertools.count(1)

    @classmethod
    def from_file(cls, session: Session, path: str = MOCK_DATA_PATH, **kwargs: Any) -> "MockGateway":
        """
        Seed from a JSON file:
          {"products": [...], "favourites": [ids], "cart": [{"sneaker_id", "quantity"}], "orders": [...]}
        """
        data: Dict[str, Any] = {}
        if path:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"Mock data at {path} must be a JSON object")

        gw = cls(session, products=data.get("products", []), **kwargs)
        gw.favourites = [int(i) for i in data.get("favourites", [])]
        for entry in data.get("cart", []):
            gw.seed_cart_line(int(entry["sneaker_id"]), int(entry.get("quantity", 1)))
        gw.orders = list(data.get("orders", []))
        logger.info(
            "Mock backend seeded with %d products, %d favourites, %d cart lines",
            len(gw.products), len(gw.favourites), len(gw.cart),
        )
        return gw

    # -- test helpers --

    def fail_next(self, operation: str, status: Optional[int] = 500, error: Optional[str] = None) -> None:
        """Make the next call of `operation` (a Gateway method name) raise."""
        payload = {"error": error} if error else None
        self._failures.setdefault(operation, []).append(
            GatewayError(f"{operation} failed with {status}", status=status, payload=payload)
        )

    def seed_cart_line(self, product_id: int, quantity: int = 1) -> Dict[str, Any]:
        line = {"id": next(self._line_ids), "sneaker_id": product_id, "quantity": quantity}
        self.cart.append(line)
        return line

    def call_count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    # -- plumbing --

    async def _enter(self, operation: str, args: Any = None) -> None:
        self.calls.append((operation, args))
        if self.latency:
            await asyncio.sleep(self.latency)
        else:
            await asyncio.sleep(0)
        if not self.session.is_authenticated() and operation not in PUBLIC_OPERATIONS:
            raise GatewayError("User not authenticated", status=401, payload={"error": "User not authenticated"})
        queued = self._failures.get(operation)
        if queued:
            raise queued.pop(0)

    def _line(self, line_id: Any) -> Dict[str, Any]:
        for line in self.cart:
            if str(line["id"]) == str(line_id):
                return line
        raise GatewayError("Cart item not found", status=404, payload={"error": "Cart item not found"})

    def _cart_reply(self, line: Optional[Dict[str, Any]], message: str) -> Any:
        if self.cart_reply == "snapshot":
            return {"items": [dict(l) for l in self.cart]}
        if self.cart_reply == "line" and line is not None:
            return dict(line)
        return {"message": message}

    # -- Favourites --

    async def get_favourites(self) -> Any:
        await self._enter("get_favourites")
        if self.favourite_shape == "ids":
            return list(self.favourites)
        entries = [{"id": n, "sneaker_id": pid} for n, pid in enumerate(self.favourites, 1)]
        if self.favourite_shape == "wrapped":
            return {"favourites": entries}
        return entries

    async def add_favourite(self, product_id: int) -> Any:
        await self._enter("add_favourite", product_id)
        if product_id not in self.favourites:
            self.favourites.append(product_id)
        return {"message": "Added to favourites"}

    async def remove_favourite(self, product_id: int) -> Any:
        await self._enter("remove_favourite", product_id)
        if product_id in self.favourites:
            self.favourites.remove(product_id)
        return {"message": "Removed from favourites"}

    # -- Products --

    async def get_products(self) -> Any:
        await self._enter("get_products")
        found = [dict(p) for p in self.products.values()]
        if self.product_shape == "wrapped":
            return {"sneakers": found}
        return found

    async def get_products_batch(self, ids: Iterable[int]) -> Any:
        ids = list(ids)
        await self._enter("get_products_batch", ids)
        found = [dict(self.products[i]) for i in ids if i in self.products]
        if self.product_shape == "wrapped":
            return {"sneakers": found}
        return found

    # -- Cart --

    async def get_cart(self) -> Any:
        await self._enter("get_cart")
        return {"items": [dict(l) for l in self.cart]}

    async def add_to_cart(self, product_id: int, quantity: int = 1) -> Any:
        await self._enter("add_to_cart", (product_id, quantity))
        for line in self.cart:
            if line["sneaker_id"] == product_id:
                line["quantity"] += quantity
                return self._cart_reply(line, "Item added to cart successfully")
        line = self.seed_cart_line(product_id, quantity)
        return self._cart_reply(line, "Item added to cart successfully")

    async def update_cart_line(self, line_id: Any, quantity: int) -> Any:
        await self._enter("update_cart_line", (line_id, quantity))
        if quantity < 1:
            raise GatewayError("invalid quantity", status=400, payload={"error": "quantity must be >= 1"})
        line = self._line(line_id)
        line["quantity"] = quantity
        return self._cart_reply(line, "Item quantity updated successfully")

    async def remove_cart_line(self, line_id: Any) -> Any:
        await self._enter("remove_cart_line", line_id)
        line = self._line(line_id)
        self.cart.remove(line)
        return self._cart_reply(None, "Item removed from cart successfully")

    # -- Orders --

    async def get_orders(self) -> Any:
        await self._enter("get_orders")
        return [dict(o) for o in self.orders]
