"""Shared fixtures: sessions, a seeded in-memory backend and a scripted gateway."""

import os

# pytest owns log capture; keep the library from adding its own stdout handler
os.environ.setdefault("LOG_TO_STDOUT", "false")

from typing import Any, Dict, List, Tuple

import pytest

from gateways.mock import MockGateway
from shopcore.catalog import CatalogIndex
from shopcore.gateway import Gateway, GatewayError
from shopcore.normalize import normalize_products
from shopcore.session import Session

PRODUCTS = [
    {"id": 7, "title": "Air Runner", "price": 1000, "image_key": "air-runner.jpg"},
    {"id": 9, "title": "Court Classic", "price": 500, "image_key": None},
    {"id": 11, "title": "Trail Max", "price": "1299.50", "image_key": "trail.jpg"},
]


class ScriptedGateway(Gateway):
    """
    Gateway whose replies are queued per method. A queued exception is
    raised instead of returned. Unscripted calls return `defaults[name]`.
    """

    def __init__(self, **defaults: Any) -> None:
        self.defaults: Dict[str, Any] = defaults
        self.script: Dict[str, List[Any]] = {}
        self.calls: List[Tuple[str, Any]] = []

    def queue(self, name: str, *replies: Any) -> None:
        self.script.setdefault(name, []).extend(replies)

    def count(self, name: str) -> int:
        return sum(1 for n, _ in self.calls if n == name)

    async def _reply(self, name: str, args: Any = None) -> Any:
        self.calls.append((name, args))
        queued = self.script.get(name)
        reply = queued.pop(0) if queued else self.defaults.get(name)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    async def get_favourites(self):
        return await self._reply("get_favourites")

    async def add_favourite(self, product_id):
        return await self._reply("add_favourite", product_id)

    async def remove_favourite(self, product_id):
        return await self._reply("remove_favourite", product_id)

    async def get_products(self):
        return await self._reply("get_products")

    async def get_products_batch(self, ids):
        return await self._reply("get_products_batch", list(ids))

    async def get_cart(self):
        return await self._reply("get_cart")

    async def add_to_cart(self, product_id, quantity=1):
        return await self._reply("add_to_cart", (product_id, quantity))

    async def update_cart_line(self, line_id, quantity):
        return await self._reply("update_cart_line", (line_id, quantity))

    async def remove_cart_line(self, line_id):
        return await self._reply("remove_cart_line", line_id)

    async def get_orders(self):
        return await self._reply("get_orders")


def http_error(status: int, error: str = "") -> GatewayError:
    return GatewayError(f"status {status}", status=status, payload={"error": error} if error else {})


@pytest.fixture
def session():
    return Session("test-token")


@pytest.fixture
def anonymous():
    return Session()


@pytest.fixture
def catalog():
    return CatalogIndex(normalize_products(PRODUCTS))


@pytest.fixture
def backend(session):
    return MockGateway(session, products=PRODUCTS)


@pytest.fixture
def scripted():
    return ScriptedGateway()
