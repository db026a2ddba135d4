import json
from typing import Any, Dict, List

import pytest
import requests

from gateways.rest import HttpGateway
from shopcore.favorites import FAVORITES_UNAVAILABLE, FavoritesStore
from shopcore.gateway import GatewayError
from shopcore.session import Session


def _response(status: int, body: Any = None, raw: bytes = b"") -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp._content = json.dumps(body).encode() if body is not None else raw
    resp.url = "http://shop.test"
    return resp


class FakeHTTP:
    """Stands in for requests.Session: records requests and replays canned responses."""

    def __init__(self, *replies: Any) -> None:
        self.replies: List[Any] = list(replies)
        self.requests: List[Dict[str, Any]] = []
        self.headers: Dict[str, str] = {}
        self.closed = False

    def request(self, method, url, **kwargs):
        self.requests.append({"method": method, "url": url, **kwargs})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def close(self):
        self.closed = True


def _gateway(http: FakeHTTP, token: str = "tok", **kwargs: Any) -> HttpGateway:
    return HttpGateway(Session(token), base_url="http://shop.test/", http=http, backoff=0, **kwargs)


@pytest.mark.asyncio
async def test_get_favourites_sends_bearer_token():
    http = FakeHTTP(_response(200, [{"sneaker_id": 7}]))
    gw = _gateway(http)

    assert await gw.get_favourites() == [{"sneaker_id": 7}]

    sent = http.requests[0]
    assert sent["method"] == "GET"
    assert sent["url"] == "http://shop.test/api/v1/favourites/"
    assert sent["headers"] == {"Authorization": "Bearer tok"}
    assert http.headers["Accept"] == "application/json"


@pytest.mark.asyncio
async def test_mutation_paths_and_bodies():
    http = FakeHTTP(*[_response(200, {"message": "ok"}) for _ in range(5)])
    gw = _gateway(http)

    await gw.add_favourite(7)
    await gw.remove_favourite(7)
    await gw.add_to_cart(9, 1)
    await gw.update_cart_line("a-1", 3)
    await gw.remove_cart_line("a-1")

    assert [(r["method"], r["url"].replace("http://shop.test/api/v1", ""), r.get("json")) for r in http.requests] == [
        ("POST", "/favourites/", {"sneaker_id": 7}),
        ("DELETE", "/favourites/7/", None),
        ("POST", "/cart/", {"sneaker_id": 9, "quantity": 1}),
        ("PUT", "/cart/a-1", {"quantity": 3}),
        ("DELETE", "/cart/a-1", None),
    ]


@pytest.mark.asyncio
async def test_batch_ids_are_comma_separated():
    http = FakeHTTP(_response(200, {"sneakers": []}))
    gw = _gateway(http)

    await gw.get_products_batch([7, 9])

    assert http.requests[0]["params"] == {"ids": "7,9"}


@pytest.mark.asyncio
async def test_client_errors_are_not_retried():
    http = FakeHTTP(_response(404, {"error": "not found"}))
    gw = _gateway(http, max_attempts=3)

    with pytest.raises(GatewayError) as exc:
        await gw.get_favourites()

    assert exc.value.status == 404
    assert exc.value.backend_message == "not found"
    assert len(http.requests) == 1


@pytest.mark.asyncio
async def test_reads_retry_on_server_errors():
    http = FakeHTTP(_response(503), requests.ConnectionError("reset"), _response(200, {"items": []}))
    gw = _gateway(http, max_attempts=3)

    assert await gw.get_cart() == {"items": []}
    assert len(http.requests) == 3


@pytest.mark.asyncio
async def test_writes_are_never_retried():
    http = FakeHTTP(_response(500, {"error": "Failed to add item to cart"}), _response(200, {}))
    gw = _gateway(http, max_attempts=3)

    with pytest.raises(GatewayError) as exc:
        await gw.add_to_cart(7)

    assert exc.value.user_message() == "Failed to add item to cart"
    assert len(http.requests) == 1


@pytest.mark.asyncio
async def test_transport_failure_has_no_status():
    http = FakeHTTP(requests.Timeout("slow"))
    gw = _gateway(http)

    with pytest.raises(GatewayError) as exc:
        await gw.remove_favourite(7)

    assert exc.value.status is None


@pytest.mark.asyncio
async def test_empty_and_non_json_bodies():
    http = FakeHTTP(_response(200), _response(200, raw=b"<html>oops</html>"))
    gw = _gateway(http)

    assert await gw.get_favourites() is None
    assert await gw.get_orders() == "<html>oops</html>"


@pytest.mark.asyncio
async def test_store_over_http_reports_missing_service():
    http = FakeHTTP(_response(404, {"error": "page not found"}))
    gw = _gateway(http)
    store = FavoritesStore(gw, gw.session)

    await store.refresh_ids()

    assert store.error == FAVORITES_UNAVAILABLE


@pytest.mark.asyncio
async def test_aclose_closes_session():
    http = FakeHTTP()
    gw = _gateway(http)

    await gw.aclose()

    assert http.closed
