# gateways/rest.py
import asyncio
import os
from typing import Any, Dict, Iterable, Optional

import requests
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential_jitter

from shopcore.gateway import Gateway, GatewayError
from shopcore.logger import get_logger
from shopcore.session import Session

logger = get_logger(__name__)

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8080").rstrip("/")
API_PREFIX = os.getenv("API_PREFIX", "/api/v1")
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "15"))
HTTP_MAX_ATTEMPTS = int(os.getenv("HTTP_MAX_ATTEMPTS", "3"))
HTTP_BACKOFF = float(os.getenv("HTTP_BACKOFF", "0.5"))
USER_AGENT = os.getenv("STOREFRONT_USER_AGENT", "storefront-sync/0.1")


def _is_retryable(exc: BaseException) -> bool:
    """Transport failures and 5xx are worth another try; 4xx never are."""
    if not isinstance(exc, GatewayError):
        return False
    return exc.status is None or exc.status >= 500


def _decode(resp: requests.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        logger.debug("Non-JSON body from %s: %.200r", resp.url, resp.text)
        return resp.text


class HttpGateway(Gateway):
    """
    Storefront API client over requests.

    Calls run in a worker thread so the event loop only waits on the network.
    Only GETs are retried; the cart and favourites mutations are not
    idempotent.
    """

    def __init__(
        self,
        session: Session,
        base_url: Optional[str] = None,
        prefix: str = API_PREFIX,
        timeout: float = HTTP_TIMEOUT,
        max_attempts: int = HTTP_MAX_ATTEMPTS,
        backoff: float = HTTP_BACKOFF,
        http: Optional[requests.Session] = None,
    ) -> None:
        self.session = session
        self.base_url = (base_url or API_BASE_URL).rstrip("/") + prefix.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()
        self.http.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})

        self._get = retry(
            wait=wait_exponential_jitter(initial=backoff, max=8, jitter=backoff),
            stop=stop_after_attempt(max(1, max_attempts)),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )(self._send_get)

    def _send(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        headers: Dict[str, str] = self.session.auth_headers()
        logger.debug("%s %s", method, url)
        try:
            resp = self.http.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise GatewayError(f"{method} {path} failed: {e}") from e

        payload = _decode(resp)
        if resp.status_code >= 400:
            logger.warning("%s %s returned status %s", method, url, resp.status_code)
            raise GatewayError(
                f"{method} {path} returned {resp.status_code}",
                status=resp.status_code,
                payload=payload,
            )
        return payload

    def _send_get(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        return self._send("GET", path, params=params)

    async def _read(self, path: str, params: Optional[Dict[str, str]] = None) -> Any:
        return await asyncio.to_thread(self._get, path, params)

    async def _write(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        if body is None:
            return await asyncio.to_thread(self._send, method, path)
        return await asyncio.to_thread(self._send, method, path, json=body)

    # -- Favourites --

    async def get_favourites(self) -> Any:
        return await self._read("/favourites/")

    async def add_favourite(self, product_id: int) -> Any:
        return await self._write("POST", "/favourites/", {"sneaker_id": product_id})

    async def remove_favourite(self, product_id: int) -> Any:
        return await self._write("DELETE", f"/favourites/{product_id}/")

    # -- Products --

    async def get_products(self) -> Any:
        return await self._read("/products")

    async def get_products_batch(self, ids: Iterable[int]) -> Any:
        return await self._read("/products/batch", {"ids": ",".join(str(i) for i in ids)})

    # -- Cart --

    async def get_cart(self) -> Any:
        return await self._read("/cart/")

    async def add_to_cart(self, product_id: int, quantity: int = 1) -> Any:
        return await self._write("POST", "/cart/", {"sneaker_id": product_id, "quantity": quantity})

    async def update_cart_line(self, line_id: Any, quantity: int) -> Any:
        return await self._write("PUT", f"/cart/{line_id}", {"quantity": quantity})

    async def remove_cart_line(self, line_id: Any) -> Any:
        return await self._write("DELETE", f"/cart/{line_id}")

    # -- Orders --

    async def get_orders(self) -> Any:
        return await self._read("/orders/")

    async def aclose(self) -> None:
        self.http.close()
