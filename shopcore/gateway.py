# shopcore/gateway.py
from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

GENERIC_ERROR = "Something went wrong, please try again"


class GatewayError(Exception):
    """
    Transport or status failure reported by a Gateway.
    status is None when the request never got an HTTP response.
    """

    def __init__(self, message: str, *, status: Optional[int] = None, payload: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.payload = payload

    @property
    def backend_message(self) -> Optional[str]:
        """The backend's own `error` field, when the body carried one."""
        if isinstance(self.payload, dict):
            value = self.payload.get("error") or self.payload.get("message")
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    def user_message(self, fallback: str = GENERIC_ERROR) -> str:
        return self.backend_message or fallback


class Gateway(ABC):
    """
    Every backend client the stores talk to implements this interface.
    Methods return raw, not-yet-normalized payloads and raise GatewayError.
    """

    # -- Favourites --

    @abstractmethod
    async def get_favourites(self) -> Any:
        """GET /favourites/"""

    @abstractmethod
    async def add_favourite(self, product_id: int) -> Any:
        """POST /favourites/ {"sneaker_id": product_id}"""

    @abstractmethod
    async def remove_favourite(self, product_id: int) -> Any:
        """DELETE /favourites/{product_id}/"""

    # -- Products --

    @abstractmethod
    async def get_products(self) -> Any:
        """GET /products (the full catalog listing)"""

    @abstractmethod
    async def get_products_batch(self, ids: Iterable[int]) -> Any:
        """GET /products/batch?ids=1,2,3"""

    # -- Cart --

    @abstractmethod
    async def get_cart(self) -> Any:
        """GET /cart/"""

    @abstractmethod
    async def add_to_cart(self, product_id: int, quantity: int = 1) -> Any:
        """POST /cart/ {"sneaker_id": product_id, "quantity": quantity}"""

    @abstractmethod
    async def update_cart_line(self, line_id: Any, quantity: int) -> Any:
        """PUT /cart/{line_id} {"quantity": quantity}"""

    @abstractmethod
    async def remove_cart_line(self, line_id: Any) -> Any:
        """DELETE /cart/{line_id}"""

    # -- Orders --

    @abstractmethod
    async def get_orders(self) -> Any:
        """GET /orders/"""

    async def aclose(self) -> None:
        """Release transport resources. Default: nothing to release."""
