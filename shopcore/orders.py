# shopcore/orders.py
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .gateway import Gateway, GatewayError
from .logger import get_logger
from .models import Order, OrderItem, ProductRecord
from .normalize import normalize_orders, normalize_products
from .session import Session

logger = get_logger(__name__)

ORDERS_LOAD_FAILED = "Failed to load orders"

STATUS_LABELS = {
    "PENDING_PAYMENT": "Awaiting payment",
    "PAID": "Paid",
    "PAYMENT_FAILED": "Payment failed",
    "CANCELLED": "Cancelled",
}


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status, status)


@dataclass(frozen=True)
class EnrichedOrderItem:
    item: OrderItem
    title: str
    product: Optional[ProductRecord]


@dataclass(frozen=True)
class EnrichedOrder:
    order: Order
    label: str
    items: Tuple[EnrichedOrderItem, ...]


class OrdersStore:
    """Read-only view of the user's orders joined with product records."""

    def __init__(self, gateway: Gateway, session: Session) -> None:
        self.gateway = gateway
        self.session = session
        self.orders: Tuple[Order, ...] = ()
        self.products: Dict[int, ProductRecord] = {}
        self.loading = False
        self.error: Optional[str] = None

    def reset(self) -> None:
        self.orders = ()
        self.products = {}
        self.error = None

    async def refresh(self) -> Tuple[Order, ...]:
        if not self.session.is_authenticated():
            self.reset()
            return self.orders

        self.loading = True
        try:
            orders = tuple(normalize_orders(await self.gateway.get_orders()))

            product_ids: List[int] = []
            for order in orders:
                for item in order.items:
                    if item.product_id not in product_ids:
                        product_ids.append(item.product_id)

            products: Dict[int, ProductRecord] = {}
            if product_ids:
                payload = await self.gateway.get_products_batch(product_ids)
                products = {p.id: p for p in normalize_products(payload)}

            self.orders, self.products = orders, products
            self.error = None
            logger.info("Loaded %d orders (%d products)", len(orders), len(products))
        except GatewayError as e:
            logger.error("Error fetching orders (status=%s): %s", e.status, e)
            self.error = e.user_message(ORDERS_LOAD_FAILED)
        finally:
            self.loading = False
        return self.orders

    def enriched_orders(self) -> List[EnrichedOrder]:
        out: List[EnrichedOrder] = []
        for order in self.orders:
            items = []
            for item in order.items:
                product = self.products.get(item.product_id)
                title = product.title if product is not None else f"Item #{item.product_id}"
                items.append(EnrichedOrderItem(item=item, title=title, product=product))
            out.append(EnrichedOrder(order=order, label=status_label(order.status), items=tuple(items)))
        return out

    def payable_orders(self) -> List[Order]:
        return [o for o in self.orders if o.status == "PENDING_PAYMENT" and o.payment_url]
