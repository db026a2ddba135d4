# shopcore/models.py
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Tuple, Union

LineId = Union[int, str]


@dataclass(frozen=True)
class ProductRecord:
    """
    Catalog entry as the storefront renders it.
    Prices are kept as Decimal in the shop currency (no cents conversion).
    """
    id: int
    title: str
    price: Decimal = Decimal("0")
    image_key: Optional[str] = None
    description: str = ""


@dataclass(frozen=True)
class CartLine:
    """
    One row of the cart. line_id is assigned by the cart service and is None
    only while an add has not been confirmed with an id yet.
    """
    line_id: Optional[LineId]
    product_id: int
    quantity: int
    price_at_add: Decimal = Decimal("0")


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    tax: Decimal


@dataclass(frozen=True)
class OrderItem:
    product_id: int
    quantity: int
    price_at_purchase: Decimal = Decimal("0")


@dataclass(frozen=True)
class Order:
    id: LineId
    status: str
    items: Tuple[OrderItem, ...] = field(default_factory=tuple)
    total_amount: Decimal = Decimal("0")
    created_at: Optional[int] = None
    payment_url: str = ""
