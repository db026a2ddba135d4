# shopcore/normalize.py
"""
Payload normalization for the storefront backend.

The favourites, products, cart and orders endpoints do not agree on a
response shape: the same collection may come back as a bare list of ids, a
list of objects keyed differently per service, or an object wrapping the list
under a named field. Everything here turns those shapes into one canonical
representation and never raises; unrecognized input yields an empty result
and a WARNING log line.
"""
import math
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from .logger import get_logger
from .models import Order, OrderItem, ProductRecord

logger = get_logger(__name__)

# First match wins
PRODUCT_ID_KEYS = ("sneaker_id", "sneakerId", "product_id", "productId", "id")
LINE_ID_KEYS = ("id", "line_id", "lineId", "item_id", "itemId")
LINE_PRODUCT_KEYS = ("sneaker_id", "sneakerId", "product_id", "productId")
PRICE_KEYS = ("price_at_add", "priceAtAdd", "price")
IMAGE_KEYS = ("image_key", "imageKey", "image")

FAVORITES_WRAPPERS = ("favourites", "favorites", "items", "data")
PRODUCTS_WRAPPERS = ("sneakers", "products", "items", "data")
CART_WRAPPERS = ("items", "cart", "data")
ORDERS_WRAPPERS = ("orders", "items", "data")


def coerce_id(value: Any) -> Optional[int]:
    """
    Map an identifier from the UI or an API payload onto the int form used
    by every store. Returns None when the value is not an identifier.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def coerce_price(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not price.is_finite() or price < 0:
        return None
    return price


def _first_present(data: Dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _unwrap(payload: Any, wrappers: Iterable[str], kind: str) -> Optional[list]:
    """
    Return the list carried by payload, or None when the shape is not one we
    recognize. Empty/absent payloads map to an empty list.
    """
    if payload is None or payload == "" or payload == {}:
        return []
    if isinstance(payload, (list, tuple)):
        return list(payload)
    if isinstance(payload, dict):
        for key in wrappers:
            inner = payload.get(key)
            if isinstance(inner, (list, tuple)):
                return list(inner)
            if key in payload and inner is None:
                return []
    logger.warning("Unrecognized %s payload shape (%s): %r", kind, type(payload).__name__, payload)
    return None


def normalize_favorite_ids(payload: Any) -> List[int]:
    """
    Canonical ordered list of unique favourite product ids.

    Accepted:
      - None / empty
      - [7, 9] or ["7", "9"]
      - [{"sneaker_id": 7}, {"id": 9}]
      - {"favourites": [...]} (and the other FAVORITES_WRAPPERS)
    """
    entries = _unwrap(payload, FAVORITES_WRAPPERS, "favourites")
    if entries is None:
        return []

    ids: List[int] = []
    seen = set()
    for entry in entries:
        if isinstance(entry, dict):
            pid = coerce_id(_first_present(entry, PRODUCT_ID_KEYS))
        else:
            pid = coerce_id(entry)
        if pid is None:
            logger.warning("Skipping favourite entry without a usable id: %r", entry)
            continue
        if pid in seen:
            continue
        seen.add(pid)
        ids.append(pid)
    return ids


def normalize_product(entry: Any) -> Optional[ProductRecord]:
    if not isinstance(entry, dict):
        return None
    pid = coerce_id(entry.get("id"))
    if pid is None:
        pid = coerce_id(_first_present(entry, PRODUCT_ID_KEYS))
    if pid is None:
        return None

    raw_price = entry.get("price")
    price = coerce_price(raw_price)
    if price is None:
        if raw_price is not None:
            logger.debug("Unusable price %r for product %s; using 0", raw_price, pid)
        price = Decimal("0")

    image = _first_present(entry, IMAGE_KEYS)
    return ProductRecord(
        id=pid,
        title=str(entry.get("title") or entry.get("name") or "").strip(),
        price=price,
        image_key=str(image) if image else None,
        description=str(entry.get("description") or ""),
    )


def normalize_products(payload: Any) -> List[ProductRecord]:
    """Canonical list of ProductRecords from a batch products payload."""
    entries = _unwrap(payload, PRODUCTS_WRAPPERS, "products")
    if entries is None:
        return []

    out: List[ProductRecord] = []
    for entry in entries:
        record = normalize_product(entry)
        if record is None:
            logger.warning("Skipping malformed product entry: %r", entry)
            continue
        out.append(record)
    return out


def normalize_cart_line(entry: Any) -> Optional[Dict[str, Any]]:
    """
    Loose cart line: {"line_id", "product_id", "quantity", "price"}.
    price is None when the cart service did not send one; the store fills it
    from the catalog.
    """
    if not isinstance(entry, dict):
        return None
    product_id = coerce_id(_first_present(entry, LINE_PRODUCT_KEYS))
    if product_id is None:
        return None

    raw_line_id = _first_present(entry, LINE_ID_KEYS)
    line_id = coerce_id(raw_line_id)
    if line_id is None and raw_line_id not in (None, ""):
        line_id = str(raw_line_id)

    quantity = coerce_id(entry.get("quantity"))
    if quantity is None:
        quantity = 1

    return {
        "line_id": line_id,
        "product_id": product_id,
        "quantity": quantity,
        "price": coerce_price(_first_present(entry, PRICE_KEYS)),
    }


def is_cart_snapshot(payload: Any) -> bool:
    """True when a mutation response carries the whole cart rather than one line."""
    if isinstance(payload, list):
        return True
    if isinstance(payload, dict):
        return any(isinstance(payload.get(k), list) for k in CART_WRAPPERS)
    return False


def normalize_cart(payload: Any) -> List[Dict[str, Any]]:
    entries = _unwrap(payload, CART_WRAPPERS, "cart")
    if entries is None:
        return []

    lines: List[Dict[str, Any]] = []
    for entry in entries:
        line = normalize_cart_line(entry)
        if line is None:
            logger.warning("Skipping malformed cart entry: %r", entry)
            continue
        lines.append(line)
    return lines


def normalize_orders(payload: Any) -> List[Order]:
    entries = _unwrap(payload, ORDERS_WRAPPERS, "orders")
    if entries is None:
        return []

    orders: List[Order] = []
    for entry in entries:
        if not isinstance(entry, dict) or entry.get("id") in (None, ""):
            logger.warning("Skipping malformed order entry: %r", entry)
            continue

        items = []
        for raw in entry.get("items") or []:
            if not isinstance(raw, dict):
                continue
            pid = coerce_id(_first_present(raw, LINE_PRODUCT_KEYS))
            if pid is None:
                continue
            items.append(
                OrderItem(
                    product_id=pid,
                    quantity=coerce_id(raw.get("quantity")) or 1,
                    price_at_purchase=coerce_price(
                        raw.get("price_at_purchase") or raw.get("price")
                    ) or Decimal("0"),
                )
            )

        order_id = coerce_id(entry["id"])
        orders.append(
            Order(
                id=order_id if order_id is not None else str(entry["id"]),
                status=str(entry.get("status") or "").upper(),
                items=tuple(items),
                total_amount=coerce_price(entry.get("total_amount")) or Decimal("0"),
                created_at=coerce_id(entry.get("created_at")),
                payment_url=str(entry.get("payment_url") or ""),
            )
        )
    return orders
