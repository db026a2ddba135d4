# shopcore/catalog.py
import os
from decimal import Decimal
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from .logger import get_logger
from .models import CartLine, ProductRecord
from .normalize import coerce_id, normalize_products

logger = get_logger(__name__)

IMAGE_BASE_URL = os.getenv("IMAGE_BASE_URL", "http://localhost:9000/sneakers").rstrip("/")
PLACEHOLDER_IMAGE = os.getenv("PLACEHOLDER_IMAGE", "/img/placeholder.svg")


class CatalogIndex:
    """
    Read-only id -> ProductRecord mapping.

    The catalog is loaded by whoever owns the product listing; stores only
    query it. Loading a new catalog means building a new index.
    """

    def __init__(self, records: Iterable[ProductRecord] = ()):
        index: Dict[int, ProductRecord] = {}
        for record in records:
            if record.id in index:
                logger.debug("Duplicate catalog record for id %s; keeping the last one", record.id)
            index[record.id] = record
        self._records = index

    @classmethod
    def from_payload(cls, payload: Any) -> "CatalogIndex":
        return cls(normalize_products(payload))

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, product_id: Any) -> bool:
        return coerce_id(product_id) in self._records

    def __iter__(self) -> Iterator[ProductRecord]:
        return iter(self._records.values())

    def get(self, product_id: Any) -> Optional[ProductRecord]:
        pid = coerce_id(product_id)
        if pid is None:
            return None
        return self._records.get(pid)

    def price_of(self, product_id: Any) -> Optional[Decimal]:
        record = self.get(product_id)
        return record.price if record is not None else None


def join_records(ids: Iterable[Any], records: Iterable[ProductRecord]) -> List[ProductRecord]:
    """
    Records for ids, in the order of ids. Ids with no matching record are
    dropped silently (a catalog gap is not an error).
    """
    by_id = {r.id: r for r in records}
    out: List[ProductRecord] = []
    for raw in ids:
        record = by_id.get(coerce_id(raw))
        if record is not None:
            out.append(record)
    return out


def join_cart_lines(
    lines: Iterable[CartLine], catalog: CatalogIndex
) -> List[Tuple[CartLine, ProductRecord]]:
    """Pair each cart line with its catalog record; lines without one are not rendered."""
    out: List[Tuple[CartLine, ProductRecord]] = []
    for line in lines:
        record = catalog.get(line.product_id)
        if record is None:
            logger.debug("Cart line for product %s has no catalog record; hiding it", line.product_id)
            continue
        out.append((line, record))
    return out


def image_url(record: Optional[ProductRecord], base_url: str = IMAGE_BASE_URL) -> str:
    if record is None or not record.image_key:
        return PLACEHOLDER_IMAGE
    return f"{base_url}/{record.image_key.lstrip('/')}"
