import asyncio
import os
import random
from typing import Any

from gateways import GATEWAYS
from shopcore.catalog import CatalogIndex
from shopcore.engine import Storefront
from shopcore.gateway import Gateway, GatewayError
from shopcore.logger import get_logger
from shopcore.session import Session

logger = get_logger(__name__)

POLL_SECONDS = int(os.getenv("POLL_SECONDS", "60"))
MODE = os.getenv("MODE", "once").lower()  # "once" or "watch"
GATEWAY = os.getenv("GATEWAY", "http").lower()  # "http" or "mock"


def build_gateway(session: Session, name: str = GATEWAY) -> Gateway:
    factory = GATEWAYS.get(name)
    if not factory:
        logger.error("No gateway registered for '%s' (choose from %s)", name, sorted(GATEWAYS))
        raise SystemExit(1)
    return factory(session)


async def load_catalog(gateway: Gateway) -> CatalogIndex:
    try:
        payload = await gateway.get_products()
    except GatewayError as e:
        logger.error("Catalog fetch failed (status=%s): %s", e.status, e)
        return CatalogIndex()
    catalog = CatalogIndex.from_payload(payload)
    logger.info("Catalog loaded with %d products", len(catalog))
    return catalog


def _money(value: Any) -> str:
    return f"{value:.2f}"


def log_summary(shop: Storefront) -> None:
    fav = shop.favorites.snapshot()
    logger.info(
        "Favourites: %d ids, %d renderable: %s",
        len(fav.favorite_ids),
        len(fav.favorites),
        [f"{p.id}:{p.title}" for p in fav.favorites],
    )

    drawer = shop.drawer_summary()
    if drawer.is_empty:
        logger.info("Cart is empty")
    for line, product in drawer.lines:
        logger.info(
            "Cart: %s x%d @ %s", product.title, line.quantity, _money(line.price_at_add)
        )
    logger.info(
        "Cart total %s, tax %s", _money(drawer.totals.subtotal), _money(drawer.totals.tax)
    )

    for order in shop.orders.enriched_orders():
        logger.info(
            "Order #%s [%s]: %s, total %s",
            order.order.id,
            order.label,
            ", ".join(f"{i.title} x{i.item.quantity}" for i in order.items),
            _money(order.order.total_amount),
        )

    for err in shop.errors():
        logger.warning("Store error: %s", err)


async def sync_once(shop: Storefront) -> int:
    shop.use_catalog(await load_catalog(shop.gateway))
    await shop.sync(include_orders=True)
    log_summary(shop)
    return 1 if shop.errors() else 0


async def run_once() -> int:
    session = Session.from_env()
    if not session.is_authenticated():
        logger.info("No credential configured; favourites and cart stay empty")
    gateway = build_gateway(session)
    try:
        return await sync_once(Storefront(gateway, session))
    finally:
        await gateway.aclose()


async def run_watch() -> None:
    logger.info("Starting watch; sync every %d seconds.", POLL_SECONDS)
    session = Session.from_env()
    gateway = build_gateway(session)
    shop = Storefront(gateway, session)
    try:
        while True:
            try:
                await sync_once(shop)
            except Exception as e:
                logger.exception("Unhandled error in watch loop: %s", e)

            base = max(1, POLL_SECONDS)
            delay = base + random.uniform(-0.1 * base, 0.1 * base)
            logger.debug("Sleeping %.1f seconds before next sync.", delay)
            await asyncio.sleep(delay)
    finally:
        await gateway.aclose()


if __name__ == "__main__":
    try:
        if MODE == "watch":
            asyncio.run(run_watch())
        else:
            raise SystemExit(asyncio.run(run_once()))
    except KeyboardInterrupt:
        logger.info("Interrupted; exiting.")
    except Exception as e:
        logger.exception("Fatal storefront error: %s", e)
        raise SystemExit(2)
