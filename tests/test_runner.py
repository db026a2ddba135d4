import pytest

import storefront
from gateways.mock import MockGateway
from shopcore.engine import Storefront
from shopcore.session import load_token_file


def test_unknown_gateway_exits(session):
    with pytest.raises(SystemExit) as exc:
        storefront.build_gateway(session, "carrier-pigeon")

    assert exc.value.code == 1


@pytest.mark.asyncio
async def test_load_catalog_degrades_to_empty(backend):
    backend.fail_next("get_products", 502)

    catalog = await storefront.load_catalog(backend)

    assert len(catalog) == 0


@pytest.mark.asyncio
async def test_sync_once_fills_every_store(backend, caplog):
    backend.favourites = [9]
    backend.seed_cart_line(7, 2)
    shop = Storefront(backend, backend.session)

    with caplog.at_level("INFO"):
        code = await storefront.sync_once(shop)

    assert code == 0
    assert len(shop.catalog) == 3
    assert shop.cart.get_total_price() == 2000
    assert "Cart: Air Runner x2 @ 1000.00" in caplog.text


@pytest.mark.asyncio
async def test_sync_once_reports_store_errors(session):
    backend = MockGateway(session)
    backend.fail_next("get_cart", 500)
    shop = Storefront(backend, session)

    assert await storefront.sync_once(shop) == 1
    assert shop.errors() == ["Failed to load cart"]


def test_token_file(tmp_path):
    path = tmp_path / "token"
    path.write_text("  file-token\n", encoding="utf-8")

    assert load_token_file(str(path)) == "file-token"
    assert load_token_file(str(tmp_path / "missing")) is None
