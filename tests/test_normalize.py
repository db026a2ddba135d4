from decimal import Decimal

import pytest

from shopcore.models import ProductRecord
from shopcore.normalize import (
    coerce_id,
    coerce_price,
    is_cart_snapshot,
    normalize_cart,
    normalize_cart_line,
    normalize_favorite_ids,
    normalize_orders,
    normalize_products,
)


@pytest.mark.parametrize(
    "payload",
    [
        [7, 9],
        ["7", "9"],
        [{"sneaker_id": 7}, {"sneaker_id": 9}],
        [{"id": 1, "sneaker_id": 7}, {"id": 2, "sneaker_id": 9}],
        [{"productId": 7}, {"id": 9}],
        {"favourites": [{"sneaker_id": 7}, {"sneaker_id": 9}]},
        {"favorites": [7, 9]},
        {"data": [7, "9"]},
    ],
)
def test_favourite_shapes_share_one_canonical_form(payload):
    assert normalize_favorite_ids(payload) == [7, 9]


@pytest.mark.parametrize("payload", [None, [], {}, "", {"favourites": None}])
def test_empty_favourite_payloads(payload):
    assert normalize_favorite_ids(payload) == []


@pytest.mark.parametrize("payload", [42, "oops", {"unexpected": [1, 2]}, {"favourites": "7,9"}])
def test_unrecognized_favourite_payload_is_empty_and_logged(payload, caplog):
    with caplog.at_level("WARNING"):
        assert normalize_favorite_ids(payload) == []
    assert "Unrecognized favourites payload" in caplog.text


def test_favourite_ids_are_deduplicated_in_order():
    assert normalize_favorite_ids([9, 7, 9, {"sneaker_id": 7}, 3]) == [9, 7, 3]


def test_favourite_entries_without_an_id_are_skipped(caplog):
    with caplog.at_level("WARNING"):
        ids = normalize_favorite_ids([{"sneaker_id": 7}, {"name": "x"}, True, 9])
    assert ids == [7, 9]
    assert "without a usable id" in caplog.text


def test_malformed_string_ids_are_skipped():
    assert normalize_favorite_ids(["--7", 9, {"sneaker_id": "\u00b2"}]) == [9]


def test_sneaker_id_wins_over_row_id():
    # favourites rows carry their own id; the product id is sneaker_id
    assert normalize_favorite_ids([{"id": 100, "sneaker_id": 7}]) == [7]


@pytest.mark.parametrize(
    "value, expected",
    [
        (7, 7), ("7", 7), (" 12 ", 12), (7.0, 7), (7.5, None), (True, None), (None, None),
        ("abc", None), ("--7", None), ("\u00b2", None), ("", None),
    ],
)
def test_coerce_id(value, expected):
    assert coerce_id(value) == expected


def test_coerce_price():
    assert coerce_price("1299.50") == Decimal("1299.50")
    assert coerce_price(1000) == Decimal("1000")
    assert coerce_price(-1) is None
    assert coerce_price("free") is None
    assert coerce_price(float("nan")) is None


def test_products_list_and_wrapped_are_equivalent():
    rows = [
        {"id": 7, "title": "Air Runner", "price": 1000, "image_key": "a.jpg"},
        {"id": "9", "title": "Court", "price": "500"},
    ]
    flat = normalize_products(rows)
    wrapped = normalize_products({"sneakers": rows})
    assert flat == wrapped
    assert flat[0] == ProductRecord(id=7, title="Air Runner", price=Decimal("1000"), image_key="a.jpg")
    assert flat[1].id == 9
    assert flat[1].image_key is None


def test_malformed_products_are_dropped():
    records = normalize_products([{"title": "no id"}, "junk", {"id": 3, "title": "ok", "price": "bad"}])
    assert [r.id for r in records] == [3]
    assert records[0].price == Decimal("0")


def test_unrecognized_products_payload():
    assert normalize_products({"result": "nope"}) == []


def test_cart_snapshot_lines():
    lines = normalize_cart(
        {"items": [
            {"id": "b1f2", "sneaker_id": 7, "quantity": 2},
            {"id": 5, "sneaker_id": "9", "quantity": "1", "price_at_add": "480"},
            {"id": 6, "quantity": 1},
        ]}
    )
    assert lines == [
        {"line_id": "b1f2", "product_id": 7, "quantity": 2, "price": None},
        {"line_id": 5, "product_id": 9, "quantity": 1, "price": Decimal("480")},
    ]


def test_cart_line_and_snapshot_detection():
    assert normalize_cart_line({"message": "ok"}) is None
    assert normalize_cart_line({"id": 3, "sneaker_id": 7})["quantity"] == 1
    assert is_cart_snapshot({"items": []})
    assert is_cart_snapshot([])
    assert not is_cart_snapshot({"id": 3, "sneaker_id": 7})
    assert not is_cart_snapshot(None)


def test_orders():
    orders = normalize_orders(
        [
            {
                "id": 12,
                "status": "pending_payment",
                "total_amount": "2500",
                "created_at": "1717000000",
                "payment_url": "https://pay.example/12",
                "items": [{"sneaker_id": 7, "quantity": 2, "price_at_purchase": 1000}, {"oops": 1}],
            },
            {"status": "PAID"},
        ]
    )
    assert len(orders) == 1
    order = orders[0]
    assert order.id == 12
    assert order.status == "PENDING_PAYMENT"
    assert order.total_amount == Decimal("2500")
    assert order.created_at == 1717000000
    assert [(i.product_id, i.quantity) for i in order.items] == [(7, 2)]
