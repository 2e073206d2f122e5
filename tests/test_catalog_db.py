from __future__ import annotations

import pytest

from price_lookup.catalog.db import compile_order_by, compile_predicate
from price_lookup.catalog.errors import ProductValidationError
from price_lookup.catalog.parser import parse_product_payload, parse_purchase_price_payload
from price_lookup.catalog.predicates import And, Eq, Like, Or, Range


def test_compile_predicate_parameterizes_and_escapes():
    sql, params = compile_predicate(
        And((Eq("is_active", True), Or((Like("name", "50%_off"), Like("barcode", "50%_off")))))
    )
    assert sql == (
        "(is_active = ? AND (py_lower(COALESCE(name, '')) LIKE ? ESCAPE '\\' "
        "OR py_lower(COALESCE(barcode, '')) LIKE ? ESCAPE '\\'))"
    )
    assert params == [1, "%50\\%\\_off%", "%50\\%\\_off%"]


def test_compile_predicate_ranges_and_empty_groups():
    sql, params = compile_predicate(Range("stock_quantity", 0, 10, low_inclusive=False, integer=True))
    assert sql == "(CAST(stock_quantity AS INTEGER) > ? AND CAST(stock_quantity AS INTEGER) < ?)"
    assert params == [0, 10]

    assert compile_predicate(And(())) == ("1 = 1", [])
    assert compile_predicate(Or(())) == ("1 = 0", [])
    assert compile_predicate(Eq("price", "500", numeric=True)) == ("CAST(price AS REAL) = ?", [500.0])


def test_compile_rejects_unknown_columns():
    with pytest.raises(ValueError):
        compile_predicate(Eq("name; DROP TABLE products", "x"))
    with pytest.raises(ValueError):
        compile_order_by([("popularity", "asc")])


def test_compile_order_by_casts_numeric_fields():
    assert compile_order_by([("price", "desc"), ("product_id", "asc")]) == "CAST(price AS REAL) DESC, product_id ASC"


def test_create_and_lookup_product(catalog_db, make_product):
    created = make_product("Boss Classic Cola", barcode=" 6001 ", price="500", category="Drinks")

    assert created.product_id is not None
    assert created.barcode == "6001"
    assert created.price == "500.00"
    assert created.created_at is not None

    assert catalog_db.get_product_by_barcode(" 6001 ").product_id == created.product_id
    assert catalog_db.get_product(created.product_id).name == "Boss Classic Cola"
    assert catalog_db.get_product(9999) is None


def test_duplicate_barcode_is_a_validation_error(catalog_db, make_product):
    make_product("Cola", barcode="6001")
    with pytest.raises(ProductValidationError):
        make_product("Other Cola", barcode="6001")


def test_update_product_touches_updated_at(catalog_db, make_product):
    product = make_product("Tea", updated_at="2020-01-01T00:00:00")
    assert product.updated_at == "2020-01-01 00:00:00"

    updated = catalog_db.update_product(product.product_id, parse_product_payload({"stock_quantity": "7"}, partial=True))

    assert updated.stock_quantity == "7.00"
    assert updated.name == "Tea"
    assert updated.updated_at > "2020-01-01 00:00:00"
    assert catalog_db.update_product(9999, {"name": "Ghost"}) is None


def test_partial_update_requires_fields():
    with pytest.raises(ProductValidationError):
        parse_product_payload({}, partial=True)


@pytest.mark.parametrize(
    "payload",
    [
        {"barcode": "1", "name": "x", "price": "abc"},
        {"barcode": "1", "name": "x", "price": -1},
        {"barcode": "1", "name": "x", "price": True},
        {"barcode": "1", "name": "x", "created_at": "yesterday"},
        {"barcode": "1", "name": "   "},
        ["not", "an", "object"],
    ],
)
def test_invalid_product_payloads(payload):
    with pytest.raises(ProductValidationError):
        parse_product_payload(payload)


def test_negative_stock_is_allowed():
    assert parse_product_payload({"barcode": "1", "name": "x", "stock_quantity": "-2"})["stock_quantity"] == "-2.00"


def test_price_history_newest_first_and_analytics(catalog_db, make_product):
    product = make_product("Rice", price="4500")
    pid = product.product_id
    for price, when in (("4000", "2024-01-05"), ("4300", "2024-06-01"), ("4200", "2024-03-01")):
        catalog_db.insert_purchase_price(pid, parse_purchase_price_payload({"price": price, "ordered_at": when}))

    history = catalog_db.fetch_price_history(pid)
    assert [row["price"] for row in history] == ["4300.00", "4200.00", "4000.00"]
    assert history[0]["ordered_at"] == "2024-06-01 00:00:00"

    catalog_db.record_scan(pid)
    catalog_db.record_scan(pid)
    analytics = catalog_db.fetch_product_analytics(pid)
    assert analytics["min_price"] == "4000.00"
    assert analytics["max_price"] == "4300.00"
    assert analytics["avg_price"] == "4166.67"
    assert analytics["scans_count"] == 2
    assert analytics["name"] == "Rice"
    assert catalog_db.fetch_product_analytics(9999) is None


def test_categories_and_counts(catalog_db, make_product):
    make_product("Cola", category="Drinks")
    make_product("Bread", category="Bakery")
    make_product("Juice", category="Drinks")
    make_product("Loose", category="  ")
    make_product("Old Stock", category="Archive", is_active=False)
    scanned = make_product("Tea")
    catalog_db.record_scan(scanned.product_id)

    assert catalog_db.fetch_categories() == ["Bakery", "Drinks"]
    assert catalog_db.count_products() == 6
    assert catalog_db.count_scans_today() == 1


def test_query_paging_without_limit(catalog_db, make_product):
    for name in ("A", "B", "C", "D"):
        make_product(name)

    rows = catalog_db.query(Eq("is_active", True), order_by=[("name", "asc")], limit=None, offset=2)
    assert [p.name for p in rows] == ["C", "D"]
    assert [p.name for p in catalog_db.query_all(Eq("is_active", True), cap=2)] == ["A", "B"]
    assert catalog_db.count(Like("name", "b")) == 1
