from __future__ import annotations

import pytest

from price_lookup.catalog.errors import RetrievalError
from price_lookup.catalog.search import ProductSearchEngine


def _names(result):
    return [p.name for p in result.products]


def test_inactive_products_never_appear(catalog_db, make_product):
    make_product("Boss Classic Cola", category="Drinks")
    make_product("Boss Cherry Cola", category="Drinks", is_active=False)
    engine = ProductSearchEngine(catalog_db)

    for query in (None, "cola", "bcc", "boss cola", "100"):
        result = engine.search(query=query, limit="all")
        assert all(p.is_active for p in result.products)
        assert "Boss Cherry Cola" not in _names(result)


def test_initials_rank_ahead_of_substring_matches(catalog_db, make_product):
    make_product("Abcc Wafers")
    make_product("Bella Cake Chocolate Cream")
    make_product("Rice 5kg")
    make_product("Boss Classic Cola")
    engine = ProductSearchEngine(catalog_db)

    result = engine.search(query="bcc")

    assert result.total == 3
    assert _names(result) == ["Bella Cake Chocolate Cream", "Boss Classic Cola", "Abcc Wafers"]


def test_word_query_is_substring_match_after_initials(catalog_db, make_product):
    make_product("Boss Classic Cola")
    make_product("Bottled Orange Soda Syrup")
    engine = ProductSearchEngine(catalog_db)

    result = engine.search(query="boss")

    assert _names(result) == ["Bottled Orange Soda Syrup", "Boss Classic Cola"]


def test_numeric_query_matches_exact_price(catalog_db, make_product):
    make_product("Sardines", barcode="111", price="500.00")
    make_product("Rice 500g", barcode="222", price="1200")
    make_product("Sugar", barcode="333", price="5000")
    engine = ProductSearchEngine(catalog_db)

    result = engine.search(query="500")

    assert result.total == 2
    assert _names(result) == ["Rice 500g", "Sardines"]


def test_numeric_query_matches_barcode_substring(catalog_db, make_product):
    make_product("Olive Oil", barcode="8402310198125", price="3500")
    make_product("Sunflower Oil", barcode="7000000000001", price="2500")
    engine = ProductSearchEngine(catalog_db)

    assert _names(engine.search(query="8402")) == ["Olive Oil"]


def test_offset_past_end_returns_empty_page_with_total(catalog_db, make_product):
    for i in range(15):
        make_product(f"Milk Pack {i:02d}")
    engine = ProductSearchEngine(catalog_db)

    result = engine.search(query="milk pack", limit=10, offset=20)
    assert result.products == []
    assert result.total == 15

    initials = engine.search(query="mp", limit=10, offset=20)
    assert initials.products == []
    assert initials.total == 15


def test_low_stock_filter_by_ui_label(catalog_db, make_product):
    for qty in ("0", "5", "9", "10", "15"):
        make_product(f"Item qty {qty}", stock_quantity=qty)
    engine = ProductSearchEngine(catalog_db)

    result = engine.search(stock_status="Low Stock", limit="all")

    assert sorted(_names(result)) == ["Item qty 5", "Item qty 9"]


@pytest.mark.parametrize(
    "status, expected",
    [
        ("out_of_stock", ["Item qty 0"]),
        ("in-stock", ["Item qty 10", "Item qty 15"]),
        ("all", ["Item qty 0", "Item qty 10", "Item qty 15", "Item qty 5"]),
        ("All Levels", ["Item qty 0", "Item qty 10", "Item qty 15", "Item qty 5"]),
    ],
)
def test_stock_filters(catalog_db, make_product, status, expected):
    for qty in ("0", "5", "10", "15"):
        make_product(f"Item qty {qty}", stock_quantity=qty)
    engine = ProductSearchEngine(catalog_db)

    assert _names(engine.search(stock_status=status, limit="all")) == expected


def test_stock_filter_coerces_decimal_quantities(catalog_db, make_product):
    make_product("Half Crate", stock_quantity="9.75")
    make_product("Full Crate", stock_quantity="10.00")
    engine = ProductSearchEngine(catalog_db)

    assert _names(engine.search(stock_status="low_stock")) == ["Half Crate"]


def test_category_filter_and_sentinel(catalog_db, make_product):
    make_product("Cola", category="Drinks")
    make_product("Bread", category="Bakery")
    make_product("Loose Item")
    engine = ProductSearchEngine(catalog_db)

    assert _names(engine.search(category="Drinks")) == ["Cola"]
    assert engine.search(category="All Categories").total == 3
    assert engine.search(category="drinks").total == 0


def test_multi_term_query_requires_all_terms(catalog_db, make_product):
    make_product("Bella Cake Chocolate", category="Bakery")
    make_product("Bella Juice", category="Drinks")
    make_product("Chocolate Bar", category="Bakery")
    engine = ProductSearchEngine(catalog_db)

    assert _names(engine.search(query="bella chocolate")) == ["Bella Cake Chocolate"]
    assert _names(engine.search(query="bella bakery")) == ["Bella Cake Chocolate"]


def test_like_wildcards_in_query_are_literal(catalog_db, make_product):
    make_product("Discount 50% Pack")
    make_product("Discount 500 Pack")
    engine = ProductSearchEngine(catalog_db)

    assert _names(engine.search(query="50%")) == ["Discount 50% Pack"]


def test_storage_sort_casts_numeric_columns(catalog_db, make_product):
    make_product("Ten", price="10")
    make_product("Nine", price="9")
    make_product("Hundred", price="100")
    engine = ProductSearchEngine(catalog_db)

    assert _names(engine.search(sort_by="price")) == ["Nine", "Ten", "Hundred"]
    assert _names(engine.search(sort_by="price", sort_order="desc")) == ["Hundred", "Ten", "Nine"]


def test_unknown_sort_key_falls_back_to_name_ascending(catalog_db, make_product):
    make_product("Cola", price="1")
    make_product("Apple", price="3")
    make_product("Bread", price="2")
    engine = ProductSearchEngine(catalog_db)

    assert _names(engine.search(sort_by="popularity", sort_order="desc")) == ["Apple", "Bread", "Cola"]
    assert _names(engine.search()) == ["Apple", "Bread", "Cola"]


def test_initials_path_applies_explicit_sort(catalog_db, make_product):
    make_product("Bella Cake Chocolate", price="900")
    make_product("Abcc Wafers", price="100")
    make_product("Boss Classic Cola", price="300")
    engine = ProductSearchEngine(catalog_db)

    assert _names(engine.search(query="bcc", sort_by="price")) == [
        "Abcc Wafers",
        "Boss Classic Cola",
        "Bella Cake Chocolate",
    ]
    assert _names(engine.search(query="bcc", sort_by="relevance", sort_order="desc")) == [
        "Bella Cake Chocolate",
        "Boss Classic Cola",
        "Abcc Wafers",
    ]


def test_total_is_independent_of_page_window(catalog_db, make_product):
    for i in range(7):
        make_product(f"Soap Bar {i}")
    engine = ProductSearchEngine(catalog_db)

    totals = {engine.search(query="soap", limit=lim, offset=off).total for lim in (1, 3, 10) for off in (0, 2, 9)}
    assert totals == {7}


@pytest.mark.parametrize("query", ["soap", "sb", None])
def test_pages_reconstruct_the_full_result(catalog_db, make_product, query):
    for i in range(11):
        make_product("Soap Bar" if i % 2 else f"Soap Bar {i}")
    engine = ProductSearchEngine(catalog_db)

    full = [p.product_id for p in engine.search(query=query, limit="all").products]
    paged = []
    for offset in range(0, 12, 4):
        paged.extend(p.product_id for p in engine.search(query=query, limit=4, offset=offset).products)

    assert paged == full
    assert len(set(paged)) == len(paged) == 11


def test_malformed_paging_values_use_defaults(catalog_db, make_product):
    for i in range(12):
        make_product(f"Tea {i:02d}")
    engine = ProductSearchEngine(catalog_db)

    result = engine.search(limit="ten", offset="-3")
    assert len(result.products) == 10
    assert result.products[0].name == "Tea 00"


def test_empty_result_is_not_an_error(catalog_db, make_product):
    make_product("Tea")
    engine = ProductSearchEngine(catalog_db)

    result = engine.search(query="zzzz")
    assert result.products == []
    assert result.total == 0
    assert result.to_dict() == {"products": [], "total": 0}


def test_initials_scan_limit_bounds_materialization(catalog_db, make_product):
    for i in range(5):
        make_product(f"Big Carton {i}")
    engine = ProductSearchEngine(catalog_db, initials_scan_limit=3)

    assert engine.search(query="bc").total == 3


def test_storage_failures_propagate_as_retrieval_error(catalog_db, make_product):
    make_product("Tea")
    with catalog_db.connect() as conn:
        conn.execute("DROP TABLE product_scans;")
        conn.execute("DROP TABLE purchase_prices;")
        conn.execute("DROP TABLE products;")
        conn.commit()
    engine = ProductSearchEngine(catalog_db)

    with pytest.raises(RetrievalError):
        engine.search(query="green tea")
    with pytest.raises(RetrievalError):
        engine.search(query="te")


def test_accented_upper_case_names_match_lower_case_queries(catalog_db, make_product):
    make_product("CAFÉ MOULU", category="ÉPICERIE")
    make_product("Crème Fraîche")
    make_product("Cafetière")
    engine = ProductSearchEngine(catalog_db)

    assert _names(engine.search(query="café")) == ["CAFÉ MOULU"]
    assert _names(engine.search(query="épicerie moulu")) == ["CAFÉ MOULU"]
    assert _names(engine.search(query="CRÈME")) == ["Crème Fraîche"]
    # initials path uses the same folding
    assert _names(engine.search(query="moulu")) == ["CAFÉ MOULU"]
