from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

from price_lookup.catalog.db import CatalogDatabase
from price_lookup.catalog.models import Product
from price_lookup.catalog.parser import parse_product_payload


@pytest.fixture
def catalog_db(tmp_path: Path) -> CatalogDatabase:
    (tmp_path / "README.md").write_text("test marker", encoding="utf-8")
    return CatalogDatabase(root_dir=str(tmp_path))


@pytest.fixture
def make_product(catalog_db: CatalogDatabase) -> Callable[..., Product]:
    counter = {"n": 0}

    def _make(name: str, **fields: Any) -> Product:
        counter["n"] += 1
        payload = {
            "barcode": fields.pop("barcode", f"600000000{counter['n']:04d}"),
            "name": name,
            "price": fields.pop("price", "100"),
            "stock_quantity": fields.pop("stock_quantity", "20"),
        }
        payload.update(fields)
        return catalog_db.create_product(parse_product_payload(payload))

    return _make
