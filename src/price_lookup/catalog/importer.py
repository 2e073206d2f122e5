"""CSV import for catalog exports (products.csv / detail_commande.csv).

Column names follow the legacy export; rows that fail validation or insertion
are logged and skipped so one bad line never aborts a bulk import.
"""
from __future__ import annotations

import csv
import sqlite3
from datetime import datetime
from typing import Dict, Iterator

from ..logging import get_logger
from .db import CatalogDatabase
from .errors import ProductValidationError
from .parser import parse_product_payload, parse_purchase_price_payload


LOG = get_logger("catalog-import")

PRODUCT_CSV_COLUMNS = {
    "id": "product_id",
    "article_id": "article_id",
    "codebar": "barcode",
    "designation": "name",
    "prix_vente": "price",
    "stock_actuel": "stock_quantity",
    "category": "category",
    "image_url": "image_url",
    "Valide": "is_active",
    "cree_a": "created_at",
    "modifie_a": "updated_at",
}

PURCHASE_CSV_COLUMNS = {
    "prix_achat": "price",
    "qte_achat": "quantity",
    "date_commande": "ordered_at",
}


def _read_rows(path: str) -> Iterator[Dict[str, str]]:
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        yield from csv.DictReader(f)


def _drop_bad_timestamps(payload: Dict[str, str]) -> None:
    for key in ("created_at", "updated_at"):
        value = payload.get(key)
        if not value:
            continue
        try:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            LOG.debug(f"Ignoring unparseable {key}={value!r}")
            payload.pop(key)


def import_products_csv(db: CatalogDatabase, path: str) -> Dict[str, int]:
    imported = skipped = 0
    for line_no, row in enumerate(_read_rows(path), start=2):
        payload = {
            target: (row.get(source) or "").strip()
            for source, target in PRODUCT_CSV_COLUMNS.items()
            if source in row
        }
        if not payload.get("product_id"):
            payload.pop("product_id", None)
        if not payload.get("price"):
            payload["price"] = "0"
        if not payload.get("stock_quantity"):
            payload["stock_quantity"] = "0"
        _drop_bad_timestamps(payload)
        try:
            db.create_product(parse_product_payload(payload))
        except (ProductValidationError, sqlite3.Error) as exc:
            LOG.warning(f"{path}:{line_no}: skipping product {row.get('codebar')!r}: {exc}")
            skipped += 1
            continue
        imported += 1
    LOG.info(f"Imported {imported} product(s) from {path} ({skipped} skipped)")
    return {"imported": imported, "skipped": skipped}


def import_purchase_prices_csv(db: CatalogDatabase, path: str) -> Dict[str, int]:
    imported = skipped = 0
    for line_no, row in enumerate(_read_rows(path), start=2):
        payload = {
            target: (row.get(source) or "").strip()
            for source, target in PURCHASE_CSV_COLUMNS.items()
            if source in row
        }
        if not payload.get("price"):
            payload["price"] = "0"
        if not payload.get("quantity"):
            payload["quantity"] = "0"
        try:
            product_id = int((row.get("produit_id") or "").strip())
            db.insert_purchase_price(product_id, parse_purchase_price_payload(payload))
        except (ValueError, sqlite3.Error) as exc:
            # ProductValidationError is a ValueError
            LOG.warning(f"{path}:{line_no}: skipping purchase row {row.get('id')!r}: {exc}")
            skipped += 1
            continue
        imported += 1
    LOG.info(f"Imported {imported} purchase price(s) from {path} ({skipped} skipped)")
    return {"imported": imported, "skipped": skipped}
