from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from ..logging import get_logger
from ..paths import find_project_root, var_dir
from .constants import NUMERIC_FIELDS, SORT_DESC
from .errors import ProductValidationError, RetrievalError
from .models import Product
from .predicates import And, Eq, Like, Or, Predicate, Range


LOG = get_logger("catalog-db")

DEFAULT_DB_FOLDER = "catalog"
DEFAULT_DB_FILENAME = "catalog.sqlite3"

# SQLite LOWER() folds ASCII only; product names carry accents.
FOLD_FUNCTION = "py_lower"


def _fold(value: Optional[str]) -> Optional[str]:
    return value.lower() if isinstance(value, str) else value


SCHEMA_SQL = """
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS products (
  product_id      INTEGER PRIMARY KEY,
  article_id      TEXT,
  barcode         TEXT NOT NULL UNIQUE,
  name            TEXT NOT NULL,
  price           TEXT NOT NULL DEFAULT '0.00',   -- decimal string
  stock_quantity  TEXT NOT NULL DEFAULT '0.00',   -- decimal string
  category        TEXT,
  image_url       TEXT,
  is_active       INTEGER NOT NULL DEFAULT 1 CHECK(is_active IN (0, 1)),
  created_at      TEXT DEFAULT (datetime('now')),
  updated_at      TEXT DEFAULT (datetime('now'))
);

-- Purchase price history (what the shop paid per delivery)
CREATE TABLE IF NOT EXISTS purchase_prices (
  detail_id   INTEGER PRIMARY KEY,
  product_id  INTEGER NOT NULL REFERENCES products(product_id) ON DELETE CASCADE,
  price       TEXT NOT NULL,
  quantity    TEXT NOT NULL DEFAULT '1.00',
  ordered_at  TEXT DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS product_scans (
  scan_id     INTEGER PRIMARY KEY,
  product_id  INTEGER NOT NULL REFERENCES products(product_id) ON DELETE CASCADE,
  scanned_at  TEXT DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_products_active_name ON products(is_active, name);
CREATE INDEX IF NOT EXISTS idx_products_category    ON products(category);
CREATE INDEX IF NOT EXISTS idx_purchase_product     ON purchase_prices(product_id, ordered_at);
CREATE INDEX IF NOT EXISTS idx_scans_product        ON product_scans(product_id);
CREATE INDEX IF NOT EXISTS idx_scans_date           ON product_scans(scanned_at);
"""

PRODUCT_COLUMNS: Tuple[str, ...] = (
    "product_id",
    "article_id",
    "barcode",
    "name",
    "price",
    "stock_quantity",
    "category",
    "image_url",
    "is_active",
    "created_at",
    "updated_at",
)

_RETURNING = ", ".join(PRODUCT_COLUMNS)
_SELECT_PRODUCT = f"SELECT {_RETURNING} FROM products"


# --------------- Predicate compilation ---------------
def _column(field_name: str) -> str:
    if field_name not in PRODUCT_COLUMNS:
        raise ValueError(f"Unsupported product field: {field_name}")
    return field_name


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def compile_predicate(predicate: Predicate) -> Tuple[str, List[Any]]:
    """Compile a predicate tree into a parameterized SQLite WHERE fragment."""
    if isinstance(predicate, And):
        if not predicate.children:
            return "1 = 1", []
        parts = [compile_predicate(child) for child in predicate.children]
        return "(" + " AND ".join(sql for sql, _ in parts) + ")", [p for _, ps in parts for p in ps]
    if isinstance(predicate, Or):
        if not predicate.children:
            return "1 = 0", []
        parts = [compile_predicate(child) for child in predicate.children]
        return "(" + " OR ".join(sql for sql, _ in parts) + ")", [p for _, ps in parts for p in ps]
    if isinstance(predicate, Eq):
        col = _column(predicate.field)
        if predicate.numeric:
            return f"CAST({col} AS REAL) = ?", [float(predicate.value)]
        value = int(predicate.value) if isinstance(predicate.value, bool) else predicate.value
        return f"{col} = ?", [value]
    if isinstance(predicate, Like):
        col = _column(predicate.field)
        return (
            f"{FOLD_FUNCTION}(COALESCE({col}, '')) LIKE ? ESCAPE '\\'",
            [f"%{_escape_like(predicate.term.lower())}%"],
        )
    if isinstance(predicate, Range):
        col = _column(predicate.field)
        expr = f"CAST({col} AS INTEGER)" if predicate.integer else f"CAST({col} AS REAL)"
        clauses: List[str] = []
        params: List[Any] = []
        if predicate.low is not None:
            clauses.append(f"{expr} {'>=' if predicate.low_inclusive else '>'} ?")
            params.append(predicate.low)
        if predicate.high is not None:
            clauses.append(f"{expr} {'<=' if predicate.high_inclusive else '<'} ?")
            params.append(predicate.high)
        if not clauses:
            return "1 = 1", []
        return "(" + " AND ".join(clauses) + ")", params
    raise TypeError(f"Unsupported predicate node: {type(predicate).__name__}")


def compile_order_by(order_by: Sequence[Tuple[str, str]]) -> str:
    terms: List[str] = []
    for field_name, direction in order_by:
        col = _column(field_name)
        expr = f"CAST({col} AS REAL)" if field_name in NUMERIC_FIELDS else col
        terms.append(f"{expr} {'DESC' if direction == SORT_DESC else 'ASC'}")
    return ", ".join(terms)


class CatalogDatabase:
    """SQLite-backed product catalog.

    - Places DB under `<repo-root>/var/catalog/catalog.sqlite3` unless an
      explicit ``db_path`` is given.
    - Ensures schema on first use.
    - Implements the ProductStore protocol used by the search engine.
    """

    def __init__(self, root_dir: Optional[str] = None, *, db_path: Optional[str] = None) -> None:
        if db_path:
            self.db_path = os.path.abspath(db_path)
            os.makedirs(os.path.dirname(self.db_path), exist_ok=True)
        else:
            root = find_project_root(root_dir)
            db_folder = os.path.join(var_dir(root), DEFAULT_DB_FOLDER)
            os.makedirs(db_folder, exist_ok=True)
            self.db_path = os.path.join(db_folder, DEFAULT_DB_FILENAME)
        LOG.info(f"Catalog DB path: {self.db_path}")
        self._ensure_schema()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.create_function(FOLD_FUNCTION, 1, _fold, deterministic=True)
        conn.execute("PRAGMA foreign_keys = ON;")
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self.connect() as conn:
            cur = conn.cursor()
            try:
                cur.execute("PRAGMA journal_mode=WAL;")
                cur.execute("PRAGMA synchronous=NORMAL;")
            except sqlite3.OperationalError:
                # Non-fatal; continue with schema creation
                LOG.debug("WAL mode unavailable for %s", self.db_path)
            LOG.info("Ensuring catalog DB schema is present...")
            cur.executescript(SCHEMA_SQL)
            conn.commit()
            LOG.info("Catalog DB schema ensured.")

    # --------------- Query helpers ---------------
    @staticmethod
    def _rows_to_dicts(rows: Sequence[sqlite3.Row]) -> List[Dict[str, Any]]:
        return [dict(row) for row in rows]

    def _fetch_products(self, sql: str, params: Sequence[Any]) -> List[Product]:
        LOG.debug("SQL: %s params=%s", sql, list(params))
        try:
            with self.connect() as conn:
                rows = conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            LOG.error("Product query failed: %s", exc)
            raise RetrievalError("Failed to retrieve products") from exc
        return [Product.from_row(row) for row in rows]

    # --------------- ProductStore ---------------
    def count(self, predicate: Predicate) -> int:
        where_sql, params = compile_predicate(predicate)
        sql = f"SELECT COUNT(*) AS total FROM products WHERE {where_sql};"
        LOG.debug("SQL: %s params=%s", sql, params)
        try:
            with self.connect() as conn:
                row = conn.execute(sql, params).fetchone()
        except sqlite3.Error as exc:
            LOG.error("Product count failed: %s", exc)
            raise RetrievalError("Failed to count products") from exc
        return int(row["total"])

    def query(
        self,
        predicate: Predicate,
        order_by: Optional[Sequence[Tuple[str, str]]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Product]:
        where_sql, params = compile_predicate(predicate)
        sql = f"{_SELECT_PRODUCT} WHERE {where_sql}"
        if order_by:
            sql += f" ORDER BY {compile_order_by(order_by)}"
        if limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params = [*params, int(limit), int(offset)]
        elif offset:
            # SQLite needs a LIMIT before OFFSET; -1 means unbounded.
            sql += " LIMIT -1 OFFSET ?"
            params = [*params, int(offset)]
        return self._fetch_products(sql + ";", params)

    def query_all(self, predicate: Predicate, cap: Optional[int] = None) -> List[Product]:
        where_sql, params = compile_predicate(predicate)
        sql = f"{_SELECT_PRODUCT} WHERE {where_sql} ORDER BY product_id ASC"
        if cap is not None:
            sql += " LIMIT ?"
            params = [*params, int(cap)]
        return self._fetch_products(sql + ";", params)

    # --------------- Product lookups ---------------
    def get_product(self, product_id: int) -> Optional[Product]:
        rows = self._fetch_products(f"{_SELECT_PRODUCT} WHERE product_id = ?;", (int(product_id),))
        return rows[0] if rows else None

    def get_product_by_barcode(self, barcode: str) -> Optional[Product]:
        rows = self._fetch_products(f"{_SELECT_PRODUCT} WHERE barcode = ?;", (barcode.strip(),))
        return rows[0] if rows else None

    # --------------- Insert/Update helpers ---------------
    def create_product(self, values: Dict[str, Any]) -> Product:
        """Insert a validated product row (see parser.parse_product_payload)."""
        columns = [_column(k) for k in values]
        placeholders = ", ".join("?" for _ in columns)
        with self.connect() as conn:
            cur = conn.cursor()
            try:
                cur.execute(
                    f"INSERT INTO products ({', '.join(columns)}) VALUES ({placeholders}) RETURNING {_RETURNING};",
                    [values[c] for c in columns],
                )
            except sqlite3.IntegrityError as exc:
                raise ProductValidationError(f"Product could not be stored: {exc}") from exc
            row = cur.fetchone()
            conn.commit()
        return Product.from_row(row)

    def update_product(self, product_id: int, values: Dict[str, Any]) -> Optional[Product]:
        assignments = [f"{_column(k)} = ?" for k in values]
        assignments.append("updated_at = datetime('now')")
        with self.connect() as conn:
            cur = conn.cursor()
            try:
                cur.execute(
                    f"UPDATE products SET {', '.join(assignments)} WHERE product_id = ? RETURNING {_RETURNING};",
                    [*values.values(), int(product_id)],
                )
            except sqlite3.IntegrityError as exc:
                raise ProductValidationError(f"Product could not be updated: {exc}") from exc
            row = cur.fetchone()
            conn.commit()
        return Product.from_row(row) if row is not None else None

    def insert_purchase_price(self, product_id: int, values: Dict[str, Any]) -> Dict[str, Any]:
        columns = ["product_id", *values.keys()]
        params = [int(product_id), *values.values()]
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                INSERT INTO purchase_prices ({', '.join(columns)})
                VALUES ({', '.join('?' for _ in columns)})
                RETURNING detail_id, product_id, price, quantity, ordered_at;
                """,
                params,
            )
            row = dict(cur.fetchone())
            conn.commit()
        return row

    def record_scan(self, product_id: int) -> Dict[str, Any]:
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO product_scans (product_id) VALUES (?) RETURNING scan_id, product_id, scanned_at;",
                (int(product_id),),
            )
            row = dict(cur.fetchone())
            conn.commit()
        return row

    # --------------- Analytics / stats ---------------
    def fetch_price_history(self, product_id: int) -> List[Dict[str, Any]]:
        """Purchase prices for a product, newest first."""
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT detail_id, product_id, price, quantity, ordered_at
                FROM purchase_prices
                WHERE product_id = ?
                ORDER BY ordered_at DESC, detail_id DESC;
                """,
                (int(product_id),),
            )
            return self._rows_to_dicts(cur.fetchall())

    def fetch_product_analytics(self, product_id: int) -> Optional[Dict[str, Any]]:
        """Product row plus min/max/avg purchase price and scan count.

        Without any purchase history the current sale price stands in for all
        three price figures.
        """
        product = self.get_product(product_id)
        if product is None:
            return None
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT
                    MIN(CAST(price AS REAL)) AS min_price,
                    MAX(CAST(price AS REAL)) AS max_price,
                    AVG(CAST(price AS REAL)) AS avg_price
                FROM purchase_prices
                WHERE product_id = ?;
                """,
                (int(product_id),),
            )
            stats = cur.fetchone()
            cur.execute(
                "SELECT COUNT(*) AS count FROM product_scans WHERE product_id = ?;",
                (int(product_id),),
            )
            scans = int(cur.fetchone()["count"])

        def _fmt(value: Optional[float]) -> str:
            return f"{value:.2f}" if value is not None else product.price

        payload = product.to_dict()
        payload.update(
            {
                "min_price": _fmt(stats["min_price"]),
                "max_price": _fmt(stats["max_price"]),
                "avg_price": _fmt(stats["avg_price"]),
                "scans_count": scans,
            }
        )
        return payload

    def fetch_categories(self) -> List[str]:
        """Distinct non-empty categories of active products, sorted."""
        with self.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT DISTINCT category
                FROM products
                WHERE is_active = 1 AND category IS NOT NULL AND TRIM(category) != ''
                ORDER BY category ASC;
                """
            )
            return [row["category"] for row in cur.fetchall()]

    def count_products(self) -> int:
        with self.connect() as conn:
            return int(conn.execute("SELECT COUNT(*) AS count FROM products;").fetchone()["count"])

    def count_scans_today(self) -> int:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS count FROM product_scans WHERE date(scanned_at) = date('now');"
            ).fetchone()
            return int(row["count"])
