from __future__ import annotations

from typing import Dict, List, Tuple

# Category sentinel sent by the catalog UI when no category is selected.
ALL_CATEGORIES = "All Categories"

# Stock levels. Quantities are the integer coercion of the stored value.
STOCK_OUT = "out_of_stock"
STOCK_LOW = "low_stock"
STOCK_IN = "in_stock"
STOCK_ALL = "all"

STOCK_STATUS_CHOICES: Tuple[str, ...] = (STOCK_OUT, STOCK_LOW, STOCK_IN, STOCK_ALL)

LOW_STOCK_THRESHOLD = 10

# Sort keys accepted by the search engine.
SORT_RELEVANCE = "relevance"
SORT_NAME = "name"
SORT_PRICE = "price"
SORT_STOCK = "stock"
SORT_CATEGORY = "category"
SORT_BARCODE = "barcode"
SORT_CREATED = "created"
SORT_MODIFIED = "modified"

SORT_KEY_CHOICES: Tuple[str, ...] = (
    SORT_RELEVANCE,
    SORT_NAME,
    SORT_PRICE,
    SORT_STOCK,
    SORT_CATEGORY,
    SORT_BARCODE,
    SORT_CREATED,
    SORT_MODIFIED,
)

# Product column backing each sort key (relevance has none).
SORT_FIELDS: Dict[str, str] = {
    SORT_NAME: "name",
    SORT_PRICE: "price",
    SORT_STOCK: "stock_quantity",
    SORT_CATEGORY: "category",
    SORT_BARCODE: "barcode",
    SORT_CREATED: "created_at",
    SORT_MODIFIED: "updated_at",
}

NUMERIC_FIELDS = frozenset({"price", "stock_quantity"})
DATE_FIELDS = frozenset({"created_at", "updated_at"})

# Text fields searched by substring queries.
TEXT_SEARCH_FIELDS: Tuple[str, ...] = ("name", "barcode", "category")

SORT_ASC = "asc"
SORT_DESC = "desc"

DEFAULT_LIMIT = 10
DEFAULT_OFFSET = 0
# Wire value of the "return all" limit; the engine uses None.
LIMIT_ALL = "all"

SORT_OPTIONS: List[Dict[str, str]] = [
    {"value": SORT_RELEVANCE, "label": "Relevance", "description": "Best match for search query"},
    {"value": SORT_NAME, "label": "Name (A-Z)", "description": "Sort by product name alphabetically"},
    {"value": SORT_PRICE, "label": "Price", "description": "Sort by price"},
    {"value": SORT_STOCK, "label": "Stock Level", "description": "Sort by available stock"},
    {"value": SORT_CATEGORY, "label": "Category", "description": "Sort by product category"},
    {"value": SORT_BARCODE, "label": "Barcode", "description": "Sort by barcode"},
    {"value": SORT_CREATED, "label": "Date Added", "description": "Sort by creation date"},
    {"value": SORT_MODIFIED, "label": "Last Modified", "description": "Sort by last modification date"},
]

SORT_ORDERS: List[Dict[str, str]] = [
    {"value": SORT_ASC, "label": "Ascending"},
    {"value": SORT_DESC, "label": "Descending"},
]
