from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .constants import (
    ALL_CATEGORIES,
    DEFAULT_LIMIT,
    DEFAULT_OFFSET,
    LIMIT_ALL,
    SORT_ASC,
    SORT_DESC,
    STOCK_ALL,
    STOCK_STATUS_CHOICES,
)


@dataclass
class Product:
    product_id: Optional[int]
    barcode: str
    name: str
    price: str             # decimal string, e.g. "1500.00"
    stock_quantity: str    # decimal string, integer-coerced for stock levels
    category: Optional[str] = None
    article_id: Optional[str] = None
    image_url: Optional[str] = None
    is_active: bool = True
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Product":
        return cls(
            product_id=row["product_id"],
            barcode=row["barcode"],
            name=row["name"],
            price=row["price"],
            stock_quantity=row["stock_quantity"],
            category=row["category"],
            article_id=row["article_id"],
            image_url=row["image_url"],
            is_active=bool(row["is_active"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def parse_limit(value: Any, default: int = DEFAULT_LIMIT) -> Optional[int]:
    """Normalize a page size; None means "return all".

    Missing or malformed values fall back to the default page size.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, str):
        text = value.strip().lower()
        if text == LIMIT_ALL:
            return None
        try:
            value = int(text)
        except ValueError:
            return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def parse_offset(value: Any, default: int = DEFAULT_OFFSET) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        parsed = int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 0 else default


def normalize_stock_status(value: Optional[str]) -> Optional[str]:
    """Map UI labels like "Low Stock" or "out-of-stock" onto stock constants.

    Returns None when no stock filter applies (absent, "all", or unknown).
    """
    if not value:
        return None
    key = "_".join(value.strip().lower().replace("-", " ").split())
    if key not in STOCK_STATUS_CHOICES or key == STOCK_ALL:
        return None
    return key


def normalize_category(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if not value.strip() or value == ALL_CATEGORIES:
        return None
    return value


def normalize_sort_order(value: Optional[str]) -> str:
    if value and value.strip().lower() == SORT_DESC:
        return SORT_DESC
    return SORT_ASC


@dataclass
class SearchRequest:
    query: Optional[str] = None
    category: Optional[str] = None
    stock_status: Optional[str] = None
    limit: Optional[int] = DEFAULT_LIMIT
    offset: int = DEFAULT_OFFSET
    sort_by: Optional[str] = None
    sort_order: str = SORT_ASC

    @classmethod
    def from_params(
        cls,
        *,
        query: Optional[str] = None,
        category: Optional[str] = None,
        stock_status: Optional[str] = None,
        limit: Any = DEFAULT_LIMIT,
        offset: Any = DEFAULT_OFFSET,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = SORT_ASC,
    ) -> "SearchRequest":
        """Build a request from loosely-typed caller input, normalizing filters."""
        sort_key = sort_by.strip().lower() if sort_by and sort_by.strip() else None
        return cls(
            query=query,
            category=normalize_category(category),
            stock_status=normalize_stock_status(stock_status),
            limit=parse_limit(limit),
            offset=parse_offset(offset),
            sort_by=sort_key,
            sort_order=normalize_sort_order(sort_order),
        )


@dataclass
class SearchResult:
    products: List[Product] = field(default_factory=list)
    total: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"products": [p.to_dict() for p in self.products], "total": self.total}
