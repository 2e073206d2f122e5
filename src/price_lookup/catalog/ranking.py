"""In-memory ranking used when results cannot be ordered by the database.

Acronym queries ("bcc" for "Boss Classic Cola") are resolved here: the whole
filtered candidate set is materialized, split into initials matches and plain
substring matches, and only then sorted and paged.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple, TypeVar

from .constants import (
    DATE_FIELDS,
    NUMERIC_FIELDS,
    SORT_DESC,
    SORT_FIELDS,
    SORT_NAME,
    SORT_RELEVANCE,
    TEXT_SEARCH_FIELDS,
)
from .models import Product

MATCH_INITIALS = "initials"
MATCH_SUBSTRING = "substring"

T = TypeVar("T")


def extract_initials(name: Optional[str]) -> str:
    """Upper-cased first letter of every whitespace-separated word."""
    return "".join(word[0].upper() for word in (name or "").split())


def matches_initials(query: str, name: Optional[str]) -> bool:
    initials = extract_initials(name)
    if not initials:
        return False
    return initials.startswith(query.upper())


def matches_substring(query: str, product: Product) -> bool:
    needle = query.lower()
    for field_name in TEXT_SEARCH_FIELDS:
        value = getattr(product, field_name)
        if value and needle in value.lower():
            return True
    return False


def classify_match(query: str, product: Product) -> Optional[str]:
    if matches_initials(query, product.name):
        return MATCH_INITIALS
    if matches_substring(query, product):
        return MATCH_SUBSTRING
    return None


def rank_by_initials(query: str, candidates: Sequence[Product]) -> List[Product]:
    """Initials matches first, then substring-only matches; others dropped.

    Both groups keep their retrieval order.
    """
    initials: List[Product] = []
    substring: List[Product] = []
    for product in candidates:
        match = classify_match(query, product)
        if match == MATCH_INITIALS:
            initials.append(product)
        elif match == MATCH_SUBSTRING:
            substring.append(product)
    return initials + substring


def _parse_number(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_timestamp(value: Any) -> Optional[float]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).timestamp()
    except ValueError:
        return None


def _sort_value(product: Product, field_name: str) -> Tuple[bool, Any]:
    raw = getattr(product, field_name)
    if field_name in NUMERIC_FIELDS:
        value = _parse_number(raw)
    elif field_name in DATE_FIELDS:
        value = _parse_timestamp(raw)
    else:
        value = raw
    # Missing values sort first ascending, matching SQLite's NULL ordering.
    return (value is not None, value if value is not None else 0)


def sort_products(products: Sequence[Product], sort_by: Optional[str], sort_order: str) -> List[Product]:
    """Stable in-memory sort; relevance (or no key) keeps the given order."""
    if not sort_by or sort_by == SORT_RELEVANCE:
        return list(products)
    field_name = SORT_FIELDS.get(sort_by)
    reverse = sort_order == SORT_DESC
    if field_name is None:
        field_name, reverse = SORT_FIELDS[SORT_NAME], False
    return sorted(products, key=lambda p: _sort_value(p, field_name), reverse=reverse)


def paginate(items: Sequence[T], limit: Optional[int], offset: int) -> List[T]:
    if limit is None:
        return list(items[offset:])
    return list(items[offset:offset + limit])
