"""Storage-neutral filter expressions for product queries.

The search engine composes these nodes; a storage adapter compiles them into
its own query language (see ``db.compile_predicate``).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional, Tuple, Union

from .constants import (
    LOW_STOCK_THRESHOLD,
    STOCK_IN,
    STOCK_LOW,
    STOCK_OUT,
    TEXT_SEARCH_FIELDS,
)


@dataclass(frozen=True)
class Eq:
    field: str
    value: Any
    numeric: bool = False


@dataclass(frozen=True)
class Like:
    """Case-insensitive containment of ``term`` in ``field``."""

    field: str
    term: str


@dataclass(frozen=True)
class Range:
    field: str
    low: Optional[float] = None
    high: Optional[float] = None
    low_inclusive: bool = True
    high_inclusive: bool = False
    integer: bool = False


@dataclass(frozen=True)
class And:
    children: Tuple["Predicate", ...]


@dataclass(frozen=True)
class Or:
    children: Tuple["Predicate", ...]


Predicate = Union[Eq, Like, Range, And, Or]


def all_of(parts: Iterable[Optional[Predicate]]) -> And:
    return And(tuple(p for p in parts if p is not None))


def any_of(parts: Iterable[Optional[Predicate]]) -> Or:
    return Or(tuple(p for p in parts if p is not None))


def active_only() -> Eq:
    return Eq("is_active", True)


def category_filter(category: Optional[str]) -> Optional[Eq]:
    if category is None:
        return None
    return Eq("category", category)


def stock_filter(status: Optional[str]) -> Optional[Range]:
    """Translate a normalized stock status into a quantity range."""
    if status == STOCK_OUT:
        return Range("stock_quantity", low=0, high=0, high_inclusive=True, integer=True)
    if status == STOCK_LOW:
        return Range(
            "stock_quantity",
            low=0,
            high=LOW_STOCK_THRESHOLD,
            low_inclusive=False,
            high_inclusive=False,
            integer=True,
        )
    if status == STOCK_IN:
        return Range("stock_quantity", low=LOW_STOCK_THRESHOLD, integer=True)
    return None


def substring_any(term: str, fields: Tuple[str, ...] = TEXT_SEARCH_FIELDS) -> Or:
    return any_of(Like(f, term) for f in fields)
