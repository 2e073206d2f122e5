from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, Tuple

from ..logging import get_logger
from .classifier import QueryClassification, QueryKind, text_predicate
from .constants import SORT_ASC, SORT_DESC, SORT_FIELDS, SORT_NAME
from .models import Product, SearchRequest, SearchResult
from .predicates import Predicate, active_only, all_of, category_filter, stock_filter
from .ranking import paginate, rank_by_initials, sort_products


LOG = get_logger("catalog-search")

OrderBy = Sequence[Tuple[str, str]]


class ProductStore(Protocol):
    def count(self, predicate: Predicate) -> int: ...

    def query(
        self,
        predicate: Predicate,
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Product]: ...

    def query_all(self, predicate: Predicate, cap: Optional[int] = None) -> List[Product]: ...


class RetrievalStrategy(Protocol):
    def resolve(self, request: SearchRequest) -> SearchResult: ...


def filter_predicate(request: SearchRequest, text: Optional[Predicate] = None) -> Predicate:
    return all_of(
        [
            active_only(),
            category_filter(request.category),
            stock_filter(request.stock_status),
            text,
        ]
    )


def storage_order(sort_by: Optional[str], sort_order: str) -> List[Tuple[str, str]]:
    """ORDER BY terms for the database path.

    Unknown keys, relevance, and no key at all order by name ascending; there
    is no relevance signal on this path. ``product_id`` breaks ties so pages
    never overlap.
    """
    field_name = SORT_FIELDS.get(sort_by or "")
    if field_name is None:
        return [(SORT_FIELDS[SORT_NAME], SORT_ASC), ("product_id", SORT_ASC)]
    direction = SORT_DESC if sort_order == SORT_DESC else SORT_ASC
    return [(field_name, direction), ("product_id", SORT_ASC)]


class StorageRetrieval:
    """Filter, sort, and page entirely inside the database."""

    def __init__(self, store: ProductStore, classification: QueryClassification) -> None:
        self.store = store
        self.classification = classification

    def resolve(self, request: SearchRequest) -> SearchResult:
        predicate = filter_predicate(request, text_predicate(self.classification))
        total = self.store.count(predicate)
        products = self.store.query(
            predicate,
            order_by=storage_order(request.sort_by, request.sort_order),
            limit=request.limit,
            offset=request.offset,
        )
        return SearchResult(products=products, total=total)


class InitialsRetrieval:
    """Materialize every filtered candidate, rank by initials, then sort and page."""

    def __init__(
        self,
        store: ProductStore,
        classification: QueryClassification,
        *,
        scan_limit: Optional[int] = None,
    ) -> None:
        self.store = store
        self.classification = classification
        self.scan_limit = scan_limit

    def resolve(self, request: SearchRequest) -> SearchResult:
        candidates = self.store.query_all(filter_predicate(request), cap=self.scan_limit)
        if self.scan_limit is not None and len(candidates) >= self.scan_limit:
            LOG.warning(
                "Initials search hit the scan limit (%s rows); ranking a truncated candidate set",
                self.scan_limit,
            )
        ranked = rank_by_initials(self.classification.term, candidates)
        ordered = sort_products(ranked, request.sort_by, request.sort_order)
        return SearchResult(
            products=paginate(ordered, request.limit, request.offset),
            total=len(ordered),
        )


def choose_strategy(
    store: ProductStore,
    classification: QueryClassification,
    *,
    scan_limit: Optional[int] = None,
) -> RetrievalStrategy:
    if classification.kind == QueryKind.INITIALS_CANDIDATE:
        return InitialsRetrieval(store, classification, scan_limit=scan_limit)
    return StorageRetrieval(store, classification)


__all__ = [
    "InitialsRetrieval",
    "ProductStore",
    "RetrievalStrategy",
    "StorageRetrieval",
    "choose_strategy",
    "filter_predicate",
    "storage_order",
]
