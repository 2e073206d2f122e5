from __future__ import annotations

from time import perf_counter
from typing import Any, Optional

from ..logging import get_logger
from .classifier import classify_query
from .constants import DEFAULT_LIMIT, DEFAULT_OFFSET, SORT_ASC
from .models import SearchRequest, SearchResult
from .strategies import ProductStore, choose_strategy


LOG = get_logger("catalog-search")


class ProductSearchEngine:
    """Ranked, filtered, paginated product search over a ProductStore.

    Stateless per call: each search classifies the query, picks a retrieval
    strategy, and returns ``SearchResult(products, total)``. Storage errors
    surface as ``RetrievalError`` from the store.
    """

    def __init__(self, store: ProductStore, *, initials_scan_limit: Optional[int] = None) -> None:
        self.store = store
        self.initials_scan_limit = initials_scan_limit

    def search(
        self,
        query: Optional[str] = None,
        category: Optional[str] = None,
        stock_status: Optional[str] = None,
        limit: Any = DEFAULT_LIMIT,
        offset: Any = DEFAULT_OFFSET,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = SORT_ASC,
    ) -> SearchResult:
        request = SearchRequest.from_params(
            query=query,
            category=category,
            stock_status=stock_status,
            limit=limit,
            offset=offset,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return self.resolve(request)

    def resolve(self, request: SearchRequest) -> SearchResult:
        t0 = perf_counter()
        classification = classify_query(request.query)
        strategy = choose_strategy(self.store, classification, scan_limit=self.initials_scan_limit)
        result = strategy.resolve(request)
        LOG.info(
            "search q=%r kind=%s category=%r stock=%s sort=%s/%s total=%s page=%s took=%.2fms",
            request.query,
            classification.kind.value,
            request.category,
            request.stock_status,
            request.sort_by,
            request.sort_order,
            result.total,
            len(result.products),
            (perf_counter() - t0) * 1000,
        )
        return result
