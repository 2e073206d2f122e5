"""Product catalog package.

Modules:
- db: SQLite storage, predicate compilation, analytics queries
- classifier / ranking / strategies / search: the product search engine
- parser: payload validation for product and purchase price writes
- importer: CSV import of legacy catalog exports
- exchange: time-bounded exchange rate cache
- service: API-facing service layer
- frontend: Starlette JSON API
"""

from .db import CatalogDatabase
from .models import Product, SearchRequest, SearchResult
from .search import ProductSearchEngine
from .service import CatalogService
from .frontend.app import create_app

__all__ = [
    "CatalogDatabase",
    "CatalogService",
    "Product",
    "ProductSearchEngine",
    "SearchRequest",
    "SearchResult",
    "create_app",
]
