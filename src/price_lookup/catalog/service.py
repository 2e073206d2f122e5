from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..logging import get_logger
from .db import CatalogDatabase
from .exchange import ExchangeRateCache
from .models import Product, SearchResult
from .parser import parse_product_payload, parse_purchase_price_payload
from .search import ProductSearchEngine


LOG = get_logger("catalog-service")


class CatalogService:
    """Coordinates catalog storage, search, and exchange rates for the API."""

    def __init__(
        self,
        db: Optional[CatalogDatabase] = None,
        *,
        initials_scan_limit: Optional[int] = None,
        exchange_rates: Optional[ExchangeRateCache] = None,
    ) -> None:
        self.db = db or CatalogDatabase()
        self.engine = ProductSearchEngine(self.db, initials_scan_limit=initials_scan_limit)
        self.exchange_rates = exchange_rates

    def search(self, **params: Any) -> SearchResult:
        return self.engine.search(**params)

    def lookup_barcode(self, barcode: str) -> Optional[Product]:
        """Resolve a scanned barcode and record the scan when found."""
        product = self.db.get_product_by_barcode(barcode)
        if product is None:
            LOG.info("Barcode %r not found", barcode)
            return None
        self.db.record_scan(product.product_id)
        LOG.debug("Recorded scan for product_id=%s", product.product_id)
        return product

    def get_product(self, product_id: int) -> Optional[Product]:
        return self.db.get_product(product_id)

    def create_product(self, payload: Any) -> Product:
        product = self.db.create_product(parse_product_payload(payload))
        LOG.info("Created product_id=%s barcode=%s", product.product_id, product.barcode)
        return product

    def update_product(self, product_id: int, payload: Any) -> Optional[Product]:
        return self.db.update_product(product_id, parse_product_payload(payload, partial=True))

    def product_analytics(self, product_id: int) -> Optional[Dict[str, Any]]:
        return self.db.fetch_product_analytics(product_id)

    def price_history(self, product_id: int) -> List[Dict[str, Any]]:
        return self.db.fetch_price_history(product_id)

    def record_purchase_price(self, product_id: int, payload: Any) -> Optional[Dict[str, Any]]:
        """Store a purchase price; None when the product does not exist."""
        values = parse_purchase_price_payload(payload)
        if self.db.get_product(product_id) is None:
            return None
        return self.db.insert_purchase_price(product_id, values)

    def categories(self) -> List[str]:
        return self.db.fetch_categories()

    def stats(self) -> Dict[str, int]:
        return {
            "total_products": self.db.count_products(),
            "scans_today": self.db.count_scans_today(),
        }
