from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, List, Optional

from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ...config import load_db_path, load_exchange_rates, load_initials_scan_limit
from ...logging import get_logger
from ...paths import find_project_root
from ..constants import SORT_OPTIONS, SORT_ORDERS
from ..db import CatalogDatabase
from ..errors import ProductValidationError, RetrievalError
from ..exchange import ExchangeRateCache
from ..service import CatalogService


LOG = get_logger("catalog-api")


def _iso(ts: Optional[float]) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise HTTPException(status_code=400, detail="Request body must be valid JSON") from exc


def create_app(
    root_dir: Optional[str] = None,
    *,
    db_path: Optional[str] = None,
    allow_origins: Optional[List[str]] = None,
    exchange_rates: Optional[ExchangeRateCache] = None,
) -> Starlette:
    """Create a Starlette app exposing the catalog search and lookup API."""

    project_root = find_project_root(root_dir)
    db = CatalogDatabase(root_dir=project_root, db_path=db_path or load_db_path(project_root))
    if exchange_rates is None:
        url, ttl = load_exchange_rates(project_root)
        exchange_rates = ExchangeRateCache(url, ttl_seconds=ttl)
    service = CatalogService(
        db,
        initials_scan_limit=load_initials_scan_limit(project_root),
        exchange_rates=exchange_rates,
    )

    def _search_response(request: Request, query_param: str) -> JSONResponse:
        qp = request.query_params
        result = service.search(
            query=qp.get(query_param),
            category=qp.get("category"),
            stock_status=qp.get("stockStatus"),
            limit=qp.get("limit"),
            offset=qp.get("offset"),
            sort_by=qp.get("sortBy"),
            sort_order=qp.get("sortOrder"),
        )
        return JSONResponse(result.to_dict())

    async def health(_: Request) -> JSONResponse:
        return JSONResponse({"status": "ok", "db_path": db.db_path})

    async def search_products(request: Request) -> JSONResponse:
        return _search_response(request, "q")

    async def list_products(request: Request) -> JSONResponse:
        return _search_response(request, "search")

    async def create_product(request: Request) -> JSONResponse:
        payload = await _json_body(request)
        try:
            product = service.create_product(payload)
        except ProductValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return JSONResponse(product.to_dict(), status_code=201)

    async def product_by_barcode(request: Request) -> JSONResponse:
        product = service.lookup_barcode(request.path_params["barcode"])
        if product is None:
            raise HTTPException(status_code=404, detail="Product not found")
        return JSONResponse(product.to_dict())

    async def product_detail(request: Request) -> JSONResponse:
        product = service.get_product(request.path_params["product_id"])
        if product is None:
            raise HTTPException(status_code=404, detail="Product not found")
        return JSONResponse(product.to_dict())

    async def update_product(request: Request) -> JSONResponse:
        payload = await _json_body(request)
        try:
            product = service.update_product(request.path_params["product_id"], payload)
        except ProductValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        if product is None:
            raise HTTPException(status_code=404, detail="Product not found")
        return JSONResponse(product.to_dict())

    async def product_analytics(request: Request) -> JSONResponse:
        payload = service.product_analytics(request.path_params["product_id"])
        if payload is None:
            raise HTTPException(status_code=404, detail="Product not found")
        return JSONResponse(payload)

    async def price_history(request: Request) -> JSONResponse:
        return JSONResponse(service.price_history(request.path_params["product_id"]))

    async def record_price(request: Request) -> JSONResponse:
        payload = await _json_body(request)
        try:
            detail = service.record_purchase_price(request.path_params["product_id"], payload)
        except ProductValidationError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        if detail is None:
            raise HTTPException(status_code=404, detail="Product not found")
        return JSONResponse(detail, status_code=201)

    async def categories(_: Request) -> JSONResponse:
        return JSONResponse(service.categories())

    async def sort_options(_: Request) -> JSONResponse:
        return JSONResponse({"sortOptions": SORT_OPTIONS, "sortOrders": SORT_ORDERS})

    async def stats(_: Request) -> JSONResponse:
        payload = dict(service.stats())
        payload["last_update"] = datetime.now(timezone.utc).isoformat()
        return JSONResponse(payload)

    async def rates(_: Request) -> JSONResponse:
        current = exchange_rates.get_rates()
        info = exchange_rates.cache_info()
        return JSONResponse(
            {
                "rates": current,
                "cache": {
                    "last_updated": _iso(info["last_updated"]),
                    "expires_at": _iso(info["expires_at"]),
                },
            }
        )

    async def api_only(_: Request) -> JSONResponse:
        return JSONResponse({"detail": "Catalog API is running. See /api/health."})

    async def http_error(_: Request, exc: HTTPException) -> JSONResponse:
        return JSONResponse({"detail": exc.detail}, status_code=exc.status_code)

    async def retrieval_error(_: Request, exc: RetrievalError) -> JSONResponse:
        LOG.error("Catalog retrieval failed: %s", exc.__cause__ or exc)
        return JSONResponse({"detail": "Failed to fetch products"}, status_code=500)

    routes = [
        Route("/api/health", health, methods=["GET"]),
        Route("/api/products/search", search_products, methods=["GET"]),
        Route("/api/products", list_products, methods=["GET"]),
        Route("/api/products", create_product, methods=["POST"]),
        Route("/api/products/barcode/{barcode:str}", product_by_barcode, methods=["GET"]),
        Route("/api/products/{product_id:int}", product_detail, methods=["GET"]),
        Route("/api/products/{product_id:int}", update_product, methods=["PATCH"]),
        Route("/api/products/{product_id:int}/analytics", product_analytics, methods=["GET"]),
        Route("/api/products/{product_id:int}/price-history", price_history, methods=["GET"]),
        Route("/api/products/{product_id:int}/prices", record_price, methods=["POST"]),
        Route("/api/categories", categories, methods=["GET"]),
        Route("/api/sort-options", sort_options, methods=["GET"]),
        Route("/api/stats", stats, methods=["GET"]),
        Route("/api/exchange-rates", rates, methods=["GET"]),
        Route("/", api_only, methods=["GET"]),
    ]

    app = Starlette(
        debug=False,
        routes=routes,
        exception_handlers={
            HTTPException: http_error,
            RetrievalError: retrieval_error,
        },
    )

    origins = allow_origins or ["http://localhost:5173", "http://127.0.0.1:5173"]
    if "*" in origins:
        cors_allow_origins = ["*"]
    else:
        cors_allow_origins = origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


__all__ = ["create_app"]
