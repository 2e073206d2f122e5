"""
Barcode price lookup: catalog search and product API.

Shared utilities (config, logging, paths) live at the top level; the product
catalog, its search engine, and the HTTP API live in ``price_lookup.catalog``.
"""

__all__ = [
    "config",
    "logging",
    "paths",
]
