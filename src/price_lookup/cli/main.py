from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Sequence

from ..config import load_db_path, load_initials_scan_limit
from ..logging import get_logger
from ..paths import expand_abs
from ..catalog.constants import SORT_ASC, SORT_DESC, SORT_KEY_CHOICES
from ..catalog.db import CatalogDatabase
from ..catalog.errors import RetrievalError
from ..catalog.importer import import_products_csv, import_purchase_prices_csv
from ..catalog.search import ProductSearchEngine

LOG = get_logger("cli-main")


def _open_db(ns: argparse.Namespace) -> CatalogDatabase:
    db_path = ns.db or load_db_path(os.getcwd())
    return CatalogDatabase(root_dir=os.getcwd(), db_path=expand_abs(db_path) if db_path else None)


def _add_search_cli(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    search = subparsers.add_parser("search", help="Search the catalog and print the result page as JSON.")
    search.add_argument("query", nargs="?", default=None, help="Free-text query (barcode, name, initials, price)")
    search.add_argument("--category")
    search.add_argument("--stock-status", help="out_of_stock | low_stock | in_stock | all")
    search.add_argument("--limit", default="10", help="Page size, or 'all'")
    search.add_argument("--offset", default="0")
    search.add_argument("--sort-by", choices=SORT_KEY_CHOICES)
    search.add_argument("--sort-order", choices=[SORT_ASC, SORT_DESC], default=SORT_ASC)

    def _search(ns: argparse.Namespace) -> int:
        db = _open_db(ns)
        engine = ProductSearchEngine(db, initials_scan_limit=load_initials_scan_limit(os.getcwd()))
        try:
            result = engine.search(
                query=ns.query,
                category=ns.category,
                stock_status=ns.stock_status,
                limit=ns.limit,
                offset=ns.offset,
                sort_by=ns.sort_by,
                sort_order=ns.sort_order,
            )
        except RetrievalError as exc:
            LOG.error(f"Search failed: {exc.__cause__ or exc}")
            return 1
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return 0

    search.set_defaults(handler=_search)


def main(argv: Sequence[str] | None = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    LOG.info(f"Catalog CLI invoked with arguments: {provided}")

    parser = argparse.ArgumentParser(
        prog="price-lookup",
        description="Catalog tools for the barcode price lookup service.",
    )
    parser.add_argument("--db", help="SQLite path (defaults to PRICE_LOOKUP_DB or var/catalog/catalog.sqlite3)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_cmd = subparsers.add_parser("init", help="Create/ensure the catalog DB schema exists")

    def _init(ns: argparse.Namespace) -> int:
        db = _open_db(ns)
        LOG.info(f"Catalog DB ready at: {db.db_path}")
        print(db.db_path)
        return 0

    init_cmd.set_defaults(handler=_init)

    import_cmd = subparsers.add_parser("import", help="Import products and purchase prices from CSV exports")
    import_cmd.add_argument("--products", help="Path to products.csv")
    import_cmd.add_argument("--purchases", help="Path to detail_commande.csv (imported after products)")

    def _import(ns: argparse.Namespace) -> int:
        if not ns.products and not ns.purchases:
            LOG.error("Nothing to import. Provide --products and/or --purchases.")
            return 2
        db = _open_db(ns)
        summary = {}
        if ns.products:
            summary["products"] = import_products_csv(db, expand_abs(ns.products))
        if ns.purchases:
            summary["purchases"] = import_purchase_prices_csv(db, expand_abs(ns.purchases))
        print(json.dumps(summary))
        return 0

    import_cmd.set_defaults(handler=_import)

    _add_search_cli(subparsers)

    serve = subparsers.add_parser("serve", help="Run the catalog JSON API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload (development only)")
    serve.add_argument("--log-level", default="info")
    serve.add_argument(
        "--allow-origin",
        action="append",
        dest="allow_origins",
        help="Allowed CORS origin (can be provided multiple times, use '*' for any).",
    )

    def _serve(ns: argparse.Namespace) -> int:
        from ..catalog.frontend import create_app
        import uvicorn

        app = create_app(
            root_dir=os.getcwd(),
            db_path=expand_abs(ns.db) if ns.db else None,
            allow_origins=ns.allow_origins,
        )
        uvicorn.run(
            app,
            host=ns.host,
            port=ns.port,
            reload=ns.reload,
            log_level=ns.log_level,
        )
        return 0

    serve.set_defaults(handler=_serve)

    args = parser.parse_args(provided)
    code = args.handler(args)
    LOG.info(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
