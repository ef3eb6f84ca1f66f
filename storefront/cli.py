from __future__ import annotations

import argparse
import json
from pathlib import Path

import uvicorn
from pydantic import TypeAdapter, ValidationError

from storefront.core.config import get_settings
from storefront.core.logging import configure_logging
from storefront.demo import seed_demo_catalog
from storefront.errors import PricingError
from storefront.persistence.db import init_db, session_scope
from storefront.pricing import LineItemRequest, PricingEngine, PricingPolicy, SqlCatalog


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Storefront checkout CLI")
    top = parser.add_subparsers(dest="command", required=True)

    top.add_parser("seed", help="Create tables and load the demo catalog")
    top.add_parser("serve", help="Run the HTTP API")

    quote = top.add_parser("quote", help="Price a cart file without creating an order")
    quote.add_argument("cart", help="Path to a JSON list of checkout items (camelCase keys)")
    quote.add_argument("--discount", default=None, help="Discount code to apply")

    return parser


def _seed(_: argparse.Namespace) -> int:
    init_db()
    with session_scope() as session:
        result = seed_demo_catalog(session)
    print(json.dumps(result, indent=2))
    return 0


def _quote(args: argparse.Namespace) -> int:
    raw = json.loads(Path(args.cart).read_text())
    if isinstance(raw, dict):
        raw = raw.get("items", [])
    try:
        items = TypeAdapter(list[LineItemRequest]).validate_python(raw)
    except ValidationError as exc:
        print(json.dumps({"error": "Invalid cart file", "details": json.loads(exc.json())}, indent=2))
        return 2

    init_db()
    with session_scope() as session:
        engine = PricingEngine(SqlCatalog(session), PricingPolicy.from_settings(get_settings()))
        try:
            quote = engine.compute_order(items, args.discount)
        except PricingError as exc:
            print(json.dumps(exc.to_payload(), indent=2))
            return 1
    print(json.dumps(quote.to_dict(), indent=2))
    return 0


def _serve(_: argparse.Namespace) -> int:
    settings = get_settings()
    uvicorn.run("storefront.main:app", host=settings.api_host, port=settings.api_port, log_level=settings.log_level.lower())
    return 0


def main() -> int:
    configure_logging()
    parser = _build_parser()
    args = parser.parse_args()

    if args.command == "seed":
        return _seed(args)
    if args.command == "quote":
        return _quote(args)
    if args.command == "serve":
        return _serve(args)

    parser.error("unsupported command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
