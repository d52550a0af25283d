"""Command-line interface for the catalog search engine."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from .bootstrap import build_orchestrator, shutdown_orchestrator
from .config import Settings, get_settings
from .errors import AllSourcesExhausted, SourceUnavailable
from .metrics import metrics_payload
from .models import KIND_FILTERS, SORT_ORDERS, ResultPage, SearchFilters
from .sources import HttpCatalogSource
from .text import highlight_term


def _format_name(name: str, query: str) -> str:
    span = highlight_term(name, query)
    if span is None:
        return name
    return f"{span.before}[{span.match}]{span.after}"


def _print_page(page: ResultPage, *, title: str, highlight: str) -> None:
    first = page.offset + 1 if page.items else 0
    last = page.offset + len(page.items)
    print(
        f"→ {title} (kind={page.kind_filter}, source={page.source}, "
        f"{page.elapsed_ms:.1f} ms): {page.total} result(s), showing {first}-{last}"
    )
    for scored in page.items:
        item = scored.item
        owner = f" @ {item.venue_name}" if item.kind == "dish" and item.venue_name else ""
        print(f"   - [{item.kind}] {_format_name(item.name, highlight)}{owner} (score={scored.score})")
    if page.has_more:
        print(f"   … more results (use --offset {last})")
    for warning in page.warnings:
        print(f"   ! {warning}")


def _build_filters(
    *,
    category: str | None = None,
    venue_id: str | None = None,
    min_price: float | None = None,
    max_price: float | None = None,
    sort_by: str = "relevance",
) -> SearchFilters | None:
    if category is None and venue_id is None and min_price is None and max_price is None:
        if sort_by == "relevance":
            return None
    return SearchFilters(
        category=category,
        venue_id=venue_id,
        min_price=min_price,
        max_price=max_price,
        sort_by=sort_by,
    )


async def _search_async(
    settings: Settings,
    *,
    query: str,
    kind: str,
    catalog_path: Path | None,
    filters: SearchFilters | None,
    limit: int | None,
    offset: int,
) -> int:
    orchestrator = await build_orchestrator(settings, catalog_path=catalog_path)
    try:
        page = await orchestrator.advanced_search(
            query,
            filters,
            kind,  # type: ignore[arg-type]
            limit=limit,
            offset=offset,
        )
    except AllSourcesExhausted as exc:
        print(f"Search failed: {exc}", file=sys.stderr)
        for warning in exc.warnings:
            print(f"   ! {warning}", file=sys.stderr)
        return 2
    finally:
        await shutdown_orchestrator(orchestrator)

    if page is None or page.total == 0:
        print(f"No results for '{query}'.")
        return 0
    _print_page(page, title=f"Search '{page.query}'", highlight=page.query)
    return 0


async def _category_async(
    settings: Settings,
    *,
    category_id: str,
    catalog_path: Path | None,
    limit: int | None,
    offset: int,
) -> int:
    orchestrator = await build_orchestrator(settings, catalog_path=catalog_path)
    try:
        page = await orchestrator.browse_category(category_id, limit=limit, offset=offset)
    except AllSourcesExhausted as exc:
        print(f"Category unavailable: {exc}", file=sys.stderr)
        return 2
    finally:
        await shutdown_orchestrator(orchestrator)

    if page.total == 0:
        print(f"No dishes in category '{category_id}'.")
        return 0
    _print_page(page, title=f"Category '{category_id}'", highlight="")
    return 0


async def _suggest_async(settings: Settings, *, query: str, catalog_path: Path | None) -> int:
    orchestrator = await build_orchestrator(settings, catalog_path=catalog_path)
    try:
        suggestions = await orchestrator.fetch_suggestions(query)
    finally:
        await shutdown_orchestrator(orchestrator)

    if not suggestions:
        print(f"No suggestions for '{query}'.")
        return 0
    print(f"→ Suggestions for '{query}' ({len(suggestions)} name(s))")
    for suggestion in suggestions:
        print(f"   - {suggestion}")
    return 0


async def _recent_async(settings: Settings, *, clear: bool) -> int:
    orchestrator = await build_orchestrator(settings)
    try:
        if clear:
            orchestrator.clear_recent_searches()
            print("Recent searches cleared.")
            return 0
        entries = orchestrator.recent_searches()
    finally:
        await shutdown_orchestrator(orchestrator)

    if not entries:
        print("No recent searches.")
        return 0
    for entry in entries:
        print(f"   - {entry.query} (kind={entry.kind_filter}, at {entry.timestamp.isoformat()})")
    return 0


async def _diagnose_async(settings: Settings, *, query: str, show_metrics: bool = False) -> int:
    source = HttpCatalogSource(settings)
    available = 0
    try:
        await source.initialise()
        for endpoint in settings.search_endpoints:
            try:
                items = await source.remote_search(endpoint, query)
            except SourceUnavailable as exc:
                print(f"   ✗ {endpoint}: {exc}")
                continue
            available += 1
            print(f"   ✓ {endpoint}: {len(items)} item(s)")
        try:
            venues = await source.list_venues()
        except SourceUnavailable as exc:
            print(f"   ✗ {settings.venues_path}: {exc}")
        else:
            print(f"   ✓ {settings.venues_path}: {len(venues)} venue(s)")
    finally:
        await source.shutdown()
    print(f"→ {available}/{len(settings.search_endpoints)} search endpoint(s) available")
    if show_metrics:
        payload, _ = metrics_payload()
        print(payload.decode("utf-8"))
    return 0


def _add_paging_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--catalog",
        type=Path,
        help="Read a JSON catalog snapshot instead of the HTTP API",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Results per page (default: SEARCH_PAGE_SIZE)",
    )
    parser.add_argument(
        "--offset",
        type=int,
        default=0,
        help="Number of results to skip (default: 0)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Search a food catalog with relevance ranking",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    search_parser = subparsers.add_parser("search", help="Run a ranked catalog search")
    search_parser.add_argument("query", help="Free-text query")
    search_parser.add_argument(
        "--kind",
        choices=KIND_FILTERS,
        default="all",
        help="Restrict results to dishes or venues (default: all)",
    )
    _add_paging_arguments(search_parser)
    search_parser.add_argument("--category", help="Keep items of this category only")
    search_parser.add_argument("--venue", help="Keep one venue and its dishes only")
    search_parser.add_argument("--min-price", type=float, help="Lowest dish price")
    search_parser.add_argument("--max-price", type=float, help="Highest dish price")
    search_parser.add_argument(
        "--sort",
        choices=SORT_ORDERS,
        default="relevance",
        help="Result order (default: relevance)",
    )

    category_parser = subparsers.add_parser("category", help="List the dishes of a category")
    category_parser.add_argument("category_id", help="Category id or name")
    _add_paging_arguments(category_parser)

    suggest_parser = subparsers.add_parser("suggest", help="Show autocomplete suggestions")
    suggest_parser.add_argument("query", help="Partial query")
    suggest_parser.add_argument("--catalog", type=Path, help="JSON catalog snapshot")

    recent_parser = subparsers.add_parser("recent", help="List recent searches")
    recent_parser.add_argument(
        "--clear",
        action="store_true",
        help="Forget every recent search",
    )

    diagnose_parser = subparsers.add_parser(
        "diagnose", help="Check the configured remote search endpoints"
    )
    diagnose_parser.add_argument(
        "--query",
        default="test",
        help="Query sent to each endpoint (default: test)",
    )
    diagnose_parser.add_argument(
        "--metrics",
        action="store_true",
        help="Print the Prometheus metrics collected during the run",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING))
    if getattr(args, "limit", None) is not None and args.limit < 1:
        parser.error("--limit must be at least 1")
    if getattr(args, "offset", 0) < 0:
        parser.error("--offset must not be negative")
    settings = get_settings()

    if args.command == "search":
        try:
            filters = _build_filters(
                category=args.category,
                venue_id=args.venue,
                min_price=args.min_price,
                max_price=args.max_price,
                sort_by=args.sort,
            )
        except ValidationError as exc:
            print(f"Invalid filters: {exc}", file=sys.stderr)
            return 2
        return asyncio.run(
            _search_async(
                settings,
                query=args.query,
                kind=args.kind,
                catalog_path=args.catalog,
                filters=filters,
                limit=args.limit,
                offset=args.offset,
            )
        )

    if args.command == "category":
        return asyncio.run(
            _category_async(
                settings,
                category_id=args.category_id,
                catalog_path=args.catalog,
                limit=args.limit,
                offset=args.offset,
            )
        )

    if args.command == "suggest":
        return asyncio.run(_suggest_async(settings, query=args.query, catalog_path=args.catalog))

    if args.command == "recent":
        return asyncio.run(_recent_async(settings, clear=args.clear))

    if args.command == "diagnose":
        return asyncio.run(
            _diagnose_async(settings, query=args.query, show_metrics=args.metrics)
        )

    parser.print_help()
    return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
