"""
Main entry point for Prospector.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from prospector.collect.errors import FatalCollectionError
from prospector.collect.rate_governor import build_rate_governor
from prospector.collect.session import SearchOrchestrator, SessionResult
from prospector.crawler.browser import BrowserSession
from prospector.export.writer import (
    SUPPORTED_FORMATS,
    build_output_stem,
    build_summary,
    export_result,
)
from prospector.sources.base import Location
from prospector.sources.registry import DEPTH_TIERS, build_sources
from prospector.utils.config import Settings, get_settings
from prospector.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def positive_int(value: str) -> int:
    """argparse type for the record budget."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from None
    if number <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return number


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="prospector",
        description="Prospector - collect people and business records from several web sources",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Run a collection")
    search.add_argument("--query", "-q", required=True, help="Profession or business type")
    search.add_argument("--city", required=True, help="City to search in")
    search.add_argument("--country", default="", help="Country to search in")
    search.add_argument(
        "--depth",
        choices=sorted(DEPTH_TIERS),
        default=settings.collection.default_depth,
        help="Source tier (default: %(default)s)",
    )
    search.add_argument(
        "--limit",
        type=positive_int,
        default=settings.collection.default_budget,
        help="Target number of records (default: %(default)s)",
    )
    search.add_argument(
        "--output-dir",
        type=Path,
        default=Path(settings.general.output_dir),
        help="Directory for exported files (default: %(default)s)",
    )
    search.add_argument(
        "--format",
        nargs="+",
        choices=SUPPORTED_FORMATS,
        default=list(SUPPORTED_FORMATS),
        dest="formats",
        help="Export formats",
    )
    search.add_argument(
        "--no-enrich",
        action="store_true",
        help="Skip detail-page enrichment",
    )
    return parser


async def run_search(args: argparse.Namespace, settings: Settings) -> SessionResult:
    """Run one collection inside a shared browser session."""
    location = Location(args.city, args.country)
    orchestrator = SearchOrchestrator(
        args.query,
        location,
        governor=build_rate_governor(settings.rate),
        enrich=settings.collection.enrich_records and not args.no_enrich,
    )

    async with BrowserSession(settings.browser) as browser:
        sources = build_sources(args.depth, browser, settings)
        return await orchestrator.run(sources, args.limit)


def report(result: SessionResult, written: dict[str, Path]) -> None:
    """Print a human-readable completion summary."""
    if not result.records:
        print("\nNo data found. This might indicate:")
        print("  - Very specific search criteria")
        print("  - Platform access issues")
        print("  - Need to adjust search terms")
        return

    print("\nSearch complete")
    print(f"  Total records found: {len(result.records)} / {result.target_budget}")
    print(f"  Sources searched: {', '.join(s.name for s in result.sources_consulted)}")
    print(f"  Data fields: {len(result.fields)}")
    for name, path in written.items():
        print(f"  {name}: {path}")


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    settings = get_settings()
    args = build_parser(settings).parse_args(argv)

    logs_dir = Path(settings.general.logs_dir)
    configure_logging(
        log_level=settings.general.log_level,
        log_file=logs_dir / "prospector.log",
        json_format=True,
    )
    logger.info(
        "Prospector starting",
        version=settings.general.version,
        query=args.query,
        city=args.city,
        country=args.country,
        depth=args.depth,
        limit=args.limit,
    )

    try:
        result = asyncio.run(run_search(args, settings))
    except FatalCollectionError as e:
        logger.error("Search aborted", error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    written: dict[str, Path] = {}
    if result.records:
        started = datetime.now()
        stem = build_output_stem(args.query, args.city, args.depth, started)
        summary = build_summary(result, args.query, args.city, args.country, args.depth, started)
        written = export_result(result, args.output_dir, stem, args.formats, summary)

    report(result, written)
    return 0


if __name__ == "__main__":
    sys.exit(main())
