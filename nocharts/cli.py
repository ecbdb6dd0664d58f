"""Command-line interface for stock lookups.

This module provides CLI commands for aggregating a ticker, searching
companies, and checking which provider keys are configured.
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from typing import Any

import structlog

from nocharts.config import Settings
from nocharts.data.aggregator import create_aggregator
from nocharts.data.models import StockRecord
from nocharts.errors import NoChartsError
from nocharts.processing.formatting import format_for_display, format_timeline_event

logger = structlog.get_logger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Send structured logs to stderr at the given level."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )


def print_record(record: StockRecord) -> None:
    """Print a record as a readable summary."""
    display = format_for_display(record)

    print(f"\n{'='*50}")
    print(f"{display['name']} ({display['symbol']}) - {display['exchange']}")
    print(f"{'='*50}")
    print(f"Price: {display['price']} ({display['change']}, {display['change_percent']})")
    print(f"Day Range: {display['day_range']}")
    print(f"Market Cap: {display['market_cap']}")
    print(f"P/E Ratio: {display['pe_ratio']}")
    print(f"Dividend Yield: {display['dividend_yield']}")
    print(f"52 Week Range: {display['week_52_range']}")
    print(f"Sector: {display['sector']} / {display['industry']}")
    print(f"News: {display['news_count']} from {display['news_source']}")
    print(f"Average Sentiment: {display['average_sentiment']}")

    if record.timeline:
        print("\nTimeline:")
        for event in record.timeline:
            row = format_timeline_event(event)
            print(f"  {row['date']}  [{row['badge']}] {row['title']}")

    if display["unavailable"]:
        print(f"\nUnavailable: {', '.join(display['unavailable'])}")
    print(f"{'='*50}\n")


async def lookup_command(args: argparse.Namespace, settings: Settings) -> int:
    """Aggregate one ticker and print it."""
    async with create_aggregator(settings) as aggregator:
        try:
            record = await aggregator.aggregate(args.ticker)
        except NoChartsError as e:
            logger.error("lookup_failed", ticker=args.ticker, error=e.to_dict())
            print(f"Error: {e.message}", file=sys.stderr)
            return 1

    if args.json:
        print(record.model_dump_json(indent=2))
    else:
        print_record(record)
    return 0


async def search_command(args: argparse.Namespace, settings: Settings) -> int:
    """Search companies by name or symbol."""
    async with create_aggregator(settings) as aggregator:
        try:
            matches = await aggregator.search_companies(args.query)
        except NoChartsError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return 1

    if args.json:
        print(json.dumps([match.model_dump() for match in matches], indent=2))
        return 0

    if not matches:
        print("No matches found")
    for match in matches:
        print(f"{match.symbol:<8} {match.name}")
    return 0


def check_keys_command(settings: Settings) -> int:
    """Report configured provider keys."""
    status = settings.validate_api_keys()
    rows: dict[str, Any] = {
        "Finnhub": status.finnhub,
        "NewsAPI": status.news_api,
        "Marketaux": status.marketaux,
    }
    for provider, configured in rows.items():
        print(f"{provider:<10} {'configured' if configured else 'missing'}")
    if status.message:
        print(status.message)
    return 0 if status.finnhub else 1


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="nocharts",
        description="Stock research without the charts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use fixture data instead of live providers",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level (defaults to LOG_LEVEL)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    lookup_parser = subparsers.add_parser("lookup", help="Aggregate data for a ticker")
    lookup_parser.add_argument("ticker", help="Ticker symbol, e.g. AAPL")
    lookup_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full record as JSON",
    )
    lookup_parser.add_argument(
        "--no-news",
        action="store_true",
        help="Skip news and timeline",
    )

    search_parser = subparsers.add_parser("search", help="Search companies")
    search_parser.add_argument("query", help="Company name or symbol")
    search_parser.add_argument(
        "--json",
        action="store_true",
        help="Print matches as JSON",
    )

    subparsers.add_parser("check-keys", help="Show which API keys are configured")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for CLI.

    Returns:
        Exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    settings = Settings.from_env()
    if args.mock:
        settings = replace(settings, MOCK_MODE=True)
    if getattr(args, "no_news", False):
        settings = replace(settings, NEWS_ENABLED=False, TIMELINE_ENABLED=False)

    configure_logging(args.log_level or settings.LOG_LEVEL)

    if args.command == "lookup":
        return asyncio.run(lookup_command(args, settings))
    if args.command == "search":
        return asyncio.run(search_command(args, settings))
    if args.command == "check-keys":
        return check_keys_command(settings)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
