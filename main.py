# main.py

"""Entry point for the product_sourcing command-line tool."""

import argparse
import asyncio
import logging
import sys

from sourcing.config.logging_config import setup_logging
from sourcing.config.settings import Settings
from sourcing.filters.category_keywords import CATEGORY_KEYWORDS

logger = logging.getLogger("product_sourcing.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="product_sourcing",
        description=(
            "Source products from AliExpress feeds and product pages "
            "for resale."
        ),
    )
    commands = parser.add_subparsers(dest="command", required=True)

    # ── search ───────────────────────────────────────────
    search = commands.add_parser(
        "search",
        help="Search the curated feeds by keyword/category.",
        epilog=(
            f"Feeds: {', '.join(Settings.AVAILABLE_FEEDS)}. "
            f"Categories: {', '.join(CATEGORY_KEYWORDS)}."
        ),
    )
    search.add_argument(
        "keywords", nargs="?", default=None,
        help="Free-text keywords (any one must appear in the title).",
    )
    search.add_argument("-c", "--category", default=None)
    search.add_argument(
        "--min-price", type=int, default=None,
        help=f"Minimum price in {Settings.TARGET_CURRENCY}.",
    )
    search.add_argument(
        "--max-price", type=int, default=None,
        help=f"Maximum price in {Settings.TARGET_CURRENCY}.",
    )
    search.add_argument("--min-rating", type=float, default=None)
    search.add_argument("--min-sales", type=int, default=None)
    search.add_argument(
        "-n", "--limit", type=int, default=Settings.DEFAULT_PAGE_SIZE,
        help="Number of listings to return.",
    )
    search.add_argument("-p", "--page", type=int, default=1)
    search.add_argument(
        "--feeds", default=None,
        help="Comma-separated feed names (default: all).",
    )
    search.add_argument(
        "-f", "--format", choices=["json", "table"], default="json",
        dest="output_format", help="Output format (default: json).",
    )
    search.add_argument(
        "-o", "--output", default=None, dest="output_dir",
        help="Custom output directory (default: results/).",
    )
    search.add_argument(
        "--csv", action="store_true", default=False, dest="export_csv",
        help="Also export the listings as CSV.",
    )

    # ── import ───────────────────────────────────────────
    imp = commands.add_parser(
        "import", help="Import one product by URL or AliExpress id.",
    )
    imp.add_argument("source", help="Product URL or numeric product id.")
    imp.add_argument(
        "--no-api", action="store_false", dest="prefer_api", default=True,
        help="Skip the structured API and go straight to page scraping.",
    )
    imp.add_argument(
        "-f", "--format", choices=["json", "table"], default="json",
        dest="output_format",
    )
    imp.add_argument("-o", "--output", default=None, dest="output_dir")

    # ── auth ─────────────────────────────────────────────
    auth = commands.add_parser("auth", help="Manage the API credential.")
    auth_commands = auth.add_subparsers(dest="auth_command", required=True)
    auth_commands.add_parser("url", help="Print the consent URL.")
    exchange = auth_commands.add_parser(
        "exchange", help="Exchange an authorisation code.",
    )
    exchange.add_argument("code")
    auth_commands.add_parser("status", help="Check the stored token.")
    auth_commands.add_parser("revoke", help="Delete stored credentials.")

    # ── health ───────────────────────────────────────────
    commands.add_parser(
        "health", help="Check connectivity to every endpoint.",
    )
    return parser


def _run_auth(args: argparse.Namespace) -> int:
    from sourcing.cli.runner import (
        run_auth_exchange,
        run_auth_revoke,
        run_auth_status,
        run_auth_url,
    )

    if args.auth_command == "url":
        return run_auth_url()
    if args.auth_command == "exchange":
        return run_auth_exchange(args.code)
    if args.auth_command == "status":
        return run_auth_status()
    return run_auth_revoke()


def run(argv: list[str] | None = None) -> int:
    """Parse *argv* and dispatch to the matching command."""
    args = _build_parser().parse_args(argv)

    if args.command == "search":
        from sourcing.cli.runner import cli_search

        return asyncio.run(
            cli_search(
                keywords=args.keywords,
                category=args.category,
                min_price=args.min_price,
                max_price=args.max_price,
                min_rating=args.min_rating,
                min_sales=args.min_sales,
                limit=args.limit,
                page=args.page,
                feed_csv=args.feeds,
                output_format=args.output_format,
                output_dir=args.output_dir,
                export_csv=args.export_csv,
            )
        )
    if args.command == "import":
        from sourcing.cli.runner import cli_import

        return asyncio.run(
            cli_import(
                source=args.source,
                prefer_api=args.prefer_api,
                output_format=args.output_format,
                output_dir=args.output_dir,
            )
        )
    if args.command == "auth":
        return _run_auth(args)

    from sourcing.cli.runner import run_health_check

    return asyncio.run(run_health_check())


def main() -> None:
    """Configure logging, run the requested command and exit with its code."""
    log_file = setup_logging()
    logger.info("product_sourcing starting, log file: %s", log_file)
    try:
        exit_code = run()
    except Exception:
        logger.critical("Fatal error", exc_info=True)
        raise
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
