"""CLI entry point for the UCC lien scraper."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from ucc_scraper.core.config import Settings
from ucc_scraper.core.schemas import SearchOutcome
from ucc_scraper.pipeline.orchestrator import export_outcomes_json, run_searches
from ucc_scraper.platforms.registry import (
    available_jurisdictions,
    build_scraper,
    check_overrides,
    get_adapter,
    resolve_config,
)

DEFAULT_CONFIG = "config/settings.yaml"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="UCC lien scraper - search state filing portals for UCC filings",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- search subcommand ---
    search_parser = subparsers.add_parser("search", help="Run UCC searches")
    search_parser.add_argument(
        "--state", required=True, help="Jurisdiction code (e.g. CA)",
    )
    search_parser.add_argument(
        "--query", "-q",
        action="append",
        required=True,
        help="Company name to search (repeatable)",
    )
    search_parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG,
        help=f"Path to settings YAML file (default: {DEFAULT_CONFIG})",
    )
    search_parser.add_argument(
        "--export",
        choices=["json"],
        help="Export outcomes to format (json)",
    )
    search_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    # --- manual-url subcommand ---
    url_parser = subparsers.add_parser(
        "manual-url", help="Print the manual search link without launching a browser",
    )
    url_parser.add_argument("--state", required=True, help="Jurisdiction code (e.g. CA)")
    url_parser.add_argument("--query", "-q", required=True, help="Company name")
    url_parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG,
        help=f"Path to settings YAML file (default: {DEFAULT_CONFIG})",
    )

    # --- list-states subcommand ---
    subparsers.add_parser("list-states", help="List supported jurisdictions")

    args = parser.parse_args(argv)
    if not hasattr(args, "verbose"):
        args.verbose = False
    return args


def setup_logging(verbose: bool, level: str = "INFO") -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings(path: str) -> Settings:
    """Load settings; a missing file means built-in defaults."""
    if not Path(path).exists():
        logging.getLogger(__name__).debug("No config at %s, using defaults", path)
        return Settings()
    settings = Settings.from_yaml(path)
    check_overrides(settings)
    return settings


def print_outcome(outcome: SearchOutcome) -> None:
    if outcome.success:
        print(f"'{outcome.query}' [{outcome.jurisdiction}]: {len(outcome.filings)} filing(s), "
              f"{outcome.retry_count} attempt(s)")
        for f in outcome.filings:
            filed = f.filing_date.isoformat() if f.filing_date else (f.filing_date_raw or "?")
            print(f"  {f.filing_type.value} {f.filing_number or '-'} | {f.debtor_name or '-'} | "
                  f"{f.secured_party or '-'} | {filed} | {f.status.value}")
        for err in outcome.validation_errors or []:
            print(f"  ! {err}")
    else:
        print(f"'{outcome.query}' [{outcome.jurisdiction}]: FAILED - {outcome.error}")
        if outcome.search_url:
            print(f"  Search manually: {outcome.search_url}")


async def run(settings: Settings, state: str, queries: list[str], export_format: str | None) -> int:
    """Run the searches with a real browser. Returns the process exit code."""
    async with build_scraper(state, settings) as scraper:
        outcomes = await run_searches(scraper, queries)

    for outcome in outcomes:
        print_outcome(outcome)

    if export_format == "json":
        print(f"\n{export_outcomes_json(outcomes)}")

    return 0 if all(o.success for o in outcomes) else 2


def cmd_manual_url(args: argparse.Namespace, settings: Settings) -> None:
    adapter = get_adapter(args.state)
    config = resolve_config(adapter, settings)
    print(adapter.build_search_url(args.query.strip(), config.base_url))


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    if args.command == "list-states":
        for code in available_jurisdictions():
            print(code)
        return

    try:
        settings = load_settings(args.config)
        get_adapter(args.state)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(args.verbose, settings.log_level)

    if args.command == "manual-url":
        cmd_manual_url(args, settings)
    else:
        sys.exit(asyncio.run(run(settings, args.state, args.query, args.export)))


if __name__ == "__main__":
    main()
