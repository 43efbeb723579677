#!/usr/bin/env python3
"""
Command line interface for the listing scraper.

Usage:
    shopscraper run <site> <query> [options]
    shopscraper list

Examples:
    shopscraper run amazon "wireless headphones"
    shopscraper run ebay "vintage camera" --delay=3000 --output=cameras.csv
    shopscraper run books demo --headless=false --report
"""

import argparse
import asyncio
import logging
import re
import sys
from typing import List, Optional

from .base import Colors
from .config import get_site_summary
from .export import build_summary_report, log_stats, save_summary_report
from .manager import ScrapeOrchestrator
from .settings import Settings, build_options, load_config, settings

logger = logging.getLogger(__name__)


class ColorStripFormatter(logging.Formatter):
    """Formatter that strips ANSI color codes from log messages."""
    ansi_escape = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')

    def format(self, record):
        message = super().format(record)
        return self.ansi_escape.sub('', message)


def setup_logging(app_settings: Settings = settings):
    """Console logging with colors, plus a color-stripped log file."""
    handlers: List[logging.Handler] = []

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(app_settings.log_format))
    handlers.append(console_handler)

    if app_settings.log_to_file:
        app_settings.log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(app_settings.log_file, encoding='utf-8')
        file_handler.setFormatter(ColorStripFormatter(app_settings.log_format))
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, app_settings.log_level.upper()),
        handlers=handlers,
        force=True  # Override any existing configuration
    )


def parse_bool(value: str) -> bool:
    """Parse --headless=true/false style flags."""
    lowered = value.strip().lower()
    if lowered in ('1', 'true', 'yes', 'on'):
        return True
    if lowered in ('0', 'false', 'no', 'off'):
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got '{value}'")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='shopscraper',
        description='Scrape product listings into CSV',
    )
    subparsers = parser.add_subparsers(dest='command')

    run = subparsers.add_parser('run', help='Scrape a site for a search term')
    run.add_argument('site', nargs='?', help='Site key (see: shopscraper list)')
    run.add_argument('query', nargs='?', help='Search term')
    run.add_argument('--headless', type=parse_bool, help='Run the browser headless (default: true)')
    run.add_argument('--delay', type=int, help='Delay after extraction in ms')
    run.add_argument('--timeout', type=int, help='Navigation timeout in ms')
    run.add_argument('--retries', type=int, help='Extra navigation attempts')
    run.add_argument('--output', type=str, help='Output CSV path')
    run.add_argument('--config', type=str, help='JSON config with per-site options')
    run.add_argument('--report', action='store_true', help='Also write a JSON summary report')

    subparsers.add_parser('list', help='List supported sites')
    return parser


def list_sites():
    """Print all registered sites."""
    print(f"\n{'='*60}")
    print("Available Sites")
    print(f"{'='*60}\n")

    for site in get_site_summary():
        kind = "search" if site['search'] else "catalogue"
        print(f"  {site['key']:10} - {site['name']} ({kind})")
        print(f"               {site['url']}")
    print()


async def run_scrape(args: argparse.Namespace, app_settings: Settings = settings) -> int:
    """Run one scrape from parsed arguments and return the exit code."""
    file_config = load_config(args.config or app_settings.config_path)
    options = build_options(
        args.site,
        app_settings,
        file_config,
        headless=args.headless,
        delay_ms=args.delay,
        timeout_ms=args.timeout,
        max_retries=args.retries,
        output_path=args.output,
    )

    orchestrator = ScrapeOrchestrator(options, output_dir=app_settings.output_dir)
    result = await orchestrator.scrape(args.site, args.query)

    if not result.success:
        print(Colors.red(f"\nScraping failed: {result.error or result.message}"))
        return 1

    log_stats(result.records, result.started_at)
    if args.report:
        report = build_summary_report(result.records, args.site, args.query, result.output_path)
        save_summary_report(report)

    print(Colors.green("\nScraping completed successfully!"))
    print(f"Total products scraped: {result.count}")
    print(f"Data saved to: {result.output_path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == 'list':
        list_sites()
        return 0

    if args.command != 'run' or not args.site or not args.query:
        parser.print_help()
        print("\nExample: shopscraper run ebay \"vintage camera\"")
        return 1

    setup_logging(settings)
    return asyncio.run(run_scrape(args))


if __name__ == '__main__':
    sys.exit(main())
