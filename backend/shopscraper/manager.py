"""
Scrape Orchestrator - runs the fetch/extract/export pipeline for a site.

Provides a unified interface for scraping one site, or several sites as
independent pipelines, and always returns a structured ScrapeResult.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional

from .base import CleanRecord, Colors, ScrapeOptions, ScrapeResult, UnsupportedSiteError
from .config import get_site_config
from .crawlers.session import PageSession
from .crawlers.stealth import StealthBrowser
from .export import export_to_csv, generate_filename
from .utils.normalizers import clean_records

logger = logging.getLogger(__name__)

NO_RECORDS_MESSAGE = 'No records found'


class ScrapeOrchestrator:
    """
    Owns one browser per scrape and drives a PageSession through it.

    Usage:
        orchestrator = ScrapeOrchestrator(options)

        # Single scrape
        result = await orchestrator.scrape('ebay', 'vintage camera')

        # Accumulate across calls; the caller owns the list
        result = await orchestrator.scrape('ebay', 'lens', records=result.records)
    """

    def __init__(
        self,
        options: Optional[ScrapeOptions] = None,
        browser_factory: Callable = StealthBrowser,
        sleep: Callable[[float], Awaitable] = asyncio.sleep,
        output_dir: str = '.',
    ):
        """
        Initialize the orchestrator.

        Args:
            options: Scrape options (defaults to ScrapeOptions())
            browser_factory: Callable taking options and returning an async
                context manager with a new_page() coroutine
            sleep: Coroutine used for every pause (injected in tests)
            output_dir: Directory for generated output filenames
        """
        self.options = options or ScrapeOptions()
        self.browser_factory = browser_factory
        self.sleep = sleep
        self.output_dir = output_dir

    def _output_path(self, site: str, query: str) -> str:
        if self.options.output_path:
            return self.options.output_path
        return str(Path(self.output_dir) / generate_filename(query, site))

    async def scrape(
        self,
        site: str,
        query: str,
        records: Optional[List[CleanRecord]] = None,
    ) -> ScrapeResult:
        """
        Scrape one site for a query and export the results.

        Args:
            site: Site key (e.g., 'amazon')
            query: Search term
            records: Records from earlier calls to export alongside the new ones

        Returns:
            ScrapeResult. Failures other than export I/O are reported in it.

        Raises:
            OSError: If the CSV export fails
        """
        result = ScrapeResult(site=site, query=query, started_at=datetime.now(timezone.utc))

        try:
            rule = get_site_config(site)
        except UnsupportedSiteError as e:
            logger.error(str(e))
            return self._finish(result, error=str(e))

        site_logger = logging.getLogger(f"scraper.{rule.key.upper()}")
        site_logger.info(f"Starting scraper for {Colors.bold(rule.name)} with search term: \"{query}\"")

        try:
            async with self.browser_factory(self.options) as browser:
                page = await browser.new_page()
                session = PageSession(page, self.options, rule=rule, sleep=self.sleep)
                try:
                    await session.navigate(rule.build_url(query))
                    await session.wait_for_content(rule.content_wait_selectors())
                    raw_records = await session.extract(rule)
                finally:
                    result.error_details.extend(session.diagnostics)

        except Exception as e:
            site_logger.error(f"{Colors.red('[ERR]')} Scraping failed: {e}")
            return self._finish(result, error=str(e))

        cleaned = clean_records(raw_records)
        if not cleaned:
            site_logger.warning(f"{Colors.yellow('[EMPTY]')} No listings found")
            return self._finish(result, message=NO_RECORDS_MESSAGE)

        accumulated = list(records or []) + cleaned
        result.output_path = export_to_csv(accumulated, self._output_path(rule.key, query))
        result.records = accumulated

        site_logger.info(f"{Colors.green('[OK]')} Scraping completed: {len(cleaned)} new, {len(accumulated)} total")
        return self._finish(result, success=True)

    @staticmethod
    def _finish(result: ScrapeResult, success: bool = False, error: Optional[str] = None,
                message: Optional[str] = None) -> ScrapeResult:
        result.success = success
        result.error = error
        result.message = message
        result.completed_at = datetime.now(timezone.utc)
        return result


async def scrape_site(site: str, query: str, options: Optional[ScrapeOptions] = None, **kwargs) -> ScrapeResult:
    """
    Scrape a single site.

    Args:
        site: Site key
        query: Search term
        options: Optional scrape options
        **kwargs: Passed to ScrapeOrchestrator

    Returns:
        ScrapeResult
    """
    return await ScrapeOrchestrator(options, **kwargs).scrape(site, query)


async def scrape_many(
    sites: List[str],
    query: str,
    options: Optional[ScrapeOptions] = None,
    parallel: bool = False,
    **kwargs,
) -> Dict[str, ScrapeResult]:
    """
    Run independent scrapes for several sites.

    Each site gets its own orchestrator and browser. A fixed output_path
    is dropped so every site writes its own generated file. Duplicate
    site keys are scraped once.

    Args:
        sites: Site keys to scrape
        query: Search term
        options: Shared scrape options
        parallel: Whether to run the scrapes concurrently
        **kwargs: Passed to each ScrapeOrchestrator

    Returns:
        Dictionary mapping site key to ScrapeResult
    """
    options = options or ScrapeOptions()
    sites = list(dict.fromkeys(site.strip().lower() for site in sites))
    if options.output_path and len(sites) > 1:
        logger.warning("Ignoring output_path for multi-site scrape; using generated filenames")
        options = replace(options, output_path=None)

    logger.info(f"Starting scrape for {len(sites)} sites: {sites}")

    if parallel:
        results = await asyncio.gather(*[
            ScrapeOrchestrator(options, **kwargs).scrape(site, query) for site in sites
        ])
        return dict(zip(sites, results))

    results = {}
    for site in sites:
        results[site] = await ScrapeOrchestrator(options, **kwargs).scrape(site, query)
    return results
