"""
Playwright-based listing scraper.

This module provides a small scraping pipeline for e-commerce listings:
- Site extraction rules (CSS selectors + URL templates)
- Stealth headless browser with retry, backoff and bot detection
- Price normalization, record validation and CSV export
"""

from .base import (
    ScrapeOptions,
    ExtractionRule,
    RawRecord,
    CleanRecord,
    ScrapeResult,
    ScraperError,
    UnsupportedSiteError,
    NavigationError,
    BotDetectionError,
    NavigationTimeoutError,
    ExtractionElementError,
)
from .config import SITES, get_site_config, list_sites
from .manager import ScrapeOrchestrator, scrape_site, scrape_many

__all__ = [
    'ScrapeOptions',
    'ExtractionRule',
    'RawRecord',
    'CleanRecord',
    'ScrapeResult',
    'ScraperError',
    'UnsupportedSiteError',
    'NavigationError',
    'BotDetectionError',
    'NavigationTimeoutError',
    'ExtractionElementError',
    'SITES',
    'get_site_config',
    'list_sites',
    'ScrapeOrchestrator',
    'scrape_site',
    'scrape_many',
]
