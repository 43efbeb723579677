"""
Base data structures for the listing scraper.

This module defines the options, extraction rules, records, results and
exceptions shared by the crawler, the orchestrator and the exporters.
"""

from typing import List, Dict, Optional, Any, Tuple
from dataclasses import dataclass, field
from datetime import datetime, timezone
from urllib.parse import quote
import logging

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)

# Placeholder for fields that could not be read from the page
MISSING = 'N/A'


# ANSI color codes for terminal output
class Colors:
    """ANSI color codes for colorized logging."""
    RESET = '\033[0m'
    BOLD = '\033[1m'

    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    CYAN = '\033[96m'

    @staticmethod
    def green(text):
        return f"{Colors.GREEN}{text}{Colors.RESET}"

    @staticmethod
    def yellow(text):
        return f"{Colors.YELLOW}{text}{Colors.RESET}"

    @staticmethod
    def red(text):
        return f"{Colors.RED}{text}{Colors.RESET}"

    @staticmethod
    def cyan(text):
        return f"{Colors.CYAN}{text}{Colors.RESET}"

    @staticmethod
    def bold(text):
        return f"{Colors.BOLD}{text}{Colors.RESET}"


# ============================================================
# EXCEPTIONS
# ============================================================

class ScraperError(Exception):
    """Base class for scraping failures."""


class UnsupportedSiteError(ScraperError):
    """Raised when no extraction rule is registered for a site."""

    def __init__(self, site: str, valid_sites: Optional[List[str]] = None):
        self.site = site
        self.valid_sites = valid_sites or []
        message = f"Unsupported site: '{site}'"
        if self.valid_sites:
            message += f". Valid sites: {', '.join(self.valid_sites)}"
        super().__init__(message)


class NavigationError(ScraperError):
    """Raised when a page could not be reached or read."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(message)


class BotDetectionError(NavigationError):
    """Raised when the loaded page looks like a CAPTCHA or block page."""

    def __init__(self, url: str, marker: str):
        self.marker = marker
        super().__init__(
            f"Bot detection triggered - '{marker}' found on {url}", url=url
        )


class NavigationTimeoutError(NavigationError):
    """Raised when a page does not load within the configured timeout."""

    def __init__(self, url: str, timeout_ms: int):
        self.timeout_ms = timeout_ms
        super().__init__(f"Timed out after {timeout_ms}ms loading {url}", url=url)


class ExtractionElementError(ScraperError):
    """A single listing container could not be parsed."""

    def __init__(self, position: int, cause: Exception):
        self.position = position
        self.cause = cause
        super().__init__(f"Container {position} failed: {cause}")


# ============================================================
# OPTIONS AND RULES
# ============================================================

@dataclass(frozen=True)
class ScrapeOptions:
    """Options for one orchestrator run. Built once and never mutated."""
    headless: bool = True
    timeout_ms: int = 30000             # Per-navigation load timeout
    delay_ms: int = 2000                # Pause after each extraction pass
    max_retries: int = 3                # Extra navigation attempts after the first
    user_agent: str = DEFAULT_USER_AGENT
    output_path: Optional[str] = None   # None -> generated from site and query

    def __post_init__(self):
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")
        if self.delay_ms < 0:
            raise ValueError(f"delay_ms must be >= 0, got {self.delay_ms}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")


@dataclass(frozen=True)
class ExtractionRule:
    """Selectors and target URL describing how to read one site's listings."""
    key: str                            # Registry key (e.g., 'ebay')
    name: str                           # Display name
    url_template: str                   # '{query}' is replaced with the encoded search term
    container_selector: str
    title_selector: str
    price_selector: str
    link_selector: str
    image_selector: str
    link_fallback_selector: str = 'a'
    wait_selectors: Tuple[str, ...] = ()    # Defaults to container/title/price
    content_markers: Tuple[str, ...] = ()   # Extra bot-detection markers checked in page HTML

    def build_url(self, query: str) -> str:
        """Interpolate the URL-encoded query into the URL template."""
        if '{query}' not in self.url_template:
            return self.url_template
        return self.url_template.replace('{query}', quote(query or '', safe=''))

    def content_wait_selectors(self) -> List[str]:
        """Selectors to wait for before extracting."""
        if self.wait_selectors:
            return list(self.wait_selectors)
        return [self.container_selector, self.title_selector, self.price_selector]


# ============================================================
# RECORDS AND RESULTS
# ============================================================

@dataclass
class RawRecord:
    """One listing as read from the page."""
    position: int
    title: str
    price_text: str
    link: str = MISSING
    image_url: str = MISSING
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class CleanRecord(RawRecord):
    """A listing that passed validation, with its parsed price."""
    price_numeric: float = 0.0

    def to_row(self) -> Dict[str, Any]:
        return {
            'position': self.position,
            'title': self.title,
            'price_numeric': self.price_numeric,
            'price_text': self.price_text,
            'link': self.link,
            'image_url': self.image_url,
            'captured_at': self.captured_at.isoformat(),
        }


@dataclass
class ScrapeResult:
    """Result of a single scrape() call."""
    site: str
    query: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    success: bool = False
    records: List[CleanRecord] = field(default_factory=list)
    output_path: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None
    error_details: List[Dict] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.records)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at and self.started_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict:
        return {
            'site': self.site,
            'query': self.query,
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'duration_seconds': self.duration_seconds,
            'success': self.success,
            'count': self.count,
            'output_path': self.output_path,
            'error': self.error,
            'message': self.message,
            'error_details': self.error_details[:10],  # Limit error details
        }
