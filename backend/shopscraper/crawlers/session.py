"""
Page session: drives a single browser page through one listing page.

navigate -> (retry with jittered backoff) -> wait for content -> extract.
"""

import asyncio
import logging
import random
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..base import (
    BotDetectionError,
    Colors,
    ExtractionRule,
    NavigationError,
    NavigationTimeoutError,
    RawRecord,
    ScrapeOptions,
)
from ..utils.extractors import extract_records

logger = logging.getLogger(__name__)

# Checked against the page title on every navigation
BOT_TITLE_MARKERS = ('robot', 'captcha')

CONTENT_WAIT_TIMEOUT_MS = 8000
SETTLE_SECONDS = 2.0
SCROLL_STEP_PX = 100
SCROLL_INTERVAL_MS = 100
SCROLL_MAX_STEPS = 500

# Scrolls by a fixed step until the distance covered reaches the
# current scroll height; the height is re-read each tick so lazily
# appended content extends the sweep.
AUTO_SCROLL_SCRIPT = """
async ({step, interval, maxSteps}) => {
    await new Promise((resolve) => {
        let totalHeight = 0;
        let steps = 0;
        const timer = setInterval(() => {
            const scrollHeight = document.body.scrollHeight;
            window.scrollBy(0, step);
            totalHeight += step;
            steps += 1;
            if (totalHeight >= scrollHeight || steps >= maxSteps) {
                clearInterval(timer);
                resolve();
            }
        }, interval);
    });
}
"""


class SessionState(Enum):
    """Where a PageSession is in its navigation/extraction lifecycle."""
    IDLE = "idle"
    NAVIGATING = "navigating"
    RETRYING = "retrying"
    LOADED = "loaded"
    EXTRACTING = "extracting"
    DONE = "done"
    FAILED = "failed"


def retry_backoff(attempt: int, base: float = 5.0, cap: float = 30.0) -> float:
    """
    Randomized wait before retry number `attempt` (1-based).

    The floor grows by `base` per attempt until it reaches `cap - base`;
    up to `base` seconds of jitter are added on top, so late retries
    stay within the ceiling without settling on one fixed wait.
    """
    return min(base * attempt, cap - base) + random.uniform(0, base)


def detect_bot_page(title: str, content: str, content_markers: Sequence[str] = ()) -> Optional[str]:
    """
    Look for anti-automation markers in a loaded page.

    Args:
        title: Page title
        content: Page HTML
        content_markers: Extra markers to look for in the HTML

    Returns:
        The first marker found, or None
    """
    title_lower = (title or '').lower()
    for marker in BOT_TITLE_MARKERS:
        if marker in title_lower:
            return marker

    if content_markers:
        content_lower = (content or '').lower()
        for marker in content_markers:
            if marker.lower() in content_lower:
                return marker
    return None


class PageSession:
    """
    Wraps one browser page for a single navigation target.

    The page only needs the subset of the Playwright Page API used here:
    goto, title, content, url, wait_for_selector and evaluate.
    """

    def __init__(
        self,
        page,
        options: ScrapeOptions,
        rule: Optional[ExtractionRule] = None,
        sleep: Callable[[float], Awaitable] = asyncio.sleep,
    ):
        """
        Initialize the session.

        Args:
            page: Playwright Page (or compatible object)
            options: Scrape options (timeout, retries, delay)
            rule: Extraction rule; its content markers extend bot detection
            sleep: Coroutine used for every pause
        """
        self.page = page
        self.options = options
        self.rule = rule
        self._sleep = sleep
        self.state = SessionState.IDLE
        self.attempts = 0
        self.diagnostics: List[Dict] = []

    async def _load(self, url: str):
        """One navigation attempt. Raises a NavigationError subclass on failure."""
        # Human-like pause before and after the request
        await self._sleep(random.uniform(1.0, 3.0))

        try:
            await self.page.goto(
                url,
                wait_until='domcontentloaded',
                timeout=self.options.timeout_ms,
            )
        except PlaywrightTimeoutError:
            raise NavigationTimeoutError(url, self.options.timeout_ms)
        except PlaywrightError as e:
            raise NavigationError(f"Failed to load {url}: {e}", url=url)

        await self._sleep(random.uniform(2.0, 5.0))

        try:
            title = await self.page.title()
            markers = self.rule.content_markers if self.rule else ()
            content = await self.page.content() if markers else ''
        except PlaywrightError as e:
            raise NavigationError(f"Failed to read {url}: {e}", url=url)

        marker = detect_bot_page(title, content, markers)
        if marker:
            raise BotDetectionError(url, marker)

    async def navigate(self, url: str) -> bool:
        """
        Load url, retrying up to max_retries extra times.

        Bot-detection pages, timeouts and browser errors all count as
        failed attempts. Each retry waits a jittered, growing backoff.

        Returns:
            True once the page is loaded

        Raises:
            NavigationError: The last failure, once retries are exhausted
        """
        total_attempts = self.options.max_retries + 1

        for attempt in range(total_attempts):
            self.state = SessionState.NAVIGATING
            self.attempts += 1
            logger.info(f"Navigating to: {url}")
            try:
                await self._load(url)
                self.state = SessionState.LOADED
                logger.info("Page loaded successfully")
                return True

            except NavigationError as e:
                logger.warning(f"Attempt {attempt + 1}/{total_attempts} failed for {url}: {e}")
                self.diagnostics.append({'stage': 'navigate', 'attempt': attempt + 1, 'error': str(e)})

                if attempt == total_attempts - 1:
                    self.state = SessionState.FAILED
                    raise

                self.state = SessionState.RETRYING
                backoff = retry_backoff(attempt + 1)
                logger.info(f"{Colors.yellow('[RETRY]')} in {backoff:.1f}s ({attempt + 1}/{self.options.max_retries})")
                await self._sleep(backoff)

    async def wait_for_content(self, selectors: Sequence[str] = ()):
        """
        Best-effort wait for dynamic listings to render.

        Waits for any of the selectors, scrolls to the bottom to trigger
        lazy loading, then pauses briefly. Failures are logged and kept in
        diagnostics; they never abort the scrape.
        """
        logger.info("Waiting for dynamic content to load...")
        try:
            if selectors:
                try:
                    await self.page.wait_for_selector(
                        ', '.join(selectors),
                        timeout=CONTENT_WAIT_TIMEOUT_MS,
                    )
                except PlaywrightTimeoutError:
                    logger.debug(f"None of {list(selectors)} appeared within {CONTENT_WAIT_TIMEOUT_MS}ms")
                except PlaywrightError as e:
                    # Bad selector in the list; still scroll
                    logger.warning(f"Content selector wait failed: {e}")
                    self.diagnostics.append({'stage': 'wait_for_content', 'error': str(e)})

            await self.page.evaluate(AUTO_SCROLL_SCRIPT, {
                'step': SCROLL_STEP_PX,
                'interval': SCROLL_INTERVAL_MS,
                'maxSteps': SCROLL_MAX_STEPS,
            })
            await self._sleep(SETTLE_SECONDS)
            logger.info("Dynamic content loading completed")

        except Exception as e:
            logger.warning(f"Dynamic content wait failed: {e}")
            self.diagnostics.append({'stage': 'wait_for_content', 'error': str(e)})

    async def extract(self, rule: ExtractionRule) -> List[RawRecord]:
        """
        Run the rule against the currently loaded page.

        Returns:
            Raw records in document order
        """
        self.state = SessionState.EXTRACTING
        logger.info("Scraping listings...")

        html = await self.page.content()
        records = extract_records(html, rule, base_url=self.page.url, diagnostics=self.diagnostics)
        logger.info(f"Found {len(records)} listings")

        # Rate limiting pause before handing control back
        await self._sleep(self.options.delay_ms / 1000)
        self.state = SessionState.DONE
        return records
