"""
Stealth browser for listing pages behind bot detection.

Uses Playwright with enhanced stealth features to look less like automation.
This includes a realistic user agent and headers, a script hiding the
webdriver flag, and blocking of heavy resources for speed.
"""

import asyncio
import logging
from typing import Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Route

from ..base import ScrapeOptions

logger = logging.getLogger(__name__)

CLEANUP_TIMEOUT_SECONDS = 2.0

# Resource types aborted before they hit the network
BLOCKED_RESOURCE_TYPES = frozenset({'stylesheet', 'font', 'image'})

LAUNCH_ARGS = [
    '--disable-blink-features=AutomationControlled',
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
    '--disable-accelerated-2d-canvas',
    '--no-first-run',
    '--no-zygote',
    '--disable-gpu',
    '--disable-extensions',
    '--disable-background-timer-throttling',
    '--disable-backgrounding-occluded-windows',
    '--disable-renderer-backgrounding',
]

EXTRA_HEADERS = {
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.9',
    'Accept-Encoding': 'gzip, deflate, br',
    'Connection': 'keep-alive',
    'Upgrade-Insecure-Requests': '1',
}

HIDE_AUTOMATION_SCRIPT = """
    Object.defineProperty(navigator, 'webdriver', {
        get: () => undefined
    });

    Object.defineProperty(navigator, 'plugins', {
        get: () => [1, 2, 3, 4, 5]
    });

    Object.defineProperty(navigator, 'languages', {
        get: () => ['en-US', 'en']
    });
"""


async def block_heavy_resources(route: Route):
    """Abort stylesheet, font and image requests; let everything else through."""
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


class StealthBrowser:
    """
    One Chromium instance with a single stealth-configured context.

    Usage:
        async with StealthBrowser(options) as browser:
            page = await browser.new_page()

    Leaving the block always closes every page, the context, the browser
    and Playwright itself, whether or not the body raised.
    """

    def __init__(self, options: ScrapeOptions):
        """
        Initialize the stealth browser.

        Args:
            options: Scrape options (headless flag and user agent are used here)
        """
        self.options = options
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._pages = []

    async def start(self):
        """Launch Chromium and create the browser context."""
        try:
            self._playwright = await async_playwright().start()

            logger.info("Initializing browser...")
            self._browser = await self._playwright.chromium.launch(
                headless=self.options.headless,
                args=LAUNCH_ARGS,
                handle_sigint=False,
                handle_sigterm=False,
                handle_sighup=False,
            )

            self._context = await self._browser.new_context(
                viewport={'width': 1366, 'height': 768},
                user_agent=self.options.user_agent,
                locale='en-US',
                ignore_https_errors=True,
                extra_http_headers=EXTRA_HEADERS,
            )
            await self._context.add_init_script(HIDE_AUTOMATION_SCRIPT)
            logger.info("Browser initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize browser: {e}")
            await self.close()
            raise

    async def new_page(self) -> Page:
        """
        Open a page with resource blocking and error logging attached.

        Returns:
            Playwright Page
        """
        if self._context is None:
            raise RuntimeError("Browser not started")

        page = await self._context.new_page()
        await page.route('**/*', block_heavy_resources)
        page.on('pageerror', lambda error: logger.warning(f"Page script error: {error}"))
        page.on('crash', lambda _: logger.error("Page crashed"))
        self._pages.append(page)
        return page

    async def _shutdown_step(self, label: str, closer, timeout: float):
        try:
            await asyncio.wait_for(closer(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{label} timed out, forcing cleanup")
        except Exception as e:
            logger.warning(f"{label} failed: {e}")

    async def close(self):
        """Close pages, context, browser and Playwright; each step gets its own timeout."""
        steps = [(f"Closing page {i}", page.close) for i, page in enumerate(self._pages, 1)]
        if self._context:
            steps.append(("Closing context", self._context.close))
        if self._browser:
            steps.append(("Closing browser", self._browser.close))
        if self._playwright:
            steps.append(("Stopping Playwright", self._playwright.stop))

        for label, closer in steps:
            await self._shutdown_step(label, closer, CLEANUP_TIMEOUT_SECONDS)

        if self._browser:
            logger.info("Browser closed")
        self._pages = []
        self._context = None
        self._browser = None
        self._playwright = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
