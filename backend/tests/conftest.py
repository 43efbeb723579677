"""
Pytest configuration and fixtures for shopscraper tests.

The fake page and browser implement just the parts of the Playwright API
that PageSession and ScrapeOrchestrator use, so no real browser starts.
"""

import pytest

from shopscraper.base import ScrapeOptions


BOOKS_URL = "http://books.toscrape.com/"


def book_html(count: int) -> str:
    """Catalogue page with `count` well-formed listings."""
    articles = []
    for i in range(1, count + 1):
        articles.append(f"""
        <article class="product_pod">
            <div class="image_container">
                <a href="catalogue/book-{i}/index.html">
                    <img src="media/cache/book-{i}.jpg" alt="Book {i}">
                </a>
            </div>
            <h3><a href="catalogue/book-{i}/index.html" title="Book {i}">Book {i}</a></h3>
            <div class="product_price">
                <p class="price_color">£{i}1.50</p>
            </div>
        </article>""")
    return f"<html><head><title>All products</title></head><body>{''.join(articles)}</body></html>"


class FakePage:
    """Stand-in for a Playwright Page."""

    def __init__(self, html: str = "", title: str = "All products", goto_errors=None):
        self.html = html
        self._title = title
        self.goto_errors = list(goto_errors or [])
        self.url = "about:blank"
        self.goto_calls = []
        self.waited_for = []
        self.evaluated = []
        self.closed = False

    async def goto(self, url, wait_until=None, timeout=None):
        self.goto_calls.append({'url': url, 'wait_until': wait_until, 'timeout': timeout})
        if self.goto_errors:
            raise self.goto_errors.pop(0)
        self.url = url

    async def title(self):
        return self._title

    async def content(self):
        return self.html

    async def wait_for_selector(self, selector, timeout=None):
        self.waited_for.append((selector, timeout))

    async def evaluate(self, expression, arg=None):
        self.evaluated.append((expression, arg))

    async def close(self):
        self.closed = True


class FakeBrowser:
    """Async context manager handing out a single FakePage."""

    def __init__(self, options, page: FakePage):
        self.options = options
        self.page = page
        self.entered = False
        self.exited = False

    async def new_page(self):
        return self.page

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.exited = True
        await self.page.close()


class BrowserFactory:
    """Records every browser created so tests can inspect them."""

    def __init__(self, page: FakePage):
        self.page = page
        self.browsers = []

    def __call__(self, options):
        browser = FakeBrowser(options, self.page)
        self.browsers.append(browser)
        return browser


@pytest.fixture
def sleeps():
    """Durations passed to the injected sleep."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(seconds):
        sleeps.append(seconds)
    return _sleep


@pytest.fixture
def options(tmp_path):
    """Fast options writing into a temp directory."""
    return ScrapeOptions(
        timeout_ms=5000,
        delay_ms=0,
        max_retries=2,
        output_path=str(tmp_path / "out" / "products.csv"),
    )


@pytest.fixture
def books_page():
    return FakePage(html=book_html(3))
