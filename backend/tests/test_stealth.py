"""
Tests for the stealth browser's request blocking and cleanup.
"""

import asyncio

import pytest

from shopscraper.base import ScrapeOptions
from shopscraper.crawlers.stealth import StealthBrowser, block_heavy_resources


class FakeRequest:
    def __init__(self, resource_type):
        self.resource_type = resource_type


class FakeRoute:
    def __init__(self, resource_type):
        self.request = FakeRequest(resource_type)
        self.outcome = None

    async def abort(self):
        self.outcome = 'abort'

    async def continue_(self):
        self.outcome = 'continue'


class Closable:
    def __init__(self):
        self.closed = False

    async def close(self):
        self.closed = True

    async def stop(self):
        self.closed = True


class TestBlockHeavyResources:
    """Test block_heavy_resources()."""

    @pytest.mark.parametrize("resource_type", ['image', 'stylesheet', 'font'])
    def test_aborts_heavy(self, resource_type):
        route = FakeRoute(resource_type)
        asyncio.run(block_heavy_resources(route))
        assert route.outcome == 'abort'

    @pytest.mark.parametrize("resource_type", ['document', 'script', 'xhr'])
    def test_continues_others(self, resource_type):
        route = FakeRoute(resource_type)
        asyncio.run(block_heavy_resources(route))
        assert route.outcome == 'continue'


class TestClose:
    """Test StealthBrowser.close()."""

    def test_closes_everything(self):
        browser = StealthBrowser(ScrapeOptions())
        page, context, chromium, playwright = Closable(), Closable(), Closable(), Closable()
        browser._pages = [page]
        browser._context = context
        browser._browser = chromium
        browser._playwright = playwright

        asyncio.run(browser.close())

        assert all(c.closed for c in (page, context, chromium, playwright))
        assert browser._browser is None
        assert browser._pages == []

    def test_new_page_requires_start(self):
        with pytest.raises(RuntimeError):
            asyncio.run(StealthBrowser(ScrapeOptions()).new_page())

    def test_close_without_start(self):
        asyncio.run(StealthBrowser(ScrapeOptions()).close())
