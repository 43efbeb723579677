"""
End-to-end tests for ScrapeOrchestrator with a fake browser.
"""

import asyncio
import csv
import os

import pytest
from playwright.async_api import Error as PlaywrightError

from shopscraper.base import ScrapeOptions
from shopscraper.manager import NO_RECORDS_MESSAGE, ScrapeOrchestrator, scrape_many

from conftest import BrowserFactory, FakePage, book_html


def run(coro):
    return asyncio.run(coro)


def read_rows(path):
    with open(path, newline='', encoding='utf-8') as f:
        return list(csv.reader(f))


class TestScrape:
    """Test ScrapeOrchestrator.scrape()."""

    def test_three_listings_exported(self, options, books_page, fake_sleep):
        factory = BrowserFactory(books_page)
        orchestrator = ScrapeOrchestrator(options, browser_factory=factory, sleep=fake_sleep)

        result = run(orchestrator.scrape('books', 'anything'))

        assert result.success is True
        assert result.count == 3
        assert result.error is None
        rows = read_rows(result.output_path)
        assert rows[0] == ['ID', 'Product Title', 'Price (Numeric)', 'Price (Original)',
                           'Product URL', 'Image URL', 'Scraped At']
        assert len(rows) == 4
        assert [row[1] for row in rows[1:]] == ['Book 1', 'Book 2', 'Book 3']
        assert rows[1][2] == '11.5'
        assert rows[1][3] == '£11.50'

    def test_no_listings(self, options, fake_sleep):
        page = FakePage(html='<html><body><p>No results</p></body></html>')
        orchestrator = ScrapeOrchestrator(options, browser_factory=BrowserFactory(page), sleep=fake_sleep)

        result = run(orchestrator.scrape('books', 'nothing'))

        assert result.success is False
        assert result.message == NO_RECORDS_MESSAGE
        assert result.error is None
        assert result.output_path is None
        assert not os.path.exists(options.output_path)

    def test_unsupported_site_never_navigates(self, options, books_page, fake_sleep):
        factory = BrowserFactory(books_page)
        orchestrator = ScrapeOrchestrator(options, browser_factory=factory, sleep=fake_sleep)

        result = run(orchestrator.scrape('etsy', 'mug'))

        assert result.success is False
        assert "Unsupported site: 'etsy'" in result.error
        assert factory.browsers == []
        assert books_page.goto_calls == []

    def test_bot_detection_on_every_attempt(self, options, fake_sleep):
        page = FakePage(html=book_html(3), title="Robot Check")
        factory = BrowserFactory(page)
        orchestrator = ScrapeOrchestrator(options, browser_factory=factory, sleep=fake_sleep)

        result = run(orchestrator.scrape('books', 'x'))

        assert result.success is False
        assert 'Bot detection' in result.error
        assert len(page.goto_calls) == options.max_retries + 1
        assert factory.browsers[0].exited is True
        assert page.closed is True

    def test_browser_released_on_success(self, options, books_page, fake_sleep):
        factory = BrowserFactory(books_page)
        run(ScrapeOrchestrator(options, browser_factory=factory, sleep=fake_sleep).scrape('books', 'x'))

        assert factory.browsers[0].entered is True
        assert factory.browsers[0].exited is True

    def test_browser_launch_failure_is_structured(self, options, fake_sleep):
        class FailingBrowser:
            def __init__(self, opts):
                pass

            async def __aenter__(self):
                raise PlaywrightError("Executable doesn't exist")

            async def __aexit__(self, *exc):
                return False

        result = run(ScrapeOrchestrator(options, browser_factory=FailingBrowser, sleep=fake_sleep)
                     .scrape('books', 'x'))

        assert result.success is False
        assert "Executable doesn't exist" in result.error

    def test_builds_search_url(self, options, books_page, fake_sleep):
        run(ScrapeOrchestrator(options, browser_factory=BrowserFactory(books_page), sleep=fake_sleep)
            .scrape('ebay', 'vintage camera'))

        assert books_page.goto_calls[0]['url'] == 'https://www.ebay.com/sch/i.html?_nkw=vintage%20camera'

    def test_accumulates_caller_records(self, options, books_page, fake_sleep):
        orchestrator = ScrapeOrchestrator(options, browser_factory=BrowserFactory(books_page), sleep=fake_sleep)

        first = run(orchestrator.scrape('books', 'x'))
        second = run(orchestrator.scrape('books', 'x', records=first.records))
        fresh = run(orchestrator.scrape('books', 'x'))

        assert second.count == 6
        assert len(read_rows(second.output_path)) == 7
        # No hidden buffer on the orchestrator
        assert fresh.count == 3

    def test_export_failure_propagates(self, tmp_path, books_page, fake_sleep):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x")
        options = ScrapeOptions(delay_ms=0, max_retries=0, output_path=str(blocker / "out.csv"))
        orchestrator = ScrapeOrchestrator(options, browser_factory=BrowserFactory(books_page), sleep=fake_sleep)

        with pytest.raises(OSError):
            run(orchestrator.scrape('books', 'x'))

    def test_generated_output_path(self, tmp_path, books_page, fake_sleep):
        options = ScrapeOptions(delay_ms=0)
        orchestrator = ScrapeOrchestrator(options, browser_factory=BrowserFactory(books_page),
                                          sleep=fake_sleep, output_dir=str(tmp_path))

        result = run(orchestrator.scrape('books', 'Python Books!'))

        assert result.output_path.startswith(str(tmp_path))
        assert 'books_python_books_' in result.output_path

    def test_result_to_dict(self, options, books_page, fake_sleep):
        result = run(ScrapeOrchestrator(options, browser_factory=BrowserFactory(books_page), sleep=fake_sleep)
                     .scrape('books', 'x'))

        data = result.to_dict()
        assert data['success'] is True
        assert data['count'] == 3
        assert data['duration_seconds'] is not None


class TestScrapeMany:
    """Test scrape_many()."""

    @pytest.mark.parametrize("parallel", [False, True])
    def test_independent_results(self, tmp_path, fake_sleep, parallel):
        options = ScrapeOptions(delay_ms=0, output_path=str(tmp_path / "shared.csv"))

        def factory(opts):
            return BrowserFactory(FakePage(html=book_html(2)))(opts)

        results = run(scrape_many(['books', 'etsy'], 'x', options, parallel=parallel,
                                  browser_factory=factory, sleep=fake_sleep, output_dir=str(tmp_path)))

        assert results['books'].success is True
        assert results['etsy'].success is False
        assert not results['books'].output_path.endswith('shared.csv')

    def test_single_site_keeps_output_path(self, tmp_path, fake_sleep):
        options = ScrapeOptions(delay_ms=0, output_path=str(tmp_path / "only.csv"))

        results = run(scrape_many(['books'], 'x', options,
                                  browser_factory=BrowserFactory(FakePage(html=book_html(1))),
                                  sleep=fake_sleep))

        assert results['books'].output_path.endswith('only.csv')

    def test_duplicate_sites_scraped_once(self, tmp_path, fake_sleep):
        factory = BrowserFactory(FakePage(html=book_html(2)))

        results = run(scrape_many(['books', 'BOOKS', ' books '], 'x', ScrapeOptions(delay_ms=0),
                                  parallel=True, browser_factory=factory, sleep=fake_sleep,
                                  output_dir=str(tmp_path)))

        assert list(results) == ['books']
        assert len(factory.browsers) == 1
