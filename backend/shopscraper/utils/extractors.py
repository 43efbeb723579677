"""
Data extraction utilities for listing pages.

These functions turn a snapshot of the rendered page HTML into raw
records using an ExtractionRule's CSS selectors. They never touch the
browser, so they can be run against saved HTML as well.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from ..base import ExtractionElementError, ExtractionRule, MISSING, RawRecord

logger = logging.getLogger(__name__)


def extract_text(container: Tag, selector: str) -> str:
    """
    Get the stripped text of the first element matching selector.

    Args:
        container: Element to search within
        selector: CSS selector

    Returns:
        Text content, or 'N/A' if nothing matched
    """
    element = container.select_one(selector)
    if element is None:
        return MISSING
    return element.get_text().strip()


def extract_link(
    container: Tag,
    selector: str,
    fallback_selector: Optional[str] = 'a',
    base_url: Optional[str] = None,
) -> str:
    """
    Get the href of the first matching anchor, falling back to a second selector.

    Relative links are resolved against base_url when given.
    """
    element = container.select_one(selector)
    if element is None and fallback_selector:
        element = container.select_one(fallback_selector)
    if element is None:
        return MISSING

    href = (element.get('href') or '').strip()
    if not href:
        return MISSING
    return urljoin(base_url, href) if base_url else href


def extract_image(container: Tag, selector: str, base_url: Optional[str] = None) -> str:
    """
    Get the image URL of the first matching element.

    Lazy-loaded images often keep the real URL in data-src.
    """
    element = container.select_one(selector)
    if element is None:
        return MISSING

    src = (element.get('src') or element.get('data-src') or '').strip()
    if not src:
        return MISSING
    return urljoin(base_url, src) if base_url else src


def extract_records(
    html: str,
    rule: ExtractionRule,
    base_url: Optional[str] = None,
    captured_at: Optional[datetime] = None,
    diagnostics: Optional[List[Dict]] = None,
) -> List[RawRecord]:
    """
    Extract one raw record per listing container, in document order.

    A container without a title is skipped. A container that fails to
    parse is logged, added to diagnostics and skipped; the rest of the
    batch is still extracted.

    Args:
        html: Rendered page HTML
        rule: Extraction rule for the site
        base_url: URL of the page, used to resolve relative links
        captured_at: Timestamp for every record (defaults to now, UTC)
        diagnostics: Optional list collecting per-container failures

    Returns:
        List of RawRecord, position = 1-based container index
    """
    soup = BeautifulSoup(html or '', 'html.parser')
    captured_at = captured_at or datetime.now(timezone.utc)
    records = []

    for index, container in enumerate(soup.select(rule.container_selector)):
        position = index + 1
        try:
            title = extract_text(container, rule.title_selector)
            if not title or title == MISSING:
                continue

            records.append(RawRecord(
                position=position,
                title=title,
                price_text=extract_text(container, rule.price_selector),
                link=extract_link(container, rule.link_selector, rule.link_fallback_selector, base_url),
                image_url=extract_image(container, rule.image_selector, base_url),
                captured_at=captured_at,
            ))
        except Exception as e:
            error = ExtractionElementError(position, e)
            logger.warning(f"Skipping listing: {error}")
            if diagnostics is not None:
                diagnostics.append({'stage': 'extract', 'position': position, 'error': str(error)})

    return records
