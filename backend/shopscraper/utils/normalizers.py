"""
Data normalization utilities for scraped listings.

These functions standardize scraped data into consistent formats and
decide which records are complete enough to keep.
"""

import re
import logging
from dataclasses import asdict, is_dataclass
from typing import Any, List, NamedTuple, Optional, Set
from urllib.parse import urlparse

from ..base import CleanRecord, MISSING, RawRecord

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('title', 'price')

# Replaces links that are present but not usable http(s) URLs
INVALID_URL = 'Invalid URL'


class PriceInfo(NamedTuple):
    numeric: float
    original: str


class ValidationResult(NamedTuple):
    valid: bool
    missing: Set[str]


def normalize_price(price_text: Optional[str]) -> PriceInfo:
    """
    Parse a displayed price into a number, keeping the original text.

    Examples:
        $19.99 -> 19.99
        1,299.50 USD -> 1299.5
        1.234.56 -> 1234.56
        None -> 0 (original 'N/A')
    """
    if not price_text or not price_text.strip():
        return PriceInfo(0.0, MISSING)

    original = price_text.strip()

    cleaned = re.sub(r'[^\d.,]', '', original).replace(',', '')
    # Only the last decimal point is kept
    cleaned = re.sub(r'\.(?=.*\.)', '', cleaned)

    try:
        numeric = float(cleaned)
    except ValueError:
        numeric = 0.0

    return PriceInfo(numeric, original)


def normalize_title(title: Optional[str]) -> str:
    """
    Collapse internal whitespace in a title.

    Examples:
        '  Wireless   Mouse\\n' -> 'Wireless Mouse'
    """
    if not title:
        return MISSING
    return ' '.join(title.split()) or MISSING


def is_valid_url(url: Optional[str]) -> bool:
    """True for absolute http(s) URLs with a host."""
    if not url:
        return False
    parsed = urlparse(url.strip())
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def clean_link(link: Optional[str]) -> str:
    """
    Keep a usable product link; a missing link stays 'N/A'.

    Examples:
        'https://shop.example/p/1' -> unchanged
        'javascript:void(0)' -> 'Invalid URL'
    """
    if not link or link == MISSING:
        return MISSING
    return link if is_valid_url(link) else INVALID_URL


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    text = str(value).strip()
    return not text or text == MISSING


def validate_record(record: Any) -> ValidationResult:
    """
    Check that a record has a usable title and price.

    Accepts RawRecord/CleanRecord instances or plain dicts. For records,
    the price field is the displayed price text.
    """
    if is_dataclass(record):
        data = asdict(record)
        data.setdefault('price', data.get('price_text'))
    else:
        data = dict(record)
        if 'price' not in data:
            data['price'] = data.get('price_text')

    missing = {name for name in REQUIRED_FIELDS if _is_missing(data.get(name))}
    return ValidationResult(not missing, missing)


def clean_records(raw_records: List[RawRecord]) -> List[CleanRecord]:
    """
    Normalize prices, titles and links, dropping records that fail validation.

    Order is preserved.
    """
    cleaned = []
    for raw in raw_records:
        price = normalize_price(raw.price_text)
        record = CleanRecord(
            position=raw.position,
            title=normalize_title(raw.title),
            price_text=price.original,
            link=clean_link(raw.link),
            image_url=raw.image_url,
            captured_at=raw.captured_at,
            price_numeric=price.numeric,
        )
        result = validate_record(record)
        if not result.valid:
            logger.debug(f"Dropping record {raw.position}: missing {', '.join(sorted(result.missing))}")
            continue
        cleaned.append(record)
    return cleaned
