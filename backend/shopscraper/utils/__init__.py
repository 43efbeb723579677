"""Shared utilities for the scraper."""

from .normalizers import (
    normalize_price,
    normalize_title,
    validate_record,
    clean_records,
    clean_link,
    is_valid_url,
)
from .extractors import (
    extract_text,
    extract_link,
    extract_image,
    extract_records,
)

__all__ = [
    'normalize_price',
    'normalize_title',
    'validate_record',
    'clean_records',
    'clean_link',
    'is_valid_url',
    'extract_text',
    'extract_link',
    'extract_image',
    'extract_records',
]
