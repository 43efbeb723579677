"""
Export scraped listings to CSV and JSON summary reports.
"""

import csv
import json
import logging
import re
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from .base import CleanRecord, Colors

logger = logging.getLogger(__name__)

# (row key, column title) in output order
CSV_COLUMNS = [
    ('position', 'ID'),
    ('title', 'Product Title'),
    ('price_numeric', 'Price (Numeric)'),
    ('price_text', 'Price (Original)'),
    ('link', 'Product URL'),
    ('image_url', 'Image URL'),
    ('captured_at', 'Scraped At'),
]


def generate_filename(query: str, site: str, extension: str = 'csv', today: Optional[date] = None) -> str:
    """
    Build a filesystem-safe filename from a search term.

    Examples:
        ('Wireless Headphones!', 'amazon') -> amazon_wireless_headphones_2024-05-01.csv
    """
    safe = re.sub(r'[^a-z0-9\s]', '', (query or '').lower())
    safe = re.sub(r'\s+', '_', safe.strip())[:50]
    stamp = (today or datetime.now(timezone.utc).date()).isoformat()
    return f"{site}_{safe}_{stamp}.{extension}"


def export_to_csv(records: List[CleanRecord], path: str) -> str:
    """
    Write records to a CSV file, one row per record in the given order.

    Args:
        records: Clean records to export
        path: Output file path; parent directories are created

    Returns:
        Absolute path of the written file

    Raises:
        OSError: If the file cannot be written
    """
    output_path = Path(path).resolve()
    output_path.parent.mkdir(parents=True, exist_ok=True)

    logger.info(f"Exporting {len(records)} listings to {output_path}...")

    with open(output_path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow([title for _, title in CSV_COLUMNS])
        for record in records:
            row = record.to_row()
            writer.writerow([row[key] for key, _ in CSV_COLUMNS])

    logger.info(f"Data exported successfully to {output_path}")
    return str(output_path)


def _positive_prices(records: List[CleanRecord]) -> List[float]:
    return [r.price_numeric for r in records if r.price_numeric > 0]


def build_summary_report(
    records: List[CleanRecord],
    site: str,
    query: str,
    output_path: Optional[str] = None,
) -> Dict:
    """
    Summarize a scrape: counts, price range and title statistics.

    Returns:
        JSON-serializable report dictionary
    """
    report = {
        'site': site,
        'query': query,
        'total_products': len(records),
        'output_path': output_path,
        'scraped_at': datetime.now(timezone.utc).isoformat(),
        'summary': {},
    }

    if records:
        prices = _positive_prices(records)
        report['summary'] = {
            'products_with_prices': len(prices),
            'price_range': {
                'min': min(prices),
                'max': max(prices),
                'average': sum(prices) / len(prices),
            } if prices else None,
            'unique_titles': len({r.title for r in records}),
            'avg_title_length': sum(len(r.title) for r in records) / len(records),
        }

    return report


def save_summary_report(report: Dict, path: Optional[str] = None) -> str:
    """
    Write a summary report as indented JSON.

    Args:
        report: Report from build_summary_report()
        path: Output path (defaults to summary_<timestamp>.json)

    Returns:
        Absolute path of the written file

    Raises:
        OSError: If the file cannot be written
    """
    if path is None:
        path = f"summary_{int(datetime.now(timezone.utc).timestamp() * 1000)}.json"
    report_path = Path(path).resolve()
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(json.dumps(report, indent=2, default=str), encoding='utf-8')
    logger.info(f"Summary report saved to: {report_path}")
    return str(report_path)


def log_stats(records: List[CleanRecord], started_at: datetime):
    """Log totals, timing and price statistics for a finished scrape."""
    duration = (datetime.now(timezone.utc) - started_at).total_seconds()

    logger.info(Colors.cyan("Scraping statistics:"))
    logger.info(f"   Total products: {len(records)}")
    logger.info(f"   Duration: {duration:.2f} seconds")
    if records:
        logger.info(f"   Average time per product: {duration / len(records):.2f} seconds")

    prices = _positive_prices(records)
    if prices:
        logger.info(f"   Price range: ${min(prices):.2f} - ${max(prices):.2f}")
        logger.info(f"   Average price: ${sum(prices) / len(prices):.2f}")
