"""
Extraction rules for every supported listing source.

Each site has an ExtractionRule that defines:
- The search (or catalogue) URL template
- CSS selectors for the listing container and its fields
- Extra bot-detection markers to look for in the page HTML

Adding a site means adding an entry to SITES; nothing else changes.
"""

from typing import Dict, List

from .base import ExtractionRule, UnsupportedSiteError


# ============================================================
# SITE RULES
# ============================================================

SITES: Dict[str, ExtractionRule] = {
    # ========== SEARCH (2 sites) ==========
    # The query is interpolated into the URL

    'amazon': ExtractionRule(
        key='amazon',
        name='Amazon',
        url_template='https://www.amazon.com/s?k={query}&ref=sr_pg_1',
        container_selector='[data-component-type="s-search-result"], .s-result-item',
        title_selector='h2 a span, .a-size-mini span, .a-size-base-plus, [data-cy="title-recipe-title"]',
        price_selector='.a-price-whole, .a-offscreen, .a-price .a-offscreen',
        link_selector='h2 a, .a-link-normal',
        image_selector='.s-image, img[data-image-latency]',
        wait_selectors=(
            '[data-component-type="s-search-result"]',
            '.s-result-item',
            '[data-testid="result"]',
        ),
        # Amazon serves its robot check with a normal-looking title
        content_markers=('robot', 'captcha', 'blocked'),
    ),

    'ebay': ExtractionRule(
        key='ebay',
        name='eBay',
        url_template='https://www.ebay.com/sch/i.html?_nkw={query}',
        container_selector='.s-item',
        title_selector='.s-item__title',
        price_selector='.s-item__price',
        link_selector='.s-item__link',
        image_selector='.s-item__image img, .s-item__image',
    ),

    # ========== DEMO (1 site) ==========
    # Safe practice catalogue; the query is ignored

    'books': ExtractionRule(
        key='books',
        name='BooksToScrape',
        url_template='http://books.toscrape.com/',
        container_selector='article.product_pod',
        title_selector='h3 a',
        price_selector='p.price_color',
        link_selector='h3 a',
        image_selector='div.image_container img',
    ),
}


# ============================================================
# HELPER FUNCTIONS
# ============================================================

def get_site_config(site_key: str) -> ExtractionRule:
    """
    Get the extraction rule for a site by its key.

    Args:
        site_key: Site identifier (e.g., 'amazon', 'ebay'), case-insensitive

    Returns:
        ExtractionRule for the site

    Raises:
        UnsupportedSiteError: If site_key is not registered
    """
    key = (site_key or '').strip().lower()
    if key not in SITES:
        raise UnsupportedSiteError(site_key, sorted(SITES.keys()))
    return SITES[key]


def list_sites() -> List[str]:
    """List all site keys."""
    return list(SITES.keys())


def get_site_summary() -> List[Dict]:
    """Get a summary of all sites for display."""
    summary = []
    for key, rule in SITES.items():
        summary.append({
            'key': key,
            'name': rule.name,
            'url': rule.url_template,
            'search': '{query}' in rule.url_template,
        })
    return summary
