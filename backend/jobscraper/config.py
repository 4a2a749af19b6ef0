"""
Site configurations for supported job listing sources.

Each site has a SiteConfig that defines:
- URLs used for building job links
- Pagination constants
- CSS selectors, listed in fallback order
- Delays and thresholds that shape the run
"""

from .base import SiteConfig


# ============================================================
# LINKEDIN SELECTORS
# Ordered lists are tried first to last; the first match wins.
# ============================================================
LINKEDIN_SELECTORS = {
    # Page classification
    'listing_path': '/jobs/search',
    'detail_path': '/jobs/view/',
    'listing_probe': ['.jobs-search-results', '.jobs-search-results-list', '.scaffold-layout__list'],
    'detail_probe': ['.job-details', '.jobs-unified-top-card', '.job-view-layout'],

    # Results list
    'card': 'li[data-occludable-job-id] .job-card-container, li.scaffold-layout__list-item .job-card-container',
    'card_item': 'li[data-occludable-job-id], li.scaffold-layout__list-item',
    'list_scaffold': '.scaffold-layout__list',
    'list_container': ['.jobs-search-results-list', '.scaffold-layout__list-container'],
    'pagination': '.jobs-search-pagination',
    'results_count': ['.jobs-search-results-list__subtitle span', '.jobs-search-results-list__text span'],
    'page_state': '.jobs-search-pagination__page-state',

    # Card fields
    'card_title': [
        '.job-card-container__link[aria-label]',
        '.job-card-list__title--link',
        'a[class*="job-card-container__link"]',
    ],
    'card_company': ['.artdeco-entity-lockup__subtitle span', '.job-card-container__primary-description'],
    'card_location': ['.job-card-container__metadata-wrapper li span', '.artdeco-entity-lockup__caption li span'],
    'card_link': 'a[href*="/jobs/view/"]',
    'card_click': 'a[href*="/jobs/view/"], .job-card-container__link',
    'card_posted': 'time',
    'card_insight': '.job-card-container__job-insight-text',

    # Detail panel (inside search results)
    'detail_container': ['.jobs-search__job-details--container', '.job-view-layout.jobs-details', '.jobs-details'],
    'detail_title': ['.job-details-jobs-unified-top-card__job-title h1 a', '.job-details-jobs-unified-top-card__job-title h1', 'h1 a', 'h1'],
    'detail_job_link': '.job-details-jobs-unified-top-card__job-title a[href*="/jobs/view/"]',
    'detail_company': ['.job-details-jobs-unified-top-card__company-name a'],
    'detail_caption': '.job-details-jobs-unified-top-card__tertiary-description-container',
    'detail_caption_fragment': '.tvm__text',
    'detail_preferences': '.job-details-fit-level-preferences',
    'detail_preference_item': 'button .tvm__text strong',
    'detail_description': ['.jobs-box__html-content#job-details', '#job-details', '.jobs-description-content__text'],
    'detail_salary': ['#SALARY', '.jobs-details__salary-main-rail-card'],
    'company_section': ['.jobs-company', '.job-details-about-company'],
    'company_name': '.artdeco-entity-lockup__title a',
    'company_followers': '.artdeco-entity-lockup__subtitle',
    'company_info': '.t-14.mt5',
    'company_inline': '.jobs-company__inline-information',
    'company_description': [
        '.jobs-company__company-description .text-body-small-open div[dir="ltr"]',
        '.jobs-company__company-description .text-body-small-open',
        '.jobs-company__company-description',
        '.text-body-small-open',
    ],
    'commitments': '.job-details-company__commitments-container',
    'commitment_type': '.job-details-company__commitments-type h4',
    'commitment_description': '.job-details-company__commitments-description',
    'insights': '.aiq-premium-insights-module-card__container--with-highchart-data',
    'insight_stat': '.aiq-premium-insights-module-card__statistics-container',
    'insight_value': '.t-24.t-black.t-bold',
    'insight_label': '.t-12.t-black--light',

    # Standalone detail page
    'page_title': ['.job-details-jobs-unified-top-card__job-title h1', '.jobs-unified-top-card__job-title h1'],
    'page_company': ['.job-details-jobs-unified-top-card__company-name a', '.jobs-unified-top-card__company-name a'],
    'page_location': ['.job-details-jobs-unified-top-card__bullet', '.jobs-unified-top-card__bullet'],
    'page_description': ['.job-details-jobs-unified-top-card__job-description', '.jobs-description__content'],
    'page_salary': ['.job-details-jobs-unified-top-card__job-insight'],
}


# ============================================================
# SITE CONFIGURATIONS
# ============================================================

SITES = {
    'linkedin': SiteConfig(
        name='LinkedIn Jobs',
        short_name='LINKEDIN',
        base_url='https://www.linkedin.com',
        job_view_url='https://www.linkedin.com/jobs/view/{job_id}/',
        page_size=25,  # Fixed by the site, cannot be changed
        page_param='start',
        selectors=LINKEDIN_SELECTORS,
        enabled=True,
    ),
}


# ============================================================
# HELPER FUNCTIONS
# ============================================================

def get_site_config(site_key: str) -> SiteConfig:
    """
    Get configuration for a site by its key.

    Args:
        site_key: Site identifier (e.g., 'linkedin')

    Returns:
        SiteConfig for the site

    Raises:
        ValueError: If site_key is not found
    """
    if site_key not in SITES:
        valid_keys = ', '.join(sorted(SITES.keys()))
        raise ValueError(f"Unknown site: '{site_key}'. Valid sites: {valid_keys}")
    return SITES[site_key]


def list_sites() -> list:
    """List all site keys."""
    return list(SITES.keys())
