"""
Browser-driven job scraper.

This module provides:
- Site extraction rules over BeautifulSoup snapshots (LinkedIn)
- A Playwright crawler that drives the live results page
- Lazy loading, detail enrichment and pagination for one run
- A manager that keeps a single run active at a time
"""

from .base import (
    BaseJobSite,
    JobRecord,
    PageKind,
    PaginationState,
    RunState,
    ScrapeResult,
    SiteConfig,
    ScraperError,
    NavigationError,
    BrowserNotReadyError,
)
from .config import SITES, get_site_config
from .manager import ScrapeManager, SITE_REGISTRY, build_site
from .orchestrator import ScrapeOrchestrator

__all__ = [
    'BaseJobSite',
    'JobRecord',
    'PageKind',
    'PaginationState',
    'RunState',
    'ScrapeResult',
    'SiteConfig',
    'ScraperError',
    'NavigationError',
    'BrowserNotReadyError',
    'SITES',
    'get_site_config',
    'ScrapeManager',
    'SITE_REGISTRY',
    'build_site',
    'ScrapeOrchestrator',
]
