"""
Pagination resolution for search result pages.

The site exposes three inconsistent signals: the result count in the list
subtitle, the offset query parameter in the URL, and a "Page X of Y"
indicator. The indicator is capped by the site and can be stale during a
page transition, so the offset is trusted for the current page and the
larger of the calculated and displayed totals is used for the page count.
"""

import logging
import math
from typing import Optional
from urllib.parse import urlparse, parse_qs, urlencode, urlunparse

from bs4 import BeautifulSoup

from .base import PaginationState, SiteConfig
from .utils.extractors import select_text, extract_results_count, extract_page_state

logger = logging.getLogger(__name__)


class PaginationResolver:
    """Reconciles URL state and rendered text into a PaginationState."""

    def __init__(self, config: SiteConfig):
        self.config = config
        self.page_size = config.page_size

    def offset_from_url(self, url: str) -> int:
        """Read the offset query parameter; missing or invalid values mean 0."""
        values = parse_qs(urlparse(url or '').query).get(self.config.page_param)
        if not values:
            return 0
        try:
            return max(int(values[0]), 0)
        except ValueError:
            return 0

    def resolve(self, url: str, results_text: Optional[str], page_state_text: Optional[str]) -> PaginationState:
        """
        Compute the pagination view from raw signals.

        Args:
            url: Current browser location
            results_text: Rendered "N results" text (may be None)
            page_state_text: Rendered "Page X of Y" text (may be None)

        Returns:
            PaginationState
        """
        total_results = extract_results_count(results_text or '')
        calculated_pages = math.ceil(total_results / self.page_size) if total_results > 0 else 1

        current_page = self.offset_from_url(url) // self.page_size + 1

        displayed_page, displayed_total = extract_page_state(page_state_text or '')
        if displayed_total is None:
            displayed_total = calculated_pages

        total_pages = max(calculated_pages, displayed_total)

        logger.debug(
            f"Pagination: {total_results} results / {self.page_size} per page = {calculated_pages} calculated, "
            f"indicator shows {displayed_page} of {displayed_total}, using page {current_page} of {total_pages}"
        )

        return PaginationState(
            current_page=current_page,
            total_pages=total_pages,
            total_results=total_results,
            calculated_pages=calculated_pages,
        )

    def resolve_from_soup(self, url: str, soup: BeautifulSoup) -> PaginationState:
        """Resolve pagination from a rendered page snapshot."""
        selectors = self.config.selectors
        results_text = select_text(soup, selectors.get('results_count'))
        page_state_text = select_text(soup, selectors.get('page_state'))
        return self.resolve(url, results_text, page_state_text)

    def next_page_url(self, url: str, next_page: int) -> str:
        """
        Build the URL of a results page, keeping every other query parameter.

        Examples (page size 25):
            ".../jobs/search/?keywords=python", 2 -> ".../jobs/search/?keywords=python&start=25"
            ".../jobs/search/?start=25", 3 -> ".../jobs/search/?start=50"
        """
        parsed = urlparse(url)
        query = parse_qs(parsed.query, keep_blank_values=True)
        query[self.config.page_param] = [str((next_page - 1) * self.page_size)]
        return urlunparse(parsed._replace(query=urlencode(query, doseq=True)))

    def expected_on_page(self, state: PaginationState, page: int) -> int:
        """Upper bound on the number of cards a page can hold."""
        remaining = state.total_results - (page - 1) * self.page_size
        return max(min(self.page_size, remaining), 0)
