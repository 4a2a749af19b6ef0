"""
Detail enrichment by simulated navigation.

Clicking a card makes the site render that job's full details in the side
panel. Once the panel shows the clicked job it is snapshotted and merged
into the card's record; a panel that never switches leaves the card data
as it is.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable

from .base import BaseJobSite, JobRecord, utc_now
from .utils.polling import poll_until

logger = logging.getLogger(__name__)


class DetailEnrichmentProtocol:
    """
    Scroll, click, wait and extract for one card at a time.

    Never discards a record: any failure along the way yields the basic
    record unchanged.
    """

    def __init__(self, crawler, site: BaseJobSite, clock: Callable[[], datetime] = utc_now):
        self.crawler = crawler
        self.site = site
        self.config = site.config
        self.clock = clock

        selectors = self.config.selectors
        self.card_selector = selectors['card']
        self.link_selector = selectors['card_click']

    async def _panel_shows(self, basic: JobRecord) -> bool:
        return self.site.panel_shows(await self.crawler.snapshot(), basic)

    async def enrich(self, index: int, basic: JobRecord) -> JobRecord:
        """
        Open the card at `index` in the detail panel and return the enriched record.

        Args:
            index: Position of the card among the page's cards, in document order
            basic: Record extracted from the card itself

        Returns:
            Enriched record, or `basic` if the card cannot be opened or read
        """
        try:
            if not await self.crawler.has_card_link(self.card_selector, index, self.link_selector):
                logger.debug(f"No clickable link in card {index + 1}, keeping card data")
                return basic

            await self.crawler.scroll_card_into_view(self.card_selector, index)
            await asyncio.sleep(self.config.card_settle_delay)

            await self.crawler.click_card(self.card_selector, index, self.link_selector)

            loaded = await poll_until(
                lambda: self._panel_shows(basic),
                interval=self.config.detail_poll_interval,
                timeout=self.config.detail_timeout,
                label='job details',
            )
            if not loaded:
                logger.debug(f"Detail panel did not switch to card {index + 1}, keeping card data")
                return basic

            soup = await self.crawler.snapshot()
            return self.site.extract_detail_panel(soup, basic, self.clock())

        except Exception as e:
            logger.warning(f"Enrichment failed for '{basic.title}': {e}")
            return basic
