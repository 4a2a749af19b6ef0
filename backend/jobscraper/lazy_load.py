"""
Lazy-load driver for the virtualized results list.

The site only renders the cards near the visible part of the list. Scrolling
the list container in steps forces the remaining cards to render before the
page is snapshotted.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from .base import Colors, SiteConfig

logger = logging.getLogger(__name__)


# Why the scroll loop ended
REASON_BOUNDARY = 'boundary'          # Pagination marker reached the bottom of the list
REASON_STABLE = 'stable'              # Card count stopped changing
REASON_CAP = 'cap'                    # Attempt limit reached
REASON_CANCELLED = 'cancelled'        # Run was stopped
REASON_NO_CONTAINER = 'no_container'  # Nothing scrollable on the page


@dataclass
class LazyLoadOutcome:
    final_count: int
    iterations: int
    reason: str


class LazyLoadDriver:
    """
    Scrolls the results list until every card on the page is rendered.

    Stops on the first of: the pagination marker coming within
    `boundary_margin_px` of the list's bottom edge, `stable_reads`
    consecutive unchanged card counts, `max_scroll_attempts` iterations,
    or the run becoming inactive. Always scrolls back to the top on exit.
    """

    def __init__(self, crawler, config: SiteConfig, is_active: Callable[[], bool] = lambda: True):
        self.crawler = crawler
        self.config = config
        self.is_active = is_active

        selectors = config.selectors
        self.card_selector = selectors['card']
        self.container_selectors = selectors['list_container']
        self.scaffold_selector = selectors['list_scaffold']
        self.boundary_selector = selectors['pagination']

    async def _measure(self):
        return await self.crawler.measure_list(
            self.card_selector, self.container_selectors,
            self.scaffold_selector, self.boundary_selector,
        )

    async def _scroll_to_top(self):
        await self.crawler.scroll_list_to_top(
            self.card_selector, self.container_selectors, self.scaffold_selector,
        )

    async def run(self) -> LazyLoadOutcome:
        metrics = await self._measure()
        if metrics is None:
            count = await self.crawler.count_cards(self.card_selector)
            logger.info(f"No scrollable list container found, proceeding with {count} cards")
            return LazyLoadOutcome(final_count=count, iterations=0, reason=REASON_NO_CONTAINER)

        await self._scroll_to_top()
        await asyncio.sleep(self.config.scroll_start_pause)

        previous_count = 0
        stable = 0
        iterations = 0
        reason = REASON_CAP

        while iterations < self.config.max_scroll_attempts:
            if not self.is_active():
                reason = REASON_CANCELLED
                break

            metrics = await self._measure()
            if metrics is None:
                reason = REASON_NO_CONTAINER
                break

            iterations += 1
            logger.debug(f"Scroll attempt {iterations}: {metrics.card_count} cards")

            if metrics.boundary_top is not None and \
                    metrics.boundary_top < metrics.container_bottom + self.config.boundary_margin_px:
                reason = REASON_BOUNDARY
                break

            if metrics.card_count == previous_count:
                stable += 1
                if stable >= self.config.stable_reads:
                    reason = REASON_STABLE
                    break
            else:
                stable = 0
            previous_count = metrics.card_count

            await self.crawler.scroll_list_by(
                metrics.client_height * self.config.scroll_fraction,
                self.card_selector, self.container_selectors, self.scaffold_selector,
            )
            await asyncio.sleep(self.config.scroll_pause)

        await self._scroll_to_top()
        await asyncio.sleep(self.config.scroll_reset_pause)

        final = await self._measure()
        final_count = final.card_count if final else await self.crawler.count_cards(self.card_selector)

        logger.info(
            f"{Colors.cyan('Lazy loading')} finished: {final_count} cards after "
            f"{iterations} scrolls ({reason})"
        )
        return LazyLoadOutcome(final_count=final_count, iterations=iterations, reason=reason)
