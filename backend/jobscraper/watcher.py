"""
Change watcher for cards rendered while a run is in progress.

A MutationObserver inside the page reports inserted cards to a Python
callback. Each report schedules one card-only extraction pass over the
current document, collected into a record set the run merges at the end.
The subscription is time-boxed and tears itself down when the run ends.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from .base import BaseJobSite, utc_now
from .dedup import DedupIndex

logger = logging.getLogger(__name__)

BINDING_NAME = '__jobScraperCardsAdded'

_OBSERVE_SCRIPT = """
(args) => {
    if (window.__jobScraperObserver) window.__jobScraperObserver.disconnect();
    const isCard = (node) => node.nodeType === Node.ELEMENT_NODE && (
        node.matches(args.selector) || node.querySelector(args.selector) !== null
    );
    const observer = new MutationObserver((mutations) => {
        for (const mutation of mutations) {
            if (mutation.type !== 'childList') continue;
            if (Array.from(mutation.addedNodes).some(isCard)) {
                window[args.binding]();
                return;
            }
        }
    });
    observer.observe(document.body, { childList: true, subtree: true });
    window.__jobScraperObserver = observer;
    setTimeout(() => {
        if (window.__jobScraperObserver === observer) {
            observer.disconnect();
            window.__jobScraperObserver = null;
        }
    }, args.ttlMs);
}
"""

_DISCONNECT_SCRIPT = """
() => {
    if (window.__jobScraperObserver) {
        window.__jobScraperObserver.disconnect();
        window.__jobScraperObserver = null;
    }
}
"""


class ChangeWatcher:
    """Time-boxed subscription to card insertions on the live page."""

    def __init__(
        self,
        crawler,
        site: BaseJobSite,
        records: DedupIndex,
        is_running: Callable[[], bool],
        clock: Callable[[], datetime] = utc_now,
    ):
        self.crawler = crawler
        self.site = site
        self.config = site.config
        self.records = records
        self.is_running = is_running
        self.clock = clock

        selectors = self.config.selectors
        self.card_selector = f"{selectors['card']}, {selectors['card_item']}"

        self.connected = False
        self.passes = 0
        self.added = 0
        self._pending: Optional[asyncio.Task] = None
        self._expiry: Optional[asyncio.Task] = None

    async def start(self):
        """Install the observer and arm the expiry timer."""
        await self.crawler.expose_function(BINDING_NAME, self.on_cards_added)
        await self.crawler.evaluate(_OBSERVE_SCRIPT, {
            'selector': self.card_selector,
            'binding': BINDING_NAME,
            'ttlMs': int(self.config.watcher_ttl * 1000),
        })
        self.connected = True
        self._expiry = asyncio.create_task(self._expire())
        logger.debug(f"Watching for new cards for {self.config.watcher_ttl:.0f}s")

    async def _expire(self):
        await asyncio.sleep(self.config.watcher_ttl)
        logger.debug("Change watcher expired")
        self._expiry = None
        await self.stop()

    def on_cards_added(self, *args):
        """Callback invoked from the page when cards are inserted."""
        if not self.connected:
            return
        if not self.is_running():
            asyncio.create_task(self.stop())
            return
        if self._pending is not None:
            return
        self._pending = asyncio.create_task(self._extract_pass())

    async def _extract_pass(self):
        try:
            await asyncio.sleep(self.config.watcher_settle_delay)
            if not self.connected or not self.is_running():
                return

            url = self.crawler.current_url
            soup = await self.crawler.snapshot()
            now = self.clock()
            added = 0
            for card in self.site.find_cards(soup):
                record = self.site.extract_card(card, url, now)
                if record is not None and self.records.add(record):
                    added += 1

            self.passes += 1
            self.added += added
            if added:
                logger.info(f"Change watcher picked up {added} new jobs")
        except Exception as e:
            logger.warning(f"Change watcher pass failed: {e}")
        finally:
            self._pending = None

    async def stop(self):
        """Disconnect the observer and cancel anything scheduled."""
        if not self.connected:
            return
        self.connected = False

        current = asyncio.current_task()
        for task in (self._expiry, self._pending):
            if task is not None and task is not current and not task.done():
                task.cancel()
        self._expiry = None
        self._pending = None

        try:
            await self.crawler.evaluate(_DISCONNECT_SCRIPT)
        except Exception as e:
            logger.debug(f"Could not disconnect page observer: {e}")
