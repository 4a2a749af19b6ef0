"""
Scrape Manager - owns the single active scrape run.

Starts a run as a background task on the current event loop, relays stop
requests to it and reports its progress and records.
"""

import asyncio
import dataclasses
from typing import Any, Dict, List, Optional, Type
import logging

from .base import BaseJobSite, BrowserNotReadyError, JobRecord, ScrapeResult
from .config import get_site_config
from .orchestrator import ScrapeOrchestrator, Persist

from .sites.linkedin import LinkedInSite

logger = logging.getLogger(__name__)


# Registry of implemented sites
SITE_REGISTRY: Dict[str, Type[BaseJobSite]] = {
    'linkedin': LinkedInSite,
}


def build_site(site_key: str = 'linkedin', **overrides) -> BaseJobSite:
    """
    Create a site with optional config overrides.

    Args:
        site_key: Site identifier (e.g., 'linkedin')
        **overrides: SiteConfig fields to replace (delays, thresholds)

    Raises:
        ValueError: If the site is unknown or not implemented
    """
    config = get_site_config(site_key)
    if site_key not in SITE_REGISTRY:
        raise ValueError(f"Site not implemented: {site_key}")
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        config = dataclasses.replace(config, **overrides)
    return SITE_REGISTRY[site_key](config)


class ScrapeManager:
    """
    Enforces one scrape run at a time.

    Usage:
        manager = ScrapeManager(crawler, build_site('linkedin'), persist=store.merge)

        manager.start()          # runs in the background
        manager.status()
        manager.stop()
        await manager.wait()
    """

    def __init__(self, crawler, site: BaseJobSite, persist: Optional[Persist] = None,
                 watch_changes: bool = True):
        self.crawler = crawler
        self.site = site
        self.persist = persist
        self.watch_changes = watch_changes
        self.orchestrator: Optional[ScrapeOrchestrator] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _new_orchestrator(self) -> ScrapeOrchestrator:
        if self.crawler is None or not getattr(self.crawler, 'is_started', False):
            raise BrowserNotReadyError("No browser session is open")
        return ScrapeOrchestrator(
            self.crawler, self.site,
            persist=self.persist,
            watch_changes=self.watch_changes,
        )

    def start(self) -> bool:
        """
        Start a run in the background.

        Returns:
            False if a run is already active

        Raises:
            BrowserNotReadyError: If there is no browser page to scrape
        """
        if self.running:
            logger.warning("Scrape already in progress")
            return False

        self.orchestrator = self._new_orchestrator()
        self._task = asyncio.create_task(self.orchestrator.run())
        self._task.add_done_callback(self._on_done)
        return True

    def _on_done(self, task: asyncio.Task):
        if task.cancelled():
            logger.warning("Scrape task was cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Scrape task failed: {error}")

    async def run(self) -> ScrapeResult:
        """Run a scrape in the foreground and return its result."""
        if self.running:
            raise RuntimeError("Scrape already in progress")
        self.orchestrator = self._new_orchestrator()
        return await self.orchestrator.run()

    def stop(self) -> bool:
        if self.orchestrator is not None:
            self.orchestrator.stop()
        return True

    async def wait(self) -> Optional[ScrapeResult]:
        """Wait for the background run, if any, to finish."""
        if self._task is None:
            return None
        return await self._task

    def scraped_jobs(self) -> List[JobRecord]:
        """Records of the active run, or of the last one."""
        if self.orchestrator is None:
            return []
        return self.orchestrator.records.records()

    def status(self) -> Dict[str, Any]:
        if self.orchestrator is None:
            return {'state': 'idle', 'active': False, 'jobs': 0, 'notice': None}
        return self.orchestrator.status()

    async def shutdown(self):
        """Stop any active run and wait for it to hand off its records."""
        self.stop()
        if self.running:
            try:
                await asyncio.wait_for(self._task, timeout=30.0)
            except asyncio.TimeoutError:
                logger.warning("Scrape did not stop in time, cancelling")
                self._task.cancel()
