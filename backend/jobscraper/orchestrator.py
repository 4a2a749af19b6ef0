"""
Scrape orchestrator.

Drives one scrape run over the page the browser is showing: classify the
page, then either read a single job page or walk the search results page by
page, enriching every new card through the detail panel. Accepted records
are handed to a persistence callback after each page and once more when
the run ends. Cards the change watcher picks up are held apart from the
walk and only join the record set at the end, for cards the walk never
reached.
"""

import asyncio
import inspect
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from bs4 import BeautifulSoup

from .base import (
    BaseJobSite,
    Colors,
    JobRecord,
    NavigationError,
    PageKind,
    RunState,
    ScrapeResult,
    utc_now,
)
from .dedup import DedupIndex
from .enrichment import DetailEnrichmentProtocol
from .lazy_load import LazyLoadDriver
from .pagination import PaginationResolver
from .utils.polling import poll_until
from .watcher import ChangeWatcher

UNRECOGNIZED_NOTICE = "Please navigate to LinkedIn job search results page"
NO_CARDS_NOTICE = "No job cards found. Please ensure you are on a LinkedIn job search page."
NAVIGATION_NOTICE = "Failed to navigate to next page, stopping pagination"

# Receives a batch of accepted records; sync callbacks run on the default executor
Persist = Callable[[List[JobRecord]], Any]


class ScrapeOrchestrator:
    """
    State machine for a single scrape run.

    IDLE -> RUNNING -> COMPLETED | STOPPED | ABORTED. An unrecognized page
    leaves the run IDLE. `stop()` is cooperative: the flag is checked
    between cards and between pages, never mid-card.
    """

    def __init__(
        self,
        crawler,
        site: BaseJobSite,
        persist: Optional[Persist] = None,
        clock: Callable[[], datetime] = utc_now,
        watch_changes: bool = True,
    ):
        """
        Initialize the orchestrator.

        Args:
            crawler: Browser crawler showing the page to scrape
            site: Extraction rules for the site
            persist: Callback receiving accepted records for storage
            clock: Source of capture timestamps
            watch_changes: Pick up cards inserted while the run is in progress
        """
        self.crawler = crawler
        self.site = site
        self.config = site.config
        self.persist = persist
        self.clock = clock
        self.watch_changes = watch_changes
        self.logger = logging.getLogger(f"scraper.{self.config.short_name}.run")

        self.state = RunState.IDLE
        self.active = False
        self.records = DedupIndex()
        self.watched = DedupIndex()
        self.walked_keys = set()
        self.consecutive_low_yield_pages = 0
        self.result = ScrapeResult(source=self.config.short_name, started_at=utc_now())

        # Progress
        self.current_page = 0
        self.total_pages = 0
        self.card_index = 0
        self.card_total = 0

        self.pagination = PaginationResolver(self.config)
        self.lazy_loader = LazyLoadDriver(crawler, self.config, is_active=lambda: self.active)
        self.enrichment = DetailEnrichmentProtocol(crawler, site, clock=clock)
        self.watcher: Optional[ChangeWatcher] = None

    # ============================================================
    # CONTROL
    # ============================================================

    def stop(self):
        """Ask the run to stop at the next card or page boundary."""
        if self.active:
            self.logger.info(f"{Colors.yellow('Stop requested')}, finishing current card")
        self.active = False

    def notify(self, message: str):
        self.result.notice = message
        self.logger.info(f"{Colors.bold('Notice')}: {message}")

    def status(self) -> Dict[str, Any]:
        return {
            'state': self.state.value,
            'active': self.active,
            'page': self.current_page,
            'total_pages': self.total_pages,
            'card': self.card_index,
            'card_total': self.card_total,
            'jobs': len(self.records),
            'notice': self.result.notice,
            'result': self.result.to_dict(),
        }

    # ============================================================
    # RUN
    # ============================================================

    async def run(self) -> ScrapeResult:
        """
        Run the scrape to a terminal state.

        Never raises: failures end the run STOPPED with the records gathered
        so far handed off.
        """
        self.result = ScrapeResult(source=self.config.short_name, started_at=utc_now())
        self.records.clear()
        self.watched.clear()
        self.walked_keys.clear()
        self.consecutive_low_yield_pages = 0

        try:
            url = self.crawler.current_url
            soup = await self.crawler.snapshot()
        except Exception as e:
            self._record_error('snapshot', e)
            self.state = RunState.STOPPED
            self.result.state = self.state
            self.result.completed_at = utc_now()
            self.logger.error(f"Could not read the current page: {e}")
            return self.result

        kind = self.site.classify(url, soup)
        self.result.page_kind = kind
        self.logger.info(f"Starting scrape for {self.config.name}: {kind.value} page {Colors.gray(f'({url})')}")

        if kind == PageKind.UNRECOGNIZED:
            self.notify(UNRECOGNIZED_NOTICE)
            self.result.completed_at = utc_now()
            return self.result

        self.active = True
        self.state = RunState.RUNNING
        self.result.state = self.state

        final_state = RunState.STOPPED
        try:
            if kind == PageKind.DETAIL:
                final_state = self._run_detail(url, soup)
            else:
                await self._start_watcher()
                final_state = await self._run_listing()
        except Exception as e:
            self._record_error('run', e)
            self.notify(f"Error occurred during scraping: {e}")
            self.logger.error(f"Scrape failed: {e}")
            final_state = RunState.STOPPED
        finally:
            if self.watcher is not None:
                await self.watcher.stop()
            self.active = False

        self._merge_watched()
        self.state = final_state
        self.result.state = final_state
        await self._hand_off(self.records.records(), 'final')

        self.result.completed_at = utc_now()
        duration = self.result.duration_seconds or 0
        self.logger.info(
            f"✅ Scrape {final_state.value} in {duration:.1f}s: {Colors.green(f'{self.result.accepted} new')}, "
            f"{self.result.duplicates} duplicates, {self.result.rejected} rejected, "
            f"{Colors.red(f'{self.result.errors} errors')}, {len(self.records)} jobs total"
        )
        return self.result

    def _run_detail(self, url: str, soup: BeautifulSoup) -> RunState:
        record = self.site.extract_detail_page(soup, url, self.clock())
        if record is None:
            self.result.rejected += 1
        elif self.records.add(record):
            self.result.accepted += 1
            self.logger.info(f"   {Colors.green('[NEW]')} {record.title} at {record.company}")
        else:
            self.result.duplicates += 1
        self.result.pages = 1
        return RunState.COMPLETED

    def _merge_watched(self):
        """Add watcher cards the page walk never handled. Not part of page yield."""
        added = 0
        for record in self.watched:
            if record.key in self.walked_keys:
                continue
            if self.records.add(record):
                added += 1
        if added:
            self.result.accepted += added
            self.logger.info(f"Change watcher added {Colors.green(f'{added} new')} jobs outside the page walk")

    async def _start_watcher(self):
        if not self.watch_changes:
            return
        self.watcher = ChangeWatcher(
            self.crawler, self.site, self.watched,
            is_running=lambda: self.state == RunState.RUNNING and self.active,
            clock=self.clock,
        )
        try:
            await self.watcher.start()
        except Exception as e:
            self.logger.warning(f"Could not start change watcher: {e}")
            self.watcher = None

    async def _run_listing(self) -> RunState:
        state = self.pagination.resolve_from_soup(self.crawler.current_url, await self.crawler.snapshot())
        self.notify(
            f"Found {state.total_results} results across {state.total_pages} pages "
            f"({state.calculated_pages} calculated from {self.config.page_size} jobs/page). Starting scraping..."
        )

        while self.active and state.current_page <= state.total_pages:
            self.current_page = state.current_page
            self.total_pages = state.total_pages
            self.logger.info(f"\n{Colors.cyan('❯❯❯')} {Colors.bold(f'Page {state.current_page}/{state.total_pages}')} ({len(self.records)} jobs)")

            before = len(self.records)
            new_this_page = await self._scrape_page()
            self.result.pages += 1

            expected = self.pagination.expected_on_page(state, state.current_page)
            self.logger.info(f"Page {state.current_page}: {new_this_page} new jobs (expected up to {expected})")

            await self._hand_off(self.records.since(before), f'page {state.current_page}')

            if not self.active:
                return RunState.STOPPED

            if new_this_page < self.config.low_yield_threshold:
                self.consecutive_low_yield_pages += 1
                self.logger.info(
                    f"{Colors.yellow('Low yield page')}: {new_this_page} new jobs, "
                    f"{self.consecutive_low_yield_pages} consecutive"
                )
                if self.consecutive_low_yield_pages >= self.config.max_low_yield_pages:
                    self.notify(
                        f"Stopping early: found mostly duplicate jobs on last "
                        f"{self.config.max_low_yield_pages} pages. Total: {len(self.records)} jobs"
                    )
                    return RunState.ABORTED
            else:
                self.consecutive_low_yield_pages = 0

            if state.current_page >= state.total_pages:
                break

            try:
                await self._go_to_page(state, state.current_page + 1)
            except NavigationError as e:
                self.logger.error(str(e))
                self._record_error('navigation', e)
                self.notify(NAVIGATION_NOTICE)
                return RunState.STOPPED

            state = self.pagination.resolve_from_soup(self.crawler.current_url, await self.crawler.snapshot())

        if not self.active:
            return RunState.STOPPED

        self.notify(f"Scraping complete: {len(self.records)} jobs")
        return RunState.COMPLETED

    async def _go_to_page(self, state, next_page: int):
        url = self.pagination.next_page_url(self.crawler.current_url, next_page)
        self.logger.info(f"Navigating from page {state.current_page} to page {next_page} {Colors.gray(f'({url})')}")
        await self.crawler.goto(url)

        selectors = self.config.selectors

        async def page_loaded() -> bool:
            return await self.crawler.any_present(selectors['card']) and \
                await self.crawler.any_present(selectors['page_state'])

        await poll_until(
            page_loaded,
            interval=self.config.page_load_poll_interval,
            timeout=self.config.page_load_timeout,
            label='next page',
        )
        await asyncio.sleep(self.config.page_settle_delay)

    async def _scrape_page(self) -> int:
        """Lazy-load, then process every card on the page. Returns records accepted."""
        await self.lazy_loader.run()

        url = self.crawler.current_url
        soup = await self.crawler.snapshot()
        cards = self.site.find_cards(soup)
        self.card_total = len(cards)
        self.card_index = 0

        if not cards:
            self.notify(NO_CARDS_NOTICE)
            return 0

        accepted = 0
        for index, card in enumerate(cards):
            if not self.active:
                self.logger.info("Scraping stopped by user")
                break

            self.card_index = index + 1
            try:
                if await self._process_card(index, card, url):
                    accepted += 1
            except Exception as e:
                self._record_error('card', e, card=index + 1)
                self.logger.error(f"   {Colors.red('[ERR]')} card {index + 1}: {e}")

            if index < len(cards) - 1:
                await asyncio.sleep(self.config.card_interval_delay)

        return accepted

    async def _process_card(self, index: int, card, url: str) -> bool:
        position = f"[{index + 1}/{self.card_total}]"

        basic = self.site.extract_card(card, url, self.clock())
        if basic is None:
            self.result.rejected += 1
            self.logger.debug(f"   {position} skipped, could not read card")
            return False

        self.walked_keys.add(basic.key)
        if basic in self.records:
            self.result.duplicates += 1
            self.logger.info(f"   {Colors.gray('[DUP]')} {position} {basic.title}")
            return False

        enriched = await self.enrichment.enrich(index, basic)
        if not self.records.add(enriched):
            self.result.duplicates += 1
            self.logger.info(f"   {Colors.gray('[DUP]')} {position} {enriched.title}")
            return False

        self.result.accepted += 1
        self.logger.info(f"   {Colors.green('[NEW]')} {Colors.bold(position)} {enriched.title} at {enriched.company}")
        return True

    # ============================================================
    # HAND-OFF
    # ============================================================

    async def _hand_off(self, records: List[JobRecord], label: str):
        if not records or self.persist is None:
            return
        batch = list(records)
        try:
            if inspect.iscoroutinefunction(self.persist):
                await self.persist(batch)
            else:
                # Blocking storage calls run off the event loop
                outcome = await asyncio.get_running_loop().run_in_executor(None, self.persist, batch)
                if inspect.isawaitable(outcome):
                    await outcome
            self.logger.info(f"Saved {len(records)} jobs ({label})")
        except Exception as e:
            self._record_error('persist', e)
            self.logger.error(f"Failed to save jobs ({label}): {e}")

    def _record_error(self, stage: str, error: Exception, **context):
        self.result.errors += 1
        detail = {'stage': stage, 'error': str(error)}
        detail.update(context)
        self.result.error_details.append(detail)
