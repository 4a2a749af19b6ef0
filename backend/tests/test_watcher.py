"""
Tests for the change watcher.
"""

import asyncio
import dataclasses
from datetime import datetime, timezone

from jobscraper.dedup import DedupIndex
from jobscraper.sites.linkedin import LinkedInSite
from jobscraper.watcher import BINDING_NAME, ChangeWatcher

from conftest import SEARCH_URL, FakeCrawler, FakePage, card_html


NOW = datetime(2024, 3, 31, 12, 0, 0, tzinfo=timezone.utc)


def make_watcher(site, cards, running=True):
    crawler = FakeCrawler({SEARCH_URL: FakePage(cards=cards, total_results=len(cards))}, SEARCH_URL)
    records = DedupIndex()
    state = {'running': running}
    watcher = ChangeWatcher(crawler, site, records, is_running=lambda: state['running'], clock=lambda: NOW)
    return crawler, watcher, records, state


class TestChangeWatcher:
    """Test subscription, coalescing and teardown."""

    def test_start_installs_observer(self, site):
        async def scenario():
            crawler, watcher, _, _ = make_watcher(site, [])
            await watcher.start()
            assert watcher.connected
            assert crawler.bindings[BINDING_NAME] == watcher.on_cards_added
            script, arg = crawler.evaluated[0]
            assert arg['binding'] == BINDING_NAME
            assert arg['ttlMs'] == 5000
            await watcher.stop()
            return crawler

        crawler = asyncio.run(scenario())
        assert len(crawler.evaluated) == 2

    def test_burst_of_reports_is_one_pass(self, site):
        async def scenario():
            _, watcher, records, _ = make_watcher(site, [card_html("1", "Job 1"), card_html("2", "Job 2")])
            await watcher.start()
            for _ in range(5):
                watcher.on_cards_added()
            await asyncio.sleep(0.05)
            await watcher.stop()
            return watcher, records

        watcher, records = asyncio.run(scenario())
        assert watcher.passes == 1
        assert watcher.added == 2
        assert [r.title for r in records] == ["Job 1", "Job 2"]

    def test_known_cards_not_added_twice(self, site):
        async def scenario():
            _, watcher, records, _ = make_watcher(site, [card_html("1", "Job 1")])
            await watcher.start()
            watcher.on_cards_added()
            await asyncio.sleep(0.05)
            watcher.on_cards_added()
            await asyncio.sleep(0.05)
            await watcher.stop()
            return watcher, records

        watcher, records = asyncio.run(scenario())
        assert watcher.passes == 2
        assert watcher.added == 1
        assert len(records) == 1

    def test_report_after_run_ends_disconnects(self, site):
        async def scenario():
            _, watcher, records, state = make_watcher(site, [card_html("1", "Job 1")])
            await watcher.start()
            state['running'] = False
            watcher.on_cards_added()
            await asyncio.sleep(0.05)
            return watcher, records

        watcher, records = asyncio.run(scenario())
        assert watcher.connected is False
        assert watcher.passes == 0
        assert len(records) == 0

    def test_reports_ignored_after_stop(self, site):
        async def scenario():
            _, watcher, records, _ = make_watcher(site, [card_html("1", "Job 1")])
            await watcher.start()
            await watcher.stop()
            watcher.on_cards_added()
            await asyncio.sleep(0.05)
            return watcher, records

        watcher, records = asyncio.run(scenario())
        assert watcher.passes == 0
        assert len(records) == 0

    def test_expires_after_ttl(self, fast_config):
        site = LinkedInSite(dataclasses.replace(fast_config, watcher_ttl=0.01))

        async def scenario():
            _, watcher, _, _ = make_watcher(site, [])
            await watcher.start()
            await asyncio.sleep(0.1)
            return watcher

        assert asyncio.run(scenario()).connected is False
