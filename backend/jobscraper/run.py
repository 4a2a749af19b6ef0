#!/usr/bin/env python3
"""
Run one scrape from the command line.

Opens a browser at the search URL, optionally waits for you to log in and
refine the search, then scrapes every results page and saves the jobs.

Usage:
    cd backend
    python -m jobscraper.run [url]

Examples:
    python -m jobscraper.run "https://www.linkedin.com/jobs/search/?keywords=python"
    python -m jobscraper.run --login            # log in first, press Enter to start
    python -m jobscraper.run --export ./exports # write a CSV when done
    python -m jobscraper.run --list             # list supported sites
"""

import asyncio
import argparse
import json
import logging

from jobapi.config import settings
from jobapi.database import init_db
from jobapi.export import export_jobs
from jobapi.logging_config import setup_logging
from jobapi.store import JobStore
from jobscraper.base import Colors
from jobscraper.config import get_site_config, list_sites
from jobscraper.crawlers.browser import BrowserCrawler
from jobscraper.manager import ScrapeManager, build_site

logger = logging.getLogger(__name__)


def print_sites():
    print(f"\n{'='*60}")
    print("Available Sites")
    print(f"{'='*60}\n")
    for key in list_sites():
        config = get_site_config(key)
        status = "✅" if config.enabled else "⏳"
        print(f"{status} {key:12} - {config.name} ({config.page_size} results/page)")
    print()


async def scrape(args) -> int:
    store = None if args.no_save else JobStore()
    if store is not None:
        init_db()

    site = build_site(
        args.site,
        card_interval_delay=args.card_delay,
        **{k: v for k, v in settings.site_overrides().items() if k != 'card_interval_delay'},
    )

    async with BrowserCrawler(
        headless=args.headless,
        timeout=settings.browser_timeout,
        storage_state=str(settings.session_path),
    ) as crawler:
        await crawler.goto(args.url)

        if args.login:
            await asyncio.to_thread(
                input, "Log in and set up your search in the browser, then press Enter to start scraping..."
            )
            await crawler.save_storage_state()

        manager = ScrapeManager(
            crawler, site,
            persist=store.merge if store else None,
            watch_changes=not args.no_watch,
        )

        manager.start()
        try:
            result = await manager.wait()
        except (KeyboardInterrupt, asyncio.CancelledError):
            manager.stop()
            result = await manager.wait()

        print(f"\n{'='*60}")
        print(f"{Colors.bold('Run finished')}: {result.state.value}")
        print(f"{'='*60}")
        print(json.dumps(result.to_dict(), indent=2, default=str))

        if store is not None:
            print(f"\n{store.count()} jobs saved in total")

        if args.export:
            jobs = store.load_raw() if store else [job.to_dict() for job in manager.scraped_jobs()]
            path = export_jobs(jobs, args.export)
            print(f"Exported to {path}" if path else "No jobs to export")

        return 0 if result.success else 1


def main():
    parser = argparse.ArgumentParser(description='Scrape LinkedIn job search results')
    parser.add_argument('url', nargs='?', default=settings.start_url, help='Search results or job page URL')
    parser.add_argument('--site', default=settings.site, help='Site key (default: linkedin)')
    parser.add_argument('--list', action='store_true', help='List supported sites')
    parser.add_argument('--login', action='store_true', help='Wait for manual login before scraping')
    parser.add_argument('--headless', action='store_true', default=settings.headless, help='Hide the browser window')
    parser.add_argument('--no-save', action='store_true', help='Do not write jobs to the database')
    parser.add_argument('--no-watch', action='store_true', help='Ignore cards rendered while the run is in progress')
    parser.add_argument('--card-delay', type=float, default=settings.card_interval_delay, help='Seconds between cards')
    parser.add_argument('--export', metavar='DIR', help='Write a CSV of the saved jobs to DIR')
    parser.add_argument('--log-level', default=settings.log_level, help='Logging level')

    args = parser.parse_args()

    if args.list:
        print_sites()
        return 0

    setup_logging(args.log_level)
    return asyncio.run(scrape(args))


if __name__ == "__main__":
    raise SystemExit(main())
