"""
Command bus.

Every control surface (HTTP, CLI, tests) talks to the scraper through
`CommandBus.dispatch`, which takes a message with an `action` and returns
a JSON-ready response dict. Handler failures come back as
`{success: false, error}` and are never retried.
"""

import inspect
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from jobapi.export import export_jobs
from jobapi.store import JobStore
from jobscraper.base import BrowserNotReadyError
from jobscraper.manager import ScrapeManager

logger = logging.getLogger(__name__)

NO_JOBS_NOTICE = "No jobs to export. Please scrape some jobs first."


class CommandBus:
    """Routes action messages to the scrape manager and the job store."""

    def __init__(self, store: JobStore, manager: Optional[ScrapeManager] = None,
                 export_dir: Union[str, Path] = 'exports'):
        """
        Args:
            store: Persistent job list
            manager: Scrape manager; None until a browser session is open
            export_dir: Directory CSV exports are written to
        """
        self.store = store
        self.manager = manager
        self.export_dir = export_dir
        self._handlers: Dict[str, Callable[[dict], Any]] = {
            'START_SCRAPING': self.start_scraping,
            'STOP_SCRAPING': self.stop_scraping,
            'GET_SCRAPED_JOBS': self.get_scraped_jobs,
            'SAVE_JOBS': self.save_jobs,
            'GET_ALL_JOBS': self.get_all_jobs,
            'EXPORT_CSV': self.export_csv,
            'CLEAR_JOBS': self.clear_jobs,
            'GET_STATUS': self.get_status,
        }

    @property
    def actions(self):
        return list(self._handlers)

    async def dispatch(self, message: Dict[str, Any]) -> Dict[str, Any]:
        action = (message or {}).get('action')
        handler = self._handlers.get(action)
        if handler is None:
            logger.warning(f"Unknown action: {action}")
            return {'success': False, 'error': 'Unknown action'}

        logger.debug(f"Dispatching {action}")
        try:
            response = handler(message)
            if inspect.isawaitable(response):
                response = await response
            return response
        except Exception as e:
            logger.error(f"{action} failed: {e}")
            return {'success': False, 'error': str(e)}

    # ============================================================
    # HANDLERS
    # ============================================================

    def start_scraping(self, message: dict) -> dict:
        if self.manager is None:
            raise BrowserNotReadyError("No browser session is open")
        if not self.manager.start():
            return {'success': False, 'error': 'Scraping already in progress'}
        return {'success': True}

    def stop_scraping(self, message: dict) -> dict:
        if self.manager is not None:
            self.manager.stop()
        return {'success': True}

    def get_scraped_jobs(self, message: dict) -> dict:
        jobs = self.manager.scraped_jobs() if self.manager is not None else []
        return {'jobs': [job.to_dict() for job in jobs]}

    def save_jobs(self, message: dict) -> dict:
        jobs = message.get('jobs')
        if not isinstance(jobs, list):
            raise ValueError("'jobs' must be a list")
        added, total = self.store.merge(jobs)
        return {'success': True, 'jobCount': total, 'added': added}

    def get_all_jobs(self, message: dict) -> dict:
        return {'jobs': self.store.load_raw()}

    def export_csv(self, message: dict) -> dict:
        jobs = self.store.load_raw()
        path = export_jobs(jobs, self.export_dir)
        if path is None:
            return {'success': True, 'notice': NO_JOBS_NOTICE}
        return {'success': True, 'file': str(path), 'jobCount': len(jobs)}

    def clear_jobs(self, message: dict) -> dict:
        self.store.clear()
        return {'success': True}

    def get_status(self, message: dict) -> dict:
        if self.manager is None:
            status = {'state': 'idle', 'active': False, 'jobs': 0, 'notice': None, 'browser': False}
        else:
            status = dict(self.manager.status(), browser=True)
        status['saved'] = self.store.count()
        return {'success': True, 'status': status}
