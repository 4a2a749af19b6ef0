"""
Persistent job list.

All saved jobs live as one JSON array under a single key of the kv_entries
table, in the order they were first saved.
"""

import json
import logging
import threading
from typing import Iterable, List, Tuple, Union

from jobapi.database import KeyValueEntry, SessionLocal, utc_now
from jobscraper.base import JobRecord

logger = logging.getLogger(__name__)

JOBS_KEY = 'linkedinJobs'


def _identity(job: dict) -> Tuple[str, str, str]:
    return (job.get('title', ''), job.get('company', ''), job.get('url', ''))


class JobStore:
    """
    Saved jobs, merged by identity key (title, company, url).

    Writes are serialized with a lock: a scrape run merges from an executor
    thread while commands merge from the event loop thread.

    Usage:
        store = JobStore()
        added, total = store.merge(records)
        jobs = store.load()
    """

    def __init__(self, session_factory=SessionLocal, key: str = JOBS_KEY):
        self.session_factory = session_factory
        self.key = key
        self._lock = threading.Lock()

    def _read(self, db) -> List[dict]:
        entry = db.get(KeyValueEntry, self.key)
        if entry is None:
            return []
        try:
            value = json.loads(entry.value)
        except ValueError as e:
            logger.error(f"Stored value under '{self.key}' is not valid JSON: {e}")
            raise
        return value if isinstance(value, list) else []

    def load_raw(self) -> List[dict]:
        """Saved jobs in wire form."""
        db = self.session_factory()
        try:
            return self._read(db)
        finally:
            db.close()

    def load(self) -> List[JobRecord]:
        return [JobRecord.from_dict(job) for job in self.load_raw()]

    def count(self) -> int:
        return len(self.load_raw())

    def merge(self, records: Iterable[Union[JobRecord, dict]]) -> Tuple[int, int]:
        """
        Append jobs whose identity key is not already saved.

        Args:
            records: JobRecords or wire-form dicts

        Returns:
            Tuple of (added, total)
        """
        incoming = [r.to_dict() if isinstance(r, JobRecord) else dict(r) for r in records]

        with self._lock:
            db = self.session_factory()
            try:
                saved = self._read(db)
                seen = {_identity(job) for job in saved}

                added = 0
                for job in incoming:
                    key = _identity(job)
                    if key in seen:
                        continue
                    seen.add(key)
                    saved.append(job)
                    added += 1

                if added:
                    entry = db.get(KeyValueEntry, self.key)
                    if entry is None:
                        entry = KeyValueEntry(key=self.key, value='[]')
                        db.add(entry)
                    entry.value = json.dumps(saved)
                    entry.updated_at = utc_now()
                    db.commit()

                logger.info(f"Saved {added} new jobs ({len(incoming) - added} already stored), {len(saved)} total")
                return added, len(saved)
            except Exception:
                db.rollback()
                raise
            finally:
                db.close()

    def clear(self):
        with self._lock:
            db = self.session_factory()
            try:
                entry = db.get(KeyValueEntry, self.key)
                if entry is not None:
                    db.delete(entry)
                    db.commit()
                logger.info("Cleared saved jobs")
            finally:
                db.close()
