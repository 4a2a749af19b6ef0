"""Ordered record set keyed by job identity."""

from typing import Dict, Iterable, Iterator, List, Tuple

from .base import JobRecord


class DedupIndex:
    """
    Accepted records in arrival order with O(1) membership by identity key.

    The check and the insert in `add()` happen without yielding to the event
    loop, so the page walk and the change watcher can both append safely.
    """

    def __init__(self, records: Iterable[JobRecord] = ()):
        self._records: Dict[Tuple[str, str, str], JobRecord] = {}
        for record in records:
            self.add(record)

    def __contains__(self, record: JobRecord) -> bool:
        return record.key in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[JobRecord]:
        return iter(self._records.values())

    def add(self, record: JobRecord) -> bool:
        """Append a record unless its key is already present. Returns True if added."""
        if record.key in self._records:
            return False
        self._records[record.key] = record
        return True

    def records(self) -> List[JobRecord]:
        """Snapshot of the accepted records in arrival order."""
        return list(self._records.values())

    def since(self, count: int) -> List[JobRecord]:
        """Records accepted after the first `count` ones."""
        return self.records()[count:]

    def clear(self):
        self._records.clear()
