from __future__ import annotations

import threading

from .schemas import ReportRecord


class ReportBuffer:
    """In-memory staging area between the ingestion endpoint and the flush job.

    Producers call ``append`` from request handlers; the flush job is the only
    consumer and empties the buffer with ``drain``. Both hold the same lock for
    a constant-time critical section. An append that finds the lock held by a
    drain is dropped instead of waiting; one that finds it held by another
    append waits its turn.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[ReportRecord] = []
        self._draining = False

    def append(self, record: ReportRecord) -> bool:
        if not self._lock.acquire(blocking=False):
            if self._draining:
                return False
            self._lock.acquire()
        try:
            self._records.append(record)
        finally:
            self._lock.release()
        return True

    def drain(self) -> list[ReportRecord]:
        with self._lock:
            self._draining = True
            try:
                return self._take()
            finally:
                self._draining = False

    def _take(self) -> list[ReportRecord]:
        records, self._records = self._records, []
        return records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
