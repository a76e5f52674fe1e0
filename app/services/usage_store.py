"""
Usage store module.

Holds API key records and their usage counters behind a small interface so the
quota gate does not care whether state lives in process memory or in an
external store:

- get(key) / get_usage(key): read a record / a snapshot of its counter
- put(record, counter): insert a new key (never overwrites)
- compare_and_increment(key, limit, now): atomic rollover + check + increment

InMemoryUsageStore keeps everything in dicts and serializes the
read-check-increment sequence with one lock per key, so traffic on unrelated
keys never contends. All state is lost on restart.
"""

import threading
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Tuple

from app.models import ApiKeyRecord, UsageCounter
from app.utils.timestamp_utils import advance_reset_boundary


class UsageStore(Protocol):
    """Storage contract required by QuotaGate."""

    def get(self, key: str) -> Optional[ApiKeyRecord]:
        ...

    def get_usage(self, key: str) -> Optional[UsageCounter]:
        ...

    def put(self, record: ApiKeyRecord, counter: UsageCounter) -> bool:
        ...

    def compare_and_increment(self, key: str, limit: int, now: datetime) -> Tuple[bool, UsageCounter]:
        ...

    def list_keys(self) -> List[str]:
        ...


class InMemoryUsageStore:
    """Process-local UsageStore backed by dicts and per-key locks."""

    def __init__(self):
        self._records: Dict[str, ApiKeyRecord] = {}
        self._counters: Dict[str, UsageCounter] = {}
        self._locks: Dict[str, threading.Lock] = {}
        # Guards insertion into the three dicts above
        self._registry_lock = threading.Lock()

    def get(self, key: str) -> Optional[ApiKeyRecord]:
        return self._records.get(key)

    def get_usage(self, key: str) -> Optional[UsageCounter]:
        lock = self._locks.get(key)
        if lock is None:
            return None
        with lock:
            return self._counters[key].model_copy()

    def put(self, record: ApiKeyRecord, counter: UsageCounter) -> bool:
        """Insert a key and its counter. Returns False if the key already exists."""
        with self._registry_lock:
            if record.key in self._records:
                return False
            # The record is published last: once get() sees it, the counter and lock exist
            self._counters[record.key] = counter.model_copy()
            self._locks[record.key] = threading.Lock()
            self._records[record.key] = record
            return True

    def compare_and_increment(self, key: str, limit: int, now: datetime) -> Tuple[bool, UsageCounter]:
        """
        Atomically roll the counter over if its reset boundary has passed, then
        admit the request when monthly_requests < limit.

        The rollover sticks even when the request is rejected.

        Returns:
            (admitted, snapshot of the counter after the operation)

        Raises:
            KeyError: if the key was never stored
        """
        lock = self._locks[key]
        with lock:
            counter = self._counters[key]

            if now >= counter.reset_date:
                counter.monthly_requests = 0
                counter.reset_date = advance_reset_boundary(counter.reset_date, now)

            if counter.monthly_requests >= limit:
                return False, counter.model_copy()

            counter.monthly_requests += 1
            counter.total_requests += 1
            counter.last_request_at = now
            return True, counter.model_copy()

    def list_keys(self) -> List[str]:
        with self._registry_lock:
            return list(self._records.keys())
