"""Fixed-capacity sample history shared by the poller and request handlers.

A single writer (the poller) overwrites the oldest slot on every append while
any number of readers take ordered copies. Reads hold a shared lock for the
duration of the copy only, so callers never see a record replaced mid-read.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from expvardash.models.sample import EMPTY_SAMPLE, SampleRecord

DEFAULT_CAPACITY = 10


class ReadWriteLock:
    """Shared/exclusive lock that prefers waiting writers.

    Readers proceed together; a writer waits for active readers to drain and
    blocks new readers while it is queued.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def shared(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class RingHistory:
    """Circular buffer of :class:`SampleRecord` with overwrite-oldest eviction."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
            raise ValueError(f"capacity must be a positive integer, got {capacity!r}")
        self._capacity = capacity
        self._slots: list[SampleRecord] = [EMPTY_SAMPLE] * capacity
        self._cursor = 0
        self._lock = ReadWriteLock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return self._capacity

    def append(self, record: SampleRecord) -> None:
        """Overwrite the oldest slot with ``record``."""
        with self._lock.exclusive():
            self._slots[self._cursor] = record
            self._cursor = (self._cursor + 1) % self._capacity

    def snapshot(self) -> list[SampleRecord]:
        """Return every slot, oldest first, as a new list.

        Until the buffer has wrapped once the leading entries are the
        zero-value placeholder.
        """
        with self._lock.shared():
            cursor = self._cursor
            return self._slots[cursor:] + self._slots[:cursor]
