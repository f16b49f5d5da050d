"""Bounded history of submitted transactions, newest first."""
from __future__ import annotations

from collections import deque
from collections.abc import Iterator

from ..models import TransactionRecord

DEFAULT_CAPACITY = 10


class TransactionLog:
    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._records: deque[TransactionRecord] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._records.maxlen or DEFAULT_CAPACITY

    def append(self, record: TransactionRecord) -> None:
        """Insert at the head; the oldest record falls off the tail when full."""
        self._records.appendleft(record)

    @property
    def records(self) -> tuple[TransactionRecord, ...]:
        return tuple(self._records)

    @property
    def latest(self) -> TransactionRecord | None:
        return self._records[0] if self._records else None

    def clear(self) -> None:
        self._records.clear()

    def __iter__(self) -> Iterator[TransactionRecord]:
        return iter(tuple(self._records))

    def __len__(self) -> int:
        return len(self._records)
