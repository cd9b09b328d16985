"""
Round history - newest-first, fixed-capacity log of crash points.
"""

from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from itertools import islice
from typing import Iterable, Iterator


@dataclass(frozen=True)
class HistoryEntry:
    id: int
    multiplier: Decimal
    timestamp: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "multiplier": float(round(self.multiplier, 2)),
            "timestamp": self.timestamp.isoformat(),
        }


class HistoryView(Sequence):
    """
    Read-only window over the first `limit` entries of a RoundHistory.

    Holds no copy: every iteration, len() or index reads the history as it is
    at that moment, so the view can be reused across rounds.
    """

    def __init__(self, entries: deque, limit: int):
        self._entries = entries
        self._limit = max(0, limit)

    def __len__(self) -> int:
        return min(self._limit, len(self._entries))

    def __iter__(self) -> Iterator[HistoryEntry]:
        return islice(self._entries, len(self))

    def __getitem__(self, index):
        if isinstance(index, slice):
            return list(self)[index]
        size = len(self)
        if index < 0:
            index += size
        if not 0 <= index < size:
            raise IndexError("history index out of range")
        return self._entries[index]

    def __repr__(self) -> str:
        return f"HistoryView({list(self)!r})"


class RoundHistory:
    """Crash points of completed rounds, most recent first."""

    DEFAULT_CAPACITY = 20

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        # appendleft on a bounded deque drops from the right, i.e. the oldest
        self._entries: deque = deque(maxlen=capacity)

    def record(self, entry: HistoryEntry) -> None:
        self._entries.appendleft(entry)

    def seed(self, entries: Iterable[HistoryEntry]) -> None:
        """Preload entries given newest first (demo history at start-up)."""
        for entry in reversed(list(entries)):
            self.record(entry)

    def latest(self, n: int = None) -> HistoryView:
        if n is None:
            n = self.capacity
        return HistoryView(self._entries, n)

    def __len__(self) -> int:
        return len(self._entries)
