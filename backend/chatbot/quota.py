"""Fixed-window request counters for rate limiting and per-user quota.

Counts are kept per process and updated without locking; two concurrent
requests from the same key may both be admitted at the boundary.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable


@dataclass
class QuotaEntry:
    count: int
    reset_at: float


class QuotaTracker:
    """Admit at most ``limit`` hits per key in each ``window_seconds`` window."""

    def __init__(
        self,
        limit: int,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._entries: dict[str, QuotaEntry] = {}
        self._next_sweep = clock() + window_seconds

    def hit(self, key: str) -> bool:
        """Record a request for ``key``; return False once over the limit."""
        now = self._clock()
        if now >= self._next_sweep:
            self._sweep(now)

        entry = self._entries.get(key)
        if entry is None or entry.reset_at <= now:
            self._entries[key] = QuotaEntry(count=1, reset_at=now + self.window_seconds)
            return self.limit > 0
        if entry.count >= self.limit:
            return False
        entry.count += 1
        return True

    def _sweep(self, now: float) -> None:
        """Drop keys whose window has ended."""
        expired = [key for key, entry in self._entries.items() if entry.reset_at <= now]
        for key in expired:
            del self._entries[key]
        self._next_sweep = now + self.window_seconds
