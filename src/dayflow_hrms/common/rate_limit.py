from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict


@dataclass(frozen=True)
class RateLimitState:
    allowed: bool
    remaining: int
    reset_in: int


class RateLimiter:
    """
    Fixed-window per-identity limiter (identity is usually the remote address).
    Counters live in process memory, so each worker enforces its own window.
    Expired windows are swept at most once per window length.
    """

    def __init__(self, *, limit: int, window_seconds: int, clock: Callable[[], float] = time.monotonic):
        if limit <= 0:
            raise ValueError("limit must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._records: Dict[str, dict] = {}
        self._next_sweep = 0.0

    @property
    def tracked(self) -> int:
        """Number of identities currently holding a window."""
        return len(self._records)

    def _sweep(self, now: float) -> None:
        if now < self._next_sweep:
            return
        expired = [key for key, record in self._records.items() if record["reset_at"] <= now]
        for key in expired:
            del self._records[key]
        self._next_sweep = now + self.window_seconds

    def check(self, *, identity: str) -> RateLimitState:
        """Mark a hit for the identity and return the resulting status."""
        now = self._clock()
        with self._lock:
            self._sweep(now)
            record = self._records.get(identity)
            if not record or record["reset_at"] <= now:
                reset_at = now + self.window_seconds
                self._records[identity] = {"count": 1, "reset_at": reset_at}
                return RateLimitState(True, max(self.limit - 1, 0), self.window_seconds)

            reset_in = max(int(record["reset_at"] - now), 1)
            if record["count"] >= self.limit:
                return RateLimitState(False, 0, reset_in)

            record["count"] += 1
            return RateLimitState(True, max(self.limit - record["count"], 0), reset_in)

    def reset(self) -> None:
        with self._lock:
            self._records.clear()
            self._next_sweep = 0.0
