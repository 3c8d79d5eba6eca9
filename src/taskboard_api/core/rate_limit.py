"""In-process fixed-window rate limiting keyed by caller address."""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: float = 0.0


@dataclass(slots=True)
class _Window:
    started_at: float
    count: int


class FixedWindowRateLimiter:
    """Allow ``limit`` attempts per ``window_seconds`` for each key.

    A key's window opens at its first attempt and closes ``window_seconds``
    later; the next attempt after that opens a fresh window. Expired windows
    are evicted at most once per window length, so memory is bounded by the
    number of keys seen within one window.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self._limit = limit
        self._window = float(window_seconds)
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._next_eviction = clock() + self._window

    @property
    def limit(self) -> int:
        return self._limit

    def check(self, key: str) -> RateLimitDecision:
        """Record one attempt for ``key`` and decide whether it may proceed."""
        now = self._clock()
        with self._lock:
            if now >= self._next_eviction:
                self._evict_expired(now)

            window = self._windows.get(key)
            if window is None or now - window.started_at >= self._window:
                window = _Window(started_at=now, count=0)
                self._windows[key] = window

            window.count += 1
            if window.count > self._limit:
                retry_after = self._window - (now - window.started_at)
                return RateLimitDecision(False, 0, retry_after)
            return RateLimitDecision(True, self._limit - window.count)

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)

    def __len__(self) -> int:
        return len(self._windows)

    def _evict_expired(self, now: float) -> None:
        expired = [
            key for key, window in self._windows.items() if now - window.started_at >= self._window
        ]
        for key in expired:
            del self._windows[key]
        self._next_eviction = now + self._window


def retry_after_seconds(decision: RateLimitDecision) -> int:
    return max(1, math.ceil(decision.retry_after))


__all__ = ["FixedWindowRateLimiter", "RateLimitDecision", "retry_after_seconds"]
