"""In-memory fixed-window rate limiter for admin writes.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: the read-decide-update sequence runs under one lock.
- Each identity's window opens on its first write, not on a wall-clock grid.
- Fixed window: a burst straddling ``reset_at`` can get up to twice the limit
  across the boundary.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from recontrol.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class RateLimitEntry:
    count: int
    reset_at: int


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Per-operator write budget with windows opened by the first write.

    With the defaults an operator gets 10 writes per 60 000 ms. Once ``now``
    passes ``reset_at`` the entry is replaced rather than incremented, and a
    denied check leaves the entry untouched.

    State lives in this instance only: every API worker process enforces its
    own budget, and a restart forgets all counters.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_ms: int,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of writes allowed per window.
            window_ms: Size of the fixed window in milliseconds.
            clock: Time source returning epoch milliseconds.

        Raises:
            ValueError: If limit or window_ms are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")

        self._limit = limit
        self._window_ms = window_ms
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, RateLimitEntry] = {}

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _allowed(self, *, remaining: int, reset_at: int) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            limit=self._limit,
            remaining=remaining,
            reset_at=reset_at,
            retry_after_seconds=None,
        )

    def _blocked(self, *, now: int, reset_at: int) -> RateLimitResult:
        retry_after = max(0, math.ceil((reset_at - now) / 1000))
        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            remaining=0,
            reset_at=reset_at,
            retry_after_seconds=retry_after,
        )

    def check(self, identity: str) -> RateLimitResult:
        """Record a write attempt for ``identity`` and return the verdict.

        Args:
            identity: Stable admin identifier.

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If identity is empty.
        """
        if not identity:
            raise ValueError("identity must be a non-empty string")

        with self._lock:
            now = self._clock()
            entry = self._entries.get(identity)

            if entry is None or now > entry.reset_at:
                entry = RateLimitEntry(count=1, reset_at=now + self._window_ms)
                self._entries[identity] = entry
                return self._allowed(remaining=self._limit - 1, reset_at=entry.reset_at)

            if entry.count < self._limit:
                entry.count += 1
                return self._allowed(remaining=self._limit - entry.count, reset_at=entry.reset_at)

            return self._blocked(now=now, reset_at=entry.reset_at)

    def sweep(self) -> int:
        """Remove entries whose window has closed.

        Only bounds memory to recently active admins; ``check`` already treats
        stale entries as absent.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if now > entry.reset_at]
            for key in expired:
                del self._entries[key]
            return len(expired)
