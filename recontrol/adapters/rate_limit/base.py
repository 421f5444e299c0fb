"""Rate limiter interfaces.

The API depends on this abstraction (not the concrete implementation) so the
in-process store can be swapped for a shared one (e.g., Redis) when REcontrol
runs on more than one instance.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Verdict of a rate limit check.

    Attributes:
        allowed: Whether the write may proceed.
        limit: Max writes per window.
        remaining: Writes left in the current window (0 when blocked).
        reset_at: Epoch milliseconds at which the current window expires.
        retry_after_seconds: Suggested wait in whole seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for admin write rate limiters."""

    @abstractmethod
    def check(self, identity: str) -> RateLimitResult:
        """Record a write attempt for ``identity`` and return the verdict.

        Args:
            identity: Stable, non-empty identifier of the admin (e.g., user id).

        Returns:
            RateLimitResult describing whether the write was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def sweep(self) -> int:
        """Drop state for windows that have already closed.

        Returns:
            Number of entries removed.
        """
        raise NotImplementedError
