"""Background sweep of expired rate limit entries.

The sweeper belongs to one limiter instance and is started/stopped by the
application lifespan.
"""

from __future__ import annotations

import asyncio
import logging

from recontrol.adapters.rate_limit.base import AbstractRateLimiter

logger = logging.getLogger(__name__)


class RateLimitSweeper:
    """Periodically calls ``limiter.sweep()`` on the running event loop."""

    def __init__(self, limiter: AbstractRateLimiter, *, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._limiter = limiter
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the sweep loop. Calling it twice keeps the existing task."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="rate-limit-sweeper"
        )
        logger.debug("rate_limit.sweeper_started", extra={"interval_s": self._interval})

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("rate_limit.sweeper_stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            removed = self._limiter.sweep()
            if removed:
                logger.debug("rate_limit.swept", extra={"removed": removed})
