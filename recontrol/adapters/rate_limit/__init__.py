"""Rate limiting adapters.

This package provides a small abstraction layer so REcontrol can start with an
in-memory limiter and later migrate to Redis or another shared store without
changing the API layer.
"""

from recontrol.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from recontrol.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from recontrol.adapters.rate_limit.sweeper import RateLimitSweeper

__all__ = [
    "AbstractRateLimiter",
    "InMemoryFixedWindowRateLimiter",
    "RateLimitResult",
    "RateLimitSweeper",
]
