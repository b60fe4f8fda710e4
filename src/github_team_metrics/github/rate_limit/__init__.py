"""Rate limit tracking for the GitHub API.

Quota state is tracked passively from response headers so the client
can wait for the reset instead of running into exhaustion.
"""

from .monitor import RateLimitMonitor
from .schemas import (
    PoolRateLimit,
    RateLimitPool,
    RateLimitSnapshot,
    RateLimitStatus,
)

__all__ = [
    "PoolRateLimit",
    "RateLimitMonitor",
    "RateLimitPool",
    "RateLimitSnapshot",
    "RateLimitStatus",
]
