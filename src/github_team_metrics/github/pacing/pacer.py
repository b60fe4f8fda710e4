"""Request pacing against the tracked GitHub quota.

Before each request the pacer decides how long to wait:

- while a forced wait is active (set after a rate limit rejection),
  wait until it expires;
- when the pool's remaining quota is at or below the low-water-mark,
  wait until the pool's reset time;
- otherwise proceed immediately.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from github_team_metrics.github.rate_limit.schemas import RateLimitPool
from github_team_metrics.logging import get_logger

if TYPE_CHECKING:
    from github_team_metrics.github.rate_limit.monitor import RateLimitMonitor

logger = get_logger(__name__)


class RequestPacer:
    """Computes and applies the wait before the next GitHub request.

    Usage:
        monitor = RateLimitMonitor()
        pacer = RequestPacer(monitor)

        await pacer.wait(RateLimitPool.CORE)
        # Make request...
        monitor.update_from_headers(headers)
    """

    def __init__(self, monitor: RateLimitMonitor) -> None:
        """Initialize the request pacer.

        Args:
            monitor: RateLimitMonitor instance to read quota state from
        """
        self._monitor = monitor
        self._wait_until: datetime | None = None
        self._last_request_at: datetime | None = None
        self._total_wait_seconds = 0.0

    @property
    def monitor(self) -> RateLimitMonitor:
        return self._monitor

    # -------------------------------------------------------------------------
    # Delay Calculation
    # -------------------------------------------------------------------------
    def get_recommended_delay(self, pool: RateLimitPool = RateLimitPool.CORE) -> float:
        """Seconds to wait before the next request (0 = proceed).

        Args:
            pool: Rate limit pool the next request draws from

        Returns:
            Delay in seconds
        """
        now = datetime.now(UTC)

        if self._wait_until is not None:
            forced = (self._wait_until - now).total_seconds()
            if forced > 0:
                return forced
            self._wait_until = None

        if not self._monitor.is_below_low_water_mark(pool):
            return 0.0

        pool_limit = self._monitor.get_pool_limit(pool)
        assert pool_limit is not None
        return max(0.0, (pool_limit.reset_at - now).total_seconds())

    async def wait(self, pool: RateLimitPool = RateLimitPool.CORE) -> float:
        """Sleep for the recommended delay, then record the request start.

        Returns:
            The delay that was applied
        """
        delay = self.get_recommended_delay(pool)
        if delay > 0:
            logger.info(
                "Quota for pool {} at low-water-mark, waiting {:.1f}s for reset",
                pool.value,
                delay,
            )
            self._total_wait_seconds += delay
            await asyncio.sleep(delay)
        self._last_request_at = datetime.now(UTC)
        return delay

    # -------------------------------------------------------------------------
    # Forced Wait
    # -------------------------------------------------------------------------
    def force_wait_until(self, reset_at: datetime) -> None:
        """Hold every request until ``reset_at``.

        Args:
            reset_at: UTC datetime to wait until
        """
        self._wait_until = reset_at
        wait_seconds = max(0.0, (reset_at - datetime.now(UTC)).total_seconds())
        logger.info("Forced wait until {} ({:.1f} seconds)", reset_at.isoformat(), wait_seconds)

    def clear_forced_wait(self) -> None:
        self._wait_until = None

    @property
    def is_forced_wait_active(self) -> bool:
        if self._wait_until is None:
            return False
        return datetime.now(UTC) < self._wait_until

    def get_stats(self) -> dict[str, Any]:
        """Pacer statistics for status output."""
        return {
            "last_request_at": self._last_request_at.isoformat() if self._last_request_at else None,
            "total_wait_seconds": round(self._total_wait_seconds, 2),
            "is_forced_wait": self.is_forced_wait_active,
            "recommended_delay_seconds": round(self.get_recommended_delay(), 2),
        }
