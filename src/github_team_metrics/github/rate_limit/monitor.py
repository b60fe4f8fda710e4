"""Rate limit tracking for the GitHub API.

The monitor keeps the latest known quota for each pool, updated
passively from response headers (zero API cost) or explicitly from
the /rate_limit endpoint.
"""

from __future__ import annotations

from typing import Any

from github_team_metrics.config import RateLimitConfig, get_settings
from github_team_metrics.logging import get_logger

from .schemas import (
    PoolRateLimit,
    RateLimitPool,
    RateLimitSnapshot,
    RateLimitStatus,
)

logger = get_logger(__name__)


class RateLimitMonitor:
    """Tracks remaining quota and reset time per pool.

    Usage:
        monitor = RateLimitMonitor()
        monitor.update_from_headers(dict(response.headers))
        if monitor.get_remaining() <= 10:
            ...
    """

    def __init__(self, config: RateLimitConfig | None = None) -> None:
        """Initialize the monitor.

        Args:
            config: Optional rate limit configuration (uses settings if not provided)
        """
        self._config = config or get_settings().rate_limit
        self._snapshot: RateLimitSnapshot | None = None

    @property
    def config(self) -> RateLimitConfig:
        return self._config

    @property
    def snapshot(self) -> RateLimitSnapshot | None:
        """Current snapshot (None if nothing tracked yet)."""
        return self._snapshot

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------
    def update_from_headers(
        self,
        headers: dict[str, str],
        pool: RateLimitPool = RateLimitPool.CORE,
    ) -> None:
        """Update state from response headers.

        Args:
            headers: HTTP response headers (lower-case keys)
            pool: Default pool if not specified in headers
        """
        if not self._config.track_from_headers:
            return

        partial = RateLimitSnapshot.from_response_headers(headers, pool)
        if not partial.pools:
            return
        self._merge(partial)

        for limit in partial.pools.values():
            if limit.remaining <= self._config.low_water_mark:
                logger.warning(
                    "Rate limit low for pool {}: {} remaining, resets at {}",
                    limit.pool.value,
                    limit.remaining,
                    limit.reset_at.isoformat(),
                )

    def update_from_api_response(self, data: dict[str, Any]) -> RateLimitSnapshot:
        """Replace tracked state with a /rate_limit API response."""
        self._merge(RateLimitSnapshot.from_api_response(data))
        assert self._snapshot is not None
        return self._snapshot

    def _merge(self, partial: RateLimitSnapshot) -> None:
        if self._snapshot is None:
            self._snapshot = partial
        else:
            self._snapshot = self._snapshot.merge(partial)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------
    def get_pool_limit(
        self,
        pool: RateLimitPool = RateLimitPool.CORE,
    ) -> PoolRateLimit | None:
        """Get tracked quota for a pool (None if no data)."""
        if self._snapshot is None:
            return None
        return self._snapshot.get_pool(pool)

    def get_status(self, pool: RateLimitPool = RateLimitPool.CORE) -> RateLimitStatus:
        """Get health status for a pool (HEALTHY if unknown)."""
        limit = self.get_pool_limit(pool)
        if limit is None:
            return RateLimitStatus.HEALTHY
        return limit.get_status(
            self._config.healthy_threshold_pct,
            self._config.warning_threshold_pct,
        )

    def is_below_low_water_mark(self, pool: RateLimitPool = RateLimitPool.CORE) -> bool:
        """True when tracked remaining quota is at or below the low-water-mark."""
        limit = self.get_pool_limit(pool)
        if limit is None:
            return False
        return limit.remaining <= self._config.low_water_mark

    def to_dict(self) -> dict[str, Any]:
        """Export current state for status output."""
        if self._snapshot is None:
            return {"tracked": False, "pools": {}}

        pools_data: dict[str, Any] = {}
        for pool, limit in self._snapshot.pools.items():
            pools_data[pool.value] = {
                "limit": limit.limit,
                "remaining": limit.remaining,
                "used": limit.used,
                "remaining_percent": round(limit.remaining_percent, 2),
                "reset_at": limit.reset_at.isoformat(),
                "seconds_until_reset": round(limit.seconds_until_reset),
                "status": self.get_status(pool).value,
            }

        return {
            "tracked": True,
            "timestamp": self._snapshot.timestamp.isoformat(),
            "low_water_mark": self._config.low_water_mark,
            "pools": pools_data,
        }
