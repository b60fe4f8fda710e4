"""Repository for MetricSample model CRUD operations."""

from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from github_team_metrics.db.models import MetricSample, MetricType

from .base import BaseRepository


def scope_key_for(actor_id: int | None = None, repository_id: int | None = None) -> str:
    """Non-null stand-in for the (actor_id, repository_id) part of the natural key."""
    if actor_id is not None and repository_id is not None:
        return f"actor:{actor_id}:repository:{repository_id}"
    if actor_id is not None:
        return f"actor:{actor_id}"
    if repository_id is not None:
        return f"repository:{repository_id}"
    return "team"


class MetricSampleRepository(BaseRepository[MetricSample]):
    """Repository for metric rollups.

    One row per (scope, metric type, metric name, period start).
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, MetricSample)

    async def get_by_natural_key(
        self,
        *,
        actor_id: int | None,
        repository_id: int | None,
        metric_type: MetricType,
        metric_name: str,
        period_start: datetime,
    ) -> MetricSample | None:
        stmt = select(MetricSample).where(
            MetricSample.scope_key == scope_key_for(actor_id, repository_id),
            MetricSample.metric_type == metric_type,
            MetricSample.metric_name == metric_name,
            MetricSample.period_start == period_start,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_samples(
        self,
        *,
        metric_type: MetricType | None = None,
        metric_name: str | None = None,
        actor_id: int | None = None,
        repository_id: int | None = None,
    ) -> list[MetricSample]:
        """Samples matching the given filters, oldest period first."""
        stmt = select(MetricSample)
        if metric_type is not None:
            stmt = stmt.where(MetricSample.metric_type == metric_type)
        if metric_name is not None:
            stmt = stmt.where(MetricSample.metric_name == metric_name)
        if actor_id is not None:
            stmt = stmt.where(MetricSample.actor_id == actor_id)
        if repository_id is not None:
            stmt = stmt.where(MetricSample.repository_id == repository_id)
        result = await self._session.execute(stmt.order_by(MetricSample.period_start))
        return list(result.scalars().all())

    async def save(
        self,
        values: dict[str, Any],
        existing: MetricSample | None = None,
    ) -> MetricSample:
        """Create a sample, or overwrite ``existing`` in place.

        Args:
            values: Column values including the natural key fields
            existing: Row to overwrite (recalculation)
        """
        values = {
            **values,
            "scope_key": scope_key_for(values.get("actor_id"), values.get("repository_id")),
        }
        if existing is None:
            sample = self.add(MetricSample(**values))
        else:
            sample = self._apply(existing, values)
        await self.flush()
        return sample
