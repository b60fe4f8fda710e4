"""Metrics Engine - periodic rollups of synced activity.

For each scope (actor, repository, team) and each aligned period the
engine computes raw aggregates and composite scores and stores one
MetricSample per natural key. Existing samples are left alone unless
``recalculate`` is set.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from github_team_metrics.config import Settings, get_settings
from github_team_metrics.db.engine import get_session_factory
from github_team_metrics.db.models import MetricType
from github_team_metrics.db.repositories import (
    ActorRepository,
    MetricSampleRepository,
    RepositoryRepository,
)
from github_team_metrics.logging import get_logger
from github_team_metrics.schemas.base import as_naive_utc, utc_now

from .aggregates import Scope, compute_aggregates
from .periods import Period, default_span_start, generate_periods
from .scores import compute_scores, confidence, data_points

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)

BUSY_MESSAGE = "Metrics calculation already in progress"


@dataclass
class MetricsOptions:
    """What a calculation covers.

    Scope rules: per-actor samples unless ``repository_id`` is given,
    per-repository samples unless ``actor_id`` is given, and a team
    sample when neither is given. With both, one sample describes the
    actor's activity within that repository.
    """

    metric_type: MetricType | str = MetricType.DAILY
    start: datetime | None = None
    end: datetime | None = None
    actor_id: int | None = None
    repository_id: int | None = None
    recalculate: bool = False

    def __post_init__(self) -> None:
        self.metric_type = MetricType(self.metric_type)
        self.start = as_naive_utc(self.start)
        self.end = as_naive_utc(self.end)

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric_type": MetricType(self.metric_type).value,
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
            "actor_id": self.actor_id,
            "repository_id": self.repository_id,
            "recalculate": self.recalculate,
        }


@dataclass
class MetricsResult:
    """Outcome of one calculation."""

    success: bool = True
    message: str = ""
    metric_type: MetricType = MetricType.DAILY
    periods: int = 0
    scopes: int = 0
    samples_created: int = 0
    samples_updated: int = 0
    samples_skipped: int = 0
    errors: list[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=utc_now)
    completed_at: datetime | None = None

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "metric_type": self.metric_type.value,
            "periods": self.periods,
            "scopes": self.scopes,
            "samples_created": self.samples_created,
            "samples_updated": self.samples_updated,
            "samples_skipped": self.samples_skipped,
            "errors": list(self.errors),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": round(self.duration_seconds, 2),
        }

    @classmethod
    def busy(cls) -> MetricsResult:
        now = utc_now()
        return cls(success=False, message=BUSY_MESSAGE, started_at=now, completed_at=now)


class MetricsEngine:
    """Computes and stores MetricSample rows.

    Has its own in-progress guard, independent of the sync orchestrator,
    so it may run while a sync is writing (samples then reflect whatever
    was committed at the time).

    Usage:
        engine = MetricsEngine()
        result = await engine.calculate_metrics(MetricsOptions(metric_type="weekly"))
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._session_factory = session_factory or get_session_factory()
        self._settings = settings or get_settings()
        self._in_progress = False

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    async def calculate_metrics(self, options: MetricsOptions | None = None) -> MetricsResult:
        """Compute samples for every scope and period in the requested range.

        Returns:
            MetricsResult with sample counts and per-period errors
        """
        if self._in_progress:
            logger.warning("Metrics calculation requested while another is running")
            return MetricsResult.busy()

        self._in_progress = True
        options = options or MetricsOptions()
        metric_type = MetricType(options.metric_type)
        result = MetricsResult(metric_type=metric_type)
        try:
            end = options.end or utc_now()
            start = options.start or default_span_start(end, metric_type)
            periods = generate_periods(metric_type, start, end)
            result.periods = len(periods)
            logger.info(
                "Calculating {} metrics over {} periods ({} to {})",
                metric_type.value,
                len(periods),
                start.isoformat(),
                end.isoformat(),
            )

            async with self._session_factory() as session:
                scopes = await self._resolve_scopes(session, options)
                result.scopes = len(scopes)
                for scope in scopes:
                    await self._calculate_scope(
                        session, scope, metric_type, periods, options, result
                    )
        except Exception as e:
            logger.exception("Metrics calculation aborted: {}", e)
            result.success = False
            result.message = f"Metrics calculation failed: {e}"
            result.errors.append(f"Metrics: {e}")
        finally:
            self._in_progress = False
            result.completed_at = utc_now()

        if not result.message:
            result.message = (
                f"Created {result.samples_created}, updated {result.samples_updated}, "
                f"skipped {result.samples_skipped} samples"
            )
        logger.info("Metrics calculation finished: {}", result.message)
        return result

    async def _resolve_scopes(
        self, session: AsyncSession, options: MetricsOptions
    ) -> list[Scope]:
        if options.actor_id is not None and options.repository_id is not None:
            return [Scope(actor_id=options.actor_id, repository_id=options.repository_id)]

        scopes: list[Scope] = []
        if options.repository_id is None:
            if options.actor_id is not None:
                actor_ids = [options.actor_id]
            else:
                actor_ids = [a.id for a in await ActorRepository(session).get_active()]
            scopes.extend(Scope(actor_id=actor_id) for actor_id in actor_ids)

        if options.actor_id is None:
            if options.repository_id is not None:
                repository_ids = [options.repository_id]
            else:
                repository_ids = [r.id for r in await RepositoryRepository(session).get_active()]
            scopes.extend(Scope(repository_id=repository_id) for repository_id in repository_ids)

        if options.actor_id is None and options.repository_id is None:
            scopes.append(Scope())
        return scopes

    async def _calculate_scope(
        self,
        session: AsyncSession,
        scope: Scope,
        metric_type: MetricType,
        periods: list[Period],
        options: MetricsOptions,
        result: MetricsResult,
    ) -> None:
        samples = MetricSampleRepository(session)
        for period_start, period_end in periods:
            try:
                existing = await samples.get_by_natural_key(
                    actor_id=scope.actor_id,
                    repository_id=scope.repository_id,
                    metric_type=metric_type,
                    metric_name=scope.metric_name,
                    period_start=period_start,
                )
                if existing is not None and not options.recalculate:
                    result.samples_skipped += 1
                    continue

                values = await self._build_values(session, scope, period_start, period_end)
                values.update(
                    actor_id=scope.actor_id,
                    repository_id=scope.repository_id,
                    metric_type=metric_type,
                    metric_name=scope.metric_name,
                    period_start=period_start,
                    period_end=period_end,
                )
                await samples.save(values, existing)
                await session.commit()
                if existing is None:
                    result.samples_created += 1
                else:
                    result.samples_updated += 1
            except Exception as e:
                logger.warning(
                    "Failed to calculate {} for {} at {}: {}",
                    scope.metric_name,
                    scope.label,
                    period_start.isoformat(),
                    e,
                )
                await session.rollback()
                result.errors.append(f"{scope.label} {period_start.isoformat()}: {e}")

    async def _build_values(
        self,
        session: AsyncSession,
        scope: Scope,
        start: datetime,
        end: datetime,
    ) -> dict[str, Any]:
        values = await compute_aggregates(session, scope, start, end)
        values.update(
            compute_scores(
                values,
                self._settings.metrics,
                include_velocity=scope.actor_id is None,
            )
        )
        values["custom_metrics"] = {}
        values["data_points"] = data_points(values)
        values["confidence"] = confidence(values)
        values["calculated_at"] = utc_now()
        return values
