"""Declarative job table.

A job is a name, a trigger and a coroutine factory. The built-in table
wires the sync orchestrator and the metrics engine to their schedules.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from github_team_metrics.config import Settings, get_settings
from github_team_metrics.db.models import MetricType
from github_team_metrics.github.sync import SyncOptions
from github_team_metrics.metrics import MetricsOptions, previous_period
from github_team_metrics.schemas.base import utc_now

from .schedules import Schedule, parse_schedule

if TYPE_CHECKING:
    from github_team_metrics.github.sync import SyncOrchestrator
    from github_team_metrics.metrics import MetricsEngine

JobTask = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class JobSpec:
    """What to run and when."""

    name: str
    schedule: Schedule
    task: JobTask
    enabled: bool = True
    description: str = ""

    @classmethod
    def create(
        cls,
        name: str,
        schedule: str | timedelta | Schedule,
        task: JobTask,
        *,
        enabled: bool = True,
        description: str = "",
    ) -> JobSpec:
        """Build a spec, parsing string and timedelta triggers."""
        return cls(name, parse_schedule(schedule), task, enabled, description)

    def with_schedule(self, schedule: str | timedelta | Schedule) -> JobSpec:
        return replace(self, schedule=parse_schedule(schedule))


@dataclass
class JobState:
    """Runtime bookkeeping for one registered job."""

    spec: JobSpec
    last_run_at: datetime | None = None
    next_run_at: datetime | None = None
    last_error: str | None = None
    last_result: Any = None
    run_count: int = 0
    error_count: int = 0
    running: bool = False

    @property
    def name(self) -> str:
        return self.spec.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.spec.name,
            "schedule": self.spec.schedule.describe(),
            "enabled": self.spec.enabled,
            "description": self.spec.description,
            "running": self.running,
            "run_count": self.run_count,
            "error_count": self.error_count,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "next_run_at": self.next_run_at.isoformat() if self.next_run_at else None,
            "last_error": self.last_error,
        }


def _metrics_task(engine: MetricsEngine, metric_type: MetricType) -> JobTask:
    async def run() -> Any:
        # Refresh the period that just closed
        start, end = previous_period(metric_type, utc_now())
        return await engine.calculate_metrics(
            MetricsOptions(metric_type=metric_type, start=start, end=end, recalculate=True)
        )

    return run


def build_default_jobs(
    orchestrator: SyncOrchestrator,
    metrics_engine: MetricsEngine,
    settings: Settings | None = None,
) -> list[JobSpec]:
    """The built-in sync and metrics jobs."""
    cfg = (settings or get_settings()).scheduler

    async def full_sync() -> Any:
        return await orchestrator.sync(SyncOptions())

    async def incremental_sync() -> Any:
        return await orchestrator.sync(
            SyncOptions(
                since=utc_now() - timedelta(hours=cfg.incremental_lookback_hours),
                skip_actors=True,
                skip_repositories=True,
            )
        )

    return [
        JobSpec.create(
            "full_sync",
            cfg.full_sync_cron,
            full_sync,
            enabled=cfg.enabled,
            description="Sync members, repositories and activity",
        ),
        JobSpec.create(
            "incremental_sync",
            cfg.incremental_sync_cron,
            incremental_sync,
            enabled=cfg.enabled,
            description="Sync recently updated activity",
        ),
        JobSpec.create(
            "daily_metrics",
            cfg.daily_metrics_cron,
            _metrics_task(metrics_engine, MetricType.DAILY),
            enabled=cfg.enabled,
            description="Daily rollups for the previous day",
        ),
        JobSpec.create(
            "weekly_metrics",
            cfg.weekly_metrics_cron,
            _metrics_task(metrics_engine, MetricType.WEEKLY),
            enabled=cfg.enabled,
            description="Weekly rollups for the previous week",
        ),
        JobSpec.create(
            "monthly_metrics",
            cfg.monthly_metrics_cron,
            _metrics_task(metrics_engine, MetricType.MONTHLY),
            enabled=cfg.enabled,
            description="Monthly rollups for the previous month",
        ),
    ]
