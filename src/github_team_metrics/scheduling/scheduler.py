"""Periodic job scheduler.

Each enabled job gets one asyncio loop task that sleeps until the job's
next fire time and then launches the job body as its own task. Stopping
cancels the loops (future ticks) but never the bodies already running.
"""

from __future__ import annotations

import asyncio
import contextlib
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from github_team_metrics.config import Settings, get_settings
from github_team_metrics.logging import get_logger

from .jobs import JobSpec, JobState, build_default_jobs
from .schedules import Schedule, parse_schedule

if TYPE_CHECKING:
    from github_team_metrics.github.sync import SyncOptions, SyncOrchestrator, SyncResult
    from github_team_metrics.metrics import MetricsEngine

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(UTC)


class Scheduler:
    """Runs jobs from a declarative table on their schedules.

    Usage:
        scheduler = Scheduler.with_default_jobs(orchestrator, metrics_engine)
        await scheduler.start()
        ...
        await scheduler.stop()

    A failing job is logged and its error kept in ``last_error``; it stays
    registered and fires again on its next tick. A tick that arrives while
    the previous run of the same job is still going is skipped.
    """

    def __init__(
        self,
        jobs: list[JobSpec] | None = None,
        *,
        orchestrator: SyncOrchestrator | None = None,
        restart_delay: float = 1.0,
    ) -> None:
        """Initialize the scheduler.

        Args:
            jobs: Initial job table
            orchestrator: Sync orchestrator used by force_sync_now()
            restart_delay: Pause between stop and start in restart(), in seconds
        """
        self._jobs: dict[str, JobState] = {}
        self._loops: dict[str, asyncio.Task[None]] = {}
        self._active_runs: set[asyncio.Task[None]] = set()  # Prevent task GC
        self._orchestrator = orchestrator
        self._restart_delay = restart_delay
        self._running = False
        for spec in jobs or []:
            self._register(spec)

    @classmethod
    def with_default_jobs(
        cls,
        orchestrator: SyncOrchestrator,
        metrics_engine: MetricsEngine,
        settings: Settings | None = None,
    ) -> Scheduler:
        """Scheduler carrying the built-in sync and metrics jobs."""
        settings = settings or get_settings()
        return cls(
            build_default_jobs(orchestrator, metrics_engine, settings),
            orchestrator=orchestrator,
            restart_delay=settings.scheduler.restart_delay_seconds,
        )

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def job_names(self) -> list[str]:
        return list(self._jobs)

    def get_job(self, name: str) -> JobState:
        """Look up a registered job.

        Raises:
            KeyError: If no job has that name
        """
        try:
            return self._jobs[name]
        except KeyError:
            raise KeyError(f"Unknown job: {name}") from None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Start the loops of all enabled jobs."""
        if self._running:
            return
        self._running = True
        for state in self._jobs.values():
            if state.spec.enabled:
                self._start_loop(state)
        logger.info("Scheduler started with {} active jobs", len(self._loops))

    async def stop(self) -> None:
        """Suppress future ticks. Running job bodies are not cancelled."""
        if not self._running:
            return
        self._running = False
        for name in list(self._loops):
            await self._stop_loop(name)
        for state in self._jobs.values():
            state.next_run_at = None
        logger.info("Scheduler stopped ({} job runs still in flight)", len(self._active_runs))

    async def restart(self) -> None:
        await self.stop()
        if self._restart_delay > 0:
            await asyncio.sleep(self._restart_delay)
        await self.start()

    # -------------------------------------------------------------------------
    # Job Table
    # -------------------------------------------------------------------------

    def _register(self, spec: JobSpec) -> JobState:
        if spec.name in self._jobs:
            raise ValueError(f"Job already registered: {spec.name}")
        state = JobState(spec=spec)
        self._jobs[spec.name] = state
        return state

    async def add_job(self, spec: JobSpec) -> JobState:
        """Register a job, starting its loop if the scheduler is running.

        Raises:
            ValueError: If a job with the same name exists
        """
        state = self._register(spec)
        if self._running and spec.enabled:
            self._start_loop(state)
        logger.info("Added job {} ({})", spec.name, spec.schedule.describe())
        return state

    async def remove_job(self, name: str) -> JobSpec:
        """Unregister a job; a run in progress finishes on its own."""
        state = self.get_job(name)
        await self._stop_loop(name)
        del self._jobs[name]
        logger.info("Removed job {}", name)
        return state.spec

    async def update_job_schedule(
        self, name: str, schedule: str | timedelta | Schedule
    ) -> JobState:
        """Replace a job's trigger, keeping its task.

        A job whose loop is running is rescheduled immediately.
        """
        state = self.get_job(name)
        state.spec = state.spec.with_schedule(parse_schedule(schedule))
        if name in self._loops:
            await self._stop_loop(name)
            self._start_loop(state)
        logger.info("Job {} rescheduled: {}", name, state.spec.schedule.describe())
        return state

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    async def run_job(self, name: str) -> JobState:
        """Run a job now, outside its schedule, and wait for it."""
        state = self.get_job(name)
        await self._execute(state)
        return state

    async def force_sync_now(self, options: SyncOptions | None = None) -> SyncResult:
        """Run a sync immediately through the orchestrator.

        Raises:
            RuntimeError: If the scheduler has no orchestrator
        """
        if self._orchestrator is None:
            raise RuntimeError("Scheduler has no sync orchestrator")
        logger.info("Forced sync requested")
        return await self._orchestrator.sync(options)

    async def _execute(self, state: JobState) -> None:
        state.running = True
        state.last_run_at = _now()
        with logger.contextualize(job=state.name):
            logger.info("Running job {}", state.name)
            try:
                result = await state.spec.task()
                state.last_result = result.to_dict() if hasattr(result, "to_dict") else result
                state.last_error = None
            except Exception as e:
                logger.exception("Job {} failed: {}", state.name, e)
                state.last_error = str(e) or type(e).__name__
                state.error_count += 1
            finally:
                state.running = False
                state.run_count += 1

    def _start_loop(self, state: JobState) -> None:
        self._loops[state.name] = asyncio.create_task(
            self._loop(state), name=f"scheduler:{state.name}"
        )

    async def _stop_loop(self, name: str) -> None:
        task = self._loops.pop(name, None)
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _loop(self, state: JobState) -> None:
        last_fire: datetime | None = None
        while True:
            now = _now()
            anchor = max(now, last_fire) if last_fire else now
            fire_at = state.spec.schedule.next_after(anchor)
            state.next_run_at = fire_at
            await asyncio.sleep(max(0.0, (fire_at - _now()).total_seconds()))
            last_fire = fire_at

            if state.running:
                logger.warning("Skipping tick of {}: previous run still active", state.name)
                continue
            run = asyncio.create_task(self._execute(state), name=f"job:{state.name}")
            self._active_runs.add(run)
            run.add_done_callback(self._active_runs.discard)

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def get_next_run_times(self) -> dict[str, str | None]:
        """Next fire time per job (None for disabled jobs)."""
        now = _now()
        times: dict[str, str | None] = {}
        for name, state in self._jobs.items():
            if not state.spec.enabled:
                times[name] = None
                continue
            next_run = state.next_run_at or state.spec.schedule.next_after(now)
            times[name] = next_run.isoformat()
        return times

    def get_status(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "active_runs": len(self._active_runs),
            "jobs": [state.to_dict() for state in self._jobs.values()],
        }
