"""Periodic jobs: sync and metrics on interval or cron schedules."""

from .jobs import JobSpec, JobState, build_default_jobs
from .scheduler import Scheduler
from .schedules import CronSchedule, IntervalSchedule, Schedule, parse_schedule

__all__ = [
    "CronSchedule",
    "IntervalSchedule",
    "JobSpec",
    "JobState",
    "Schedule",
    "Scheduler",
    "build_default_jobs",
    "parse_schedule",
]
