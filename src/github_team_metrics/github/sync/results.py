"""Options and result objects for sync runs.

Structured results provide consistent interfaces for monitoring,
error handling, and CLI output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from github_team_metrics.schemas.base import as_naive_utc, utc_now

BUSY_MESSAGE = "Sync already in progress"


@dataclass
class SyncOptions:
    """What a sync run covers.

    ``since`` bounds the pull requests and commits considered; when it is
    None the configured default window applies. ``full_sync`` disables
    the cut-off for pull requests.
    """

    since: datetime | None = None
    full_sync: bool = False
    skip_actors: bool = False
    skip_repositories: bool = False
    skip_activities: bool = False
    skip_commits: bool = False
    repositories: list[str] | None = None
    """Restrict activity/commit sync to these full names (owner/name)."""
    transport: Literal["rest", "graphql"] | None = None
    """Pull request listing API (None = configured default)."""

    def __post_init__(self) -> None:
        self.since = as_naive_utc(self.since)

    def to_dict(self) -> dict[str, Any]:
        return {
            "since": self.since.isoformat() if self.since else None,
            "full_sync": self.full_sync,
            "skip_actors": self.skip_actors,
            "skip_repositories": self.skip_repositories,
            "skip_activities": self.skip_activities,
            "skip_commits": self.skip_commits,
            "repositories": self.repositories,
            "transport": self.transport,
        }


@dataclass
class SyncResult:
    """Outcome of one sync run.

    ``success`` is True whenever the run finished, even if individual
    entities failed; those failures are listed in ``errors``.
    """

    success: bool = True
    message: str = ""
    started_at: datetime = field(default_factory=utc_now)
    completed_at: datetime | None = None

    actors_synced: int = 0
    repositories_synced: int = 0
    activities_synced: int = 0
    reviews_synced: int = 0
    comments_synced: int = 0
    commits_synced: int = 0

    errors: list[str] = field(default_factory=list)
    """Human-readable error strings, e.g. "Actors: Bad credentials"."""

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def add_error(self, scope: str, error: BaseException | str) -> None:
        """Record an error as ``"<scope>: <message>"``."""
        self.errors.append(f"{scope}: {error}")

    def complete(self) -> SyncResult:
        """Stamp completion time and summary message."""
        self.completed_at = utc_now()
        if not self.message:
            suffix = f" with {self.error_count} errors" if self.errors else ""
            self.message = f"Sync completed{suffix}"
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "message": self.message,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": round(self.duration_seconds, 2),
            "actors_synced": self.actors_synced,
            "repositories_synced": self.repositories_synced,
            "activities_synced": self.activities_synced,
            "reviews_synced": self.reviews_synced,
            "comments_synced": self.comments_synced,
            "commits_synced": self.commits_synced,
            "errors": list(self.errors),
        }

    @classmethod
    def busy(cls) -> SyncResult:
        """Result returned when another sync is still running."""
        now = utc_now()
        return cls(success=False, message=BUSY_MESSAGE, started_at=now, completed_at=now)
