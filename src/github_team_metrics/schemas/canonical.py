"""Transport-independent shapes produced by the REST and GraphQL adapters.

The sync orchestrator only ever sees these models, so it never has to
know which API a record came from. Datetimes are normalized to naive UTC.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from pydantic import Field, field_validator, model_validator

from github_team_metrics.db.models import ActivityState, CommentType, ReviewState

from .base import SchemaBase, as_naive_utc

_WORD_RE = re.compile(r"\S+")


def count_words(text: str | None) -> int:
    """Count whitespace-separated words."""
    if not text:
        return 0
    return len(_WORD_RE.findall(text))


def parse_repo_string(repo: str) -> tuple[str, str]:
    """Split an ``owner/name`` string.

    Raises:
        ValueError: If the string is not in owner/name form
    """
    parts = repo.strip().split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Repository must be in owner/name format: {repo!r}")
    return parts[0], parts[1]


class _NaiveUTCModel(SchemaBase):
    """Converts every datetime field to naive UTC on validation."""

    @field_validator("*", mode="after")
    @classmethod
    def _normalize_datetimes(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return as_naive_utc(v)
        return v


class ActorData(_NaiveUTCModel):
    """A GitHub user as referenced by any payload."""

    username: str = Field(max_length=100)
    external_id: int | None = Field(default=None, description="GitHub numeric user id")
    name: str | None = None
    email: str | None = None
    avatar_url: str | None = None
    company: str | None = None
    location: str | None = None
    bio: str | None = None

    @property
    def is_complete(self) -> bool:
        """True when the record carries the id needed to create an Actor."""
        return self.external_id is not None


class RepositoryData(_NaiveUTCModel):
    """An organization repository."""

    external_id: int
    owner: str
    name: str
    full_name: str
    description: str | None = None
    language: str | None = None
    topics: list[str] = Field(default_factory=list)
    is_private: bool = False
    is_fork: bool = False
    is_archived: bool = False
    is_disabled: bool = False
    default_branch: str | None = None
    stars_count: int = 0
    forks_count: int = 0
    open_issues_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    pushed_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return not (self.is_archived or self.is_disabled)


class ActivityData(_NaiveUTCModel):
    """A pull request.

    Line statistics are None when the listing endpoint omitted them;
    the orchestrator then fetches the single pull request.
    """

    external_id: int
    number: int = Field(gt=0)
    title: str
    body: str | None = None
    state: ActivityState = ActivityState.OPEN
    merged: bool = False
    is_draft: bool = False
    author: ActorData | None = None
    merged_by: ActorData | None = None
    base_branch: str | None = None
    head_branch: str | None = None
    additions: int | None = None
    deletions: int | None = None
    changed_files: int | None = None
    labels: list[dict[str, Any]] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None = None
    merged_at: datetime | None = None

    @model_validator(mode="after")
    def _merged_implies_state(self) -> ActivityData:
        """merged ⇔ merged_at set, and a merged PR is always in state merged."""
        if self.merged and self.merged_at is None:
            self.merged_at = self.closed_at or self.updated_at
        if self.merged_at is not None:
            self.merged = True
            self.state = ActivityState.MERGED
        elif self.state == ActivityState.MERGED:
            self.state = ActivityState.CLOSED
        return self

    @property
    def has_stats(self) -> bool:
        return None not in (self.additions, self.deletions, self.changed_files)


class ReviewData(_NaiveUTCModel):
    """A pull request review."""

    external_id: int
    reviewer: ActorData | None = None
    state: ReviewState
    body: str | None = None
    submitted_at: datetime | None = None


class CommentData(_NaiveUTCModel):
    """An issue or inline review comment on a pull request."""

    external_id: int
    type: CommentType
    author: ActorData | None = None
    body: str | None = None
    path: str | None = None
    line: int | None = None
    review_external_id: int | None = None
    reactions: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime | None = None

    @property
    def word_count(self) -> int:
        return count_words(self.body)


class CommitData(_NaiveUTCModel):
    """A git commit, optionally linked to GitHub users."""

    sha: str = Field(min_length=7, max_length=40)
    message: str = ""
    author: ActorData | None = None
    committer: ActorData | None = None
    author_name: str | None = None
    author_email: str | None = None
    authored_at: datetime | None = None
    committed_at: datetime | None = None
    additions: int | None = None
    deletions: int | None = None
    changed_files: int | None = None
    url: str | None = None

    @property
    def has_stats(self) -> bool:
        return self.additions is not None and self.deletions is not None


class Page(SchemaBase):
    """One page of a listing, in either pagination style.

    REST pages carry ``next_page``; GraphQL pages carry ``cursor``.
    """

    items: list[Any] = Field(default_factory=list)
    has_more: bool = False
    next_page: int | None = None
    cursor: str | None = None
