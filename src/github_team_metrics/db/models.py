"""SQLAlchemy ORM models for GitHub Team Metrics.

All timestamps are stored as naive UTC.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)
from sqlalchemy.types import JSON


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class ActivityState(str, Enum):
    """Pull request state."""

    OPEN = "open"
    CLOSED = "closed"  # closed without merge
    MERGED = "merged"


class ReviewState(str, Enum):
    """Pull request review state."""

    APPROVED = "approved"
    CHANGES_REQUESTED = "changes_requested"
    COMMENTED = "commented"
    PENDING = "pending"
    DISMISSED = "dismissed"


class CommentType(str, Enum):
    """Where a comment was left."""

    ISSUE = "issue"  # conversation tab
    REVIEW_LINE = "review_line"  # inline on the diff
    COMMIT = "commit"


class MetricType(str, Enum):
    """Rollup period granularity."""

    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


# ------------------------------------------------------------------------------
# Junction table for many-to-many: Activity <-> Commit
# ------------------------------------------------------------------------------
activity_commits = Table(
    "activity_commits",
    Base.metadata,
    Column("activity_id", ForeignKey("activities.id", ondelete="CASCADE"), primary_key=True),
    Column("commit_id", ForeignKey("commits.id", ondelete="CASCADE"), primary_key=True),
)


# ------------------------------------------------------------------------------
# Actor model
# ------------------------------------------------------------------------------
class Actor(Base):
    """A GitHub user: contributor, reviewer or committer."""

    __tablename__ = "actors"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[int] = mapped_column(BigInteger, unique=True)
    username: Mapped[str] = mapped_column(String(100), unique=True)

    # Profile
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    company: Mapped[str | None] = mapped_column(String(200), nullable=True)
    location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(default=True)
    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    def __repr__(self) -> str:
        return f"<Actor(id={self.id}, username='{self.username}')>"


# ------------------------------------------------------------------------------
# Repository model
# ------------------------------------------------------------------------------
class Repository(Base):
    """Tracked GitHub repository."""

    __tablename__ = "repositories"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[int] = mapped_column(BigInteger, unique=True)
    owner: Mapped[str] = mapped_column(String(100))
    name: Mapped[str] = mapped_column(String(100))
    full_name: Mapped[str] = mapped_column(String(200), unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Language/topic metadata (open JSON)
    language: Mapped[str | None] = mapped_column(String(100), nullable=True)
    languages: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    topics: Mapped[list[str]] = mapped_column(JSON, default=list)

    is_private: Mapped[bool] = mapped_column(default=False)
    is_fork: Mapped[bool] = mapped_column(default=False)
    is_active: Mapped[bool] = mapped_column(default=True)
    default_branch: Mapped[str | None] = mapped_column(String(200), nullable=True)

    stars_count: Mapped[int] = mapped_column(default=0)
    forks_count: Mapped[int] = mapped_column(default=0)
    open_issues_count: Mapped[int] = mapped_column(default=0)

    github_created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    github_updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    pushed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    # Relationships
    activities: Mapped[list["Activity"]] = relationship(
        back_populates="repository",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Repository(id={self.id}, full_name='{self.full_name}')>"


# ------------------------------------------------------------------------------
# Activity model (pull request)
# ------------------------------------------------------------------------------
class Activity(Base):
    """GitHub pull request with derived review/comment/commit counters."""

    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[int] = mapped_column(BigInteger, unique=True)
    repository_id: Mapped[int] = mapped_column(ForeignKey("repositories.id", ondelete="CASCADE"))
    number: Mapped[int] = mapped_column()

    title: Mapped[str] = mapped_column(String(500))
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    state: Mapped[ActivityState] = mapped_column(default=ActivityState.OPEN)
    merged: Mapped[bool] = mapped_column(default=False)
    is_draft: Mapped[bool] = mapped_column(default=False)
    base_branch: Mapped[str | None] = mapped_column(String(200), nullable=True)
    head_branch: Mapped[str | None] = mapped_column(String(200), nullable=True)

    author_id: Mapped[int | None] = mapped_column(
        ForeignKey("actors.id", ondelete="SET NULL"), nullable=True
    )
    merged_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("actors.id", ondelete="SET NULL"), nullable=True
    )

    # Line statistics
    additions: Mapped[int] = mapped_column(default=0)
    deletions: Mapped[int] = mapped_column(default=0)
    changed_files: Mapped[int] = mapped_column(default=0)

    # --------------------------------------------------------------------------
    # Derived from persisted child rows (never from upstream totals)
    # --------------------------------------------------------------------------
    reviews_count: Mapped[int] = mapped_column(default=0)
    comments_count: Mapped[int] = mapped_column(default=0)
    commits_count: Mapped[int] = mapped_column(default=0)
    time_to_first_review: Mapped[int | None] = mapped_column(nullable=True)  # minutes
    time_to_merge: Mapped[int | None] = mapped_column(nullable=True)  # minutes

    labels: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)

    github_created_at: Mapped[datetime] = mapped_column(DateTime)
    github_updated_at: Mapped[datetime] = mapped_column(DateTime)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    merged_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    # Relationships
    repository: Mapped["Repository"] = relationship(back_populates="activities")
    author: Mapped["Actor | None"] = relationship(foreign_keys=[author_id])
    merged_by: Mapped["Actor | None"] = relationship(foreign_keys=[merged_by_id])
    commits: Mapped[list["Commit"]] = relationship(secondary=activity_commits)

    __table_args__ = (
        UniqueConstraint("repository_id", "number", name="uq_repo_activity_number"),
        Index("ix_activities_github_created_at", "github_created_at"),
    )

    def __repr__(self) -> str:
        return f"<Activity(id={self.id}, repo='{self.repository_id}', number={self.number})>"

    @property
    def is_open(self) -> bool:
        return self.state == ActivityState.OPEN

    @property
    def is_merged(self) -> bool:
        return self.state == ActivityState.MERGED


# ------------------------------------------------------------------------------
# Review model
# ------------------------------------------------------------------------------
class Review(Base):
    """A review submitted on a pull request."""

    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[int] = mapped_column(BigInteger, unique=True)
    activity_id: Mapped[int] = mapped_column(ForeignKey("activities.id", ondelete="CASCADE"))
    reviewer_id: Mapped[int | None] = mapped_column(
        ForeignKey("actors.id", ondelete="SET NULL"), nullable=True
    )
    state: Mapped[ReviewState] = mapped_column()
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    __table_args__ = (Index("ix_reviews_activity_id", "activity_id"),)

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, activity={self.activity_id}, state={self.state.value})>"


# ------------------------------------------------------------------------------
# Comment model
# ------------------------------------------------------------------------------
class Comment(Base):
    """A conversation, inline review, or commit comment."""

    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(primary_key=True)
    external_id: Mapped[int] = mapped_column(BigInteger, unique=True)
    activity_id: Mapped[int] = mapped_column(ForeignKey("activities.id", ondelete="CASCADE"))
    review_id: Mapped[int | None] = mapped_column(
        ForeignKey("reviews.id", ondelete="SET NULL"), nullable=True
    )
    author_id: Mapped[int | None] = mapped_column(
        ForeignKey("actors.id", ondelete="SET NULL"), nullable=True
    )
    type: Mapped[CommentType] = mapped_column()
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    line: Mapped[int | None] = mapped_column(nullable=True)
    reactions: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    word_count: Mapped[int] = mapped_column(default=0)

    github_created_at: Mapped[datetime] = mapped_column(DateTime)
    github_updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    __table_args__ = (Index("ix_comments_activity_id", "activity_id"),)

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, activity={self.activity_id}, type={self.type.value})>"


# ------------------------------------------------------------------------------
# Commit model
# ------------------------------------------------------------------------------
class Commit(Base):
    """A git commit in a tracked repository."""

    __tablename__ = "commits"

    id: Mapped[int] = mapped_column(primary_key=True)
    sha: Mapped[str] = mapped_column(String(40), unique=True)
    repository_id: Mapped[int] = mapped_column(ForeignKey("repositories.id", ondelete="CASCADE"))
    author_id: Mapped[int | None] = mapped_column(
        ForeignKey("actors.id", ondelete="SET NULL"), nullable=True
    )
    committer_id: Mapped[int | None] = mapped_column(
        ForeignKey("actors.id", ondelete="SET NULL"), nullable=True
    )

    message: Mapped[str] = mapped_column(Text, default="")
    author_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    author_email: Mapped[str | None] = mapped_column(String(200), nullable=True)
    url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    additions: Mapped[int] = mapped_column(default=0)
    deletions: Mapped[int] = mapped_column(default=0)
    changed_files: Mapped[int] = mapped_column(default=0)

    authored_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    committed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    __table_args__ = (Index("ix_commits_repository_committed", "repository_id", "committed_at"),)

    def __repr__(self) -> str:
        return f"<Commit(id={self.id}, sha='{self.sha[:7]}')>"


# ------------------------------------------------------------------------------
# MetricSample model
# ------------------------------------------------------------------------------
class MetricSample(Base):
    """Rollup of activity for one scope over one period.

    The natural key (actor_id, repository_id, metric_type, metric_name,
    period_start) is enforced through ``scope_key`` because NULL
    columns never collide in a unique index.
    """

    __tablename__ = "metric_samples"

    id: Mapped[int] = mapped_column(primary_key=True)
    actor_id: Mapped[int | None] = mapped_column(
        ForeignKey("actors.id", ondelete="CASCADE"), nullable=True
    )
    repository_id: Mapped[int | None] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), nullable=True
    )
    scope_key: Mapped[str] = mapped_column(String(50))  # "actor:5", "repository:3", "team"
    metric_type: Mapped[MetricType] = mapped_column()
    metric_name: Mapped[str] = mapped_column(String(100))
    period_start: Mapped[datetime] = mapped_column(DateTime)
    period_end: Mapped[datetime] = mapped_column(DateTime)

    # --------------------------------------------------------------------------
    # Raw counts
    # --------------------------------------------------------------------------
    pull_requests_opened: Mapped[int] = mapped_column(default=0)
    pull_requests_closed: Mapped[int] = mapped_column(default=0)
    pull_requests_merged: Mapped[int] = mapped_column(default=0)
    reviews_given: Mapped[int] = mapped_column(default=0)
    reviews_received: Mapped[int] = mapped_column(default=0)
    comments_given: Mapped[int] = mapped_column(default=0)
    comments_received: Mapped[int] = mapped_column(default=0)
    commits_count: Mapped[int] = mapped_column(default=0)
    lines_added: Mapped[int] = mapped_column(default=0)
    lines_deleted: Mapped[int] = mapped_column(default=0)
    files_changed: Mapped[int] = mapped_column(default=0)

    # --------------------------------------------------------------------------
    # Timing (minutes) and ratios
    # --------------------------------------------------------------------------
    avg_time_to_first_review: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_time_to_merge: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_review_time: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_reviews_per_pr: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_comments_per_pr: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_comments_per_review: Mapped[float | None] = mapped_column(Float, nullable=True)
    merge_rate: Mapped[float | None] = mapped_column(Float, nullable=True)
    approval_rate: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Collaboration breadth
    unique_collaborators: Mapped[int] = mapped_column(default=0)
    cross_repo_activity: Mapped[int] = mapped_column(default=0)

    # --------------------------------------------------------------------------
    # Composite scores [0, 100]
    # --------------------------------------------------------------------------
    productivity_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    quality_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    collaboration_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    velocity_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    custom_metrics: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    data_points: Mapped[int] = mapped_column(default=0)
    confidence: Mapped[float] = mapped_column(Float, default=0.0)
    calculated_at: Mapped[datetime] = mapped_column(DateTime)

    __table_args__ = (
        UniqueConstraint(
            "scope_key",
            "metric_type",
            "metric_name",
            "period_start",
            name="uq_metric_sample_natural_key",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<MetricSample(id={self.id}, scope='{self.scope_key}', "
            f"type={self.metric_type.value}, period={self.period_start.isoformat()})>"
        )
