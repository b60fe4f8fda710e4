"""Configuration settings for GitHub Team Metrics."""

from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RateLimitConfig(BaseModel):
    """Configuration for rate limit monitoring.

    Controls the low-water-mark that triggers a wait for the quota reset,
    plus thresholds for health status reporting.
    """

    low_water_mark: int = Field(
        default=10,
        ge=0,
        description="Remaining requests at or below which we sleep until reset",
    )

    # Threshold percentages for status determination
    healthy_threshold_pct: float = Field(
        default=50.0,
        ge=0.0,
        le=100.0,
        description="% remaining above which status is HEALTHY",
    )
    warning_threshold_pct: float = Field(
        default=20.0,
        ge=0.0,
        le=100.0,
        description="% remaining above which status is WARNING (below healthy)",
    )
    critical_threshold_pct: float = Field(
        default=5.0,
        ge=0.0,
        le=100.0,
        description="% remaining above which status is CRITICAL (below warning)",
    )

    # Behavior
    track_from_headers: bool = Field(
        default=True,
        description="Passively track limits from response headers",
    )


class RetryConfig(BaseModel):
    """Configuration for retrying transient GitHub failures."""

    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries after the initial attempt for transient failures",
    )
    backoff_base_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="First backoff delay; doubles on each retry",
    )
    backoff_max_seconds: float = Field(
        default=8.0,
        ge=0.0,
        description="Upper bound for a single backoff delay",
    )
    graphql_timeout_seconds: float = Field(
        default=25.0,
        gt=0.0,
        description="Deadline for a single GraphQL request",
    )


class SyncConfig(BaseModel):
    """Configuration for sync behavior.

    Controls the default time window, page size and the courtesy
    delays inserted between successive GitHub calls.
    """

    default_window_days: int = Field(
        default=90,
        ge=1,
        description="Days of history considered when no 'since' is given",
    )
    per_page: int = Field(
        default=100,
        ge=1,
        le=100,
        description="Page size for REST and GraphQL listings",
    )

    # Courtesy delays (independent of rate limit throttling)
    page_delay_ms: int = Field(default=100, ge=0, description="Delay between pages")
    activity_delay_ms: int = Field(default=50, ge=0, description="Delay between PRs")
    repository_delay_ms: int = Field(default=200, ge=0, description="Delay between repos")

    commit_batch_size: int = Field(
        default=1,
        ge=1,
        le=100,
        description="Entities to commit per batch (limits data loss on failure)",
    )
    history_size: int = Field(
        default=20,
        ge=1,
        description="Number of past sync results kept in memory",
    )
    activity_transport: Literal["rest", "graphql"] = Field(
        default="rest",
        description="API used to list pull requests",
    )

    @property
    def default_window(self) -> timedelta:
        """Get the default sync window as a timedelta."""
        return timedelta(days=self.default_window_days)


class SchedulerConfig(BaseModel):
    """Configuration for the periodic job scheduler."""

    enabled: bool = Field(default=True, description="Register built-in jobs as enabled")
    full_sync_interval_hours: int = Field(
        default=6,
        ge=1,
        le=23,
        description="Hours between full syncs",
    )
    incremental_sync_cron: str = Field(default="*/30 * * * *")
    incremental_lookback_hours: int = Field(
        default=2,
        ge=1,
        description="Window of an incremental sync",
    )
    daily_metrics_cron: str = Field(default="0 2 * * *")
    weekly_metrics_cron: str = Field(default="0 3 * * 0")
    monthly_metrics_cron: str = Field(default="0 4 1 * *")
    restart_delay_seconds: float = Field(default=1.0, ge=0.0)

    @property
    def full_sync_cron(self) -> str:
        """Cron expression for the full sync job."""
        return f"0 */{self.full_sync_interval_hours} * * *"


class MetricsConfig(BaseModel):
    """Weights for the composite scores.

    Each score is a weighted sum of raw aggregates capped at 100.
    """

    productivity_pr_weight: float = 10.0
    productivity_commit_weight: float = 2.0
    productivity_review_weight: float = 5.0

    quality_merge_rate_weight: float = 0.5
    quality_reviews_per_pr_weight: float = 10.0
    quality_approval_rate_weight: float = 0.3

    collaboration_review_weight: float = 5.0
    collaboration_comment_weight: float = 2.0
    collaboration_collaborator_weight: float = 10.0

    velocity_pr_weight: float = 2.0
    velocity_commit_weight: float = 1.0

    score_cap: float = Field(default=100.0, gt=0.0)


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Database
    # --------------------------------------------------------------------------
    database_url: str = Field(
        default="sqlite+aiosqlite:///./github_team_metrics.db",
        description="Async database connection string",
    )

    # --------------------------------------------------------------------------
    # GitHub API
    # --------------------------------------------------------------------------
    github_token: str = Field(
        default="",
        description="GitHub personal access token",
    )
    organization: str = Field(
        default="",
        description="GitHub organization whose members and repositories are synced",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # --------------------------------------------------------------------------
    # Rate Limiting & Retries
    # --------------------------------------------------------------------------
    rate_limit: RateLimitConfig = Field(
        default_factory=RateLimitConfig,
        description="Rate limit monitoring configuration",
    )
    retry: RetryConfig = Field(
        default_factory=RetryConfig,
        description="Transient failure retry configuration",
    )

    # --------------------------------------------------------------------------
    # Sync, Scheduling & Metrics
    # --------------------------------------------------------------------------
    sync: SyncConfig = Field(
        default_factory=SyncConfig,
        description="Sync behavior configuration",
    )
    scheduler: SchedulerConfig = Field(
        default_factory=SchedulerConfig,
        description="Periodic job configuration",
    )
    metrics: MetricsConfig = Field(
        default_factory=MetricsConfig,
        description="Composite score weights",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
