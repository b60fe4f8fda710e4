"""Bounded exponential backoff for transient GitHub failures."""

from __future__ import annotations

from dataclasses import dataclass

from github_team_metrics.config import RetryConfig, get_settings
from github_team_metrics.github.exceptions import GitHubRetryableError


@dataclass(frozen=True)
class RetryPolicy:
    """How many times a transient failure is retried, and how long to wait.

    With the defaults a call is attempted 4 times in total, sleeping
    1s, 2s and 4s between attempts.
    """

    max_retries: int = 3
    backoff_base: float = 1.0
    backoff_max: float = 8.0

    @classmethod
    def from_config(cls, config: RetryConfig | None = None) -> RetryPolicy:
        config = config or get_settings().retry
        return cls(
            max_retries=config.max_retries,
            backoff_base=config.backoff_base_seconds,
            backoff_max=config.backoff_max_seconds,
        )

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number ``attempt + 1`` (attempt is 0-based)."""
        return min(self.backoff_base * (2**attempt), self.backoff_max)

    def should_retry(self, error: Exception, attempt: int) -> bool:
        """Whether a failure on 0-based ``attempt`` gets another try."""
        return isinstance(error, GitHubRetryableError) and attempt < self.max_retries
