"""Unit tests for RetryPolicy."""

from github_team_metrics.config import RetryConfig
from github_team_metrics.github.exceptions import (
    GitHubClientError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubRetryableError,
)
from github_team_metrics.github.pacing import RetryPolicy


class TestRetryPolicy:
    def test_default_schedule_is_1_2_4(self) -> None:
        policy = RetryPolicy()
        assert [policy.delay_for(i) for i in range(3)] == [1.0, 2.0, 4.0]
        assert policy.max_attempts == 4

    def test_delay_is_capped(self) -> None:
        policy = RetryPolicy(max_retries=6, backoff_base=1.0, backoff_max=8.0)
        assert policy.delay_for(5) == 8.0

    def test_only_retryable_errors_are_retried(self) -> None:
        policy = RetryPolicy()
        assert policy.should_retry(GitHubRetryableError("502"), 0)
        assert not policy.should_retry(GitHubRateLimitError("quota"), 0)
        assert not policy.should_retry(GitHubNotFoundError("missing"), 0)
        assert not policy.should_retry(GitHubClientError("bad request"), 0)

    def test_stops_after_max_retries(self) -> None:
        policy = RetryPolicy(max_retries=3)
        assert policy.should_retry(GitHubRetryableError("x"), 2)
        assert not policy.should_retry(GitHubRetryableError("x"), 3)

    def test_from_config(self) -> None:
        policy = RetryPolicy.from_config(
            RetryConfig(max_retries=2, backoff_base_seconds=0.5, backoff_max_seconds=1.0)
        )
        assert policy.max_attempts == 3
        assert [policy.delay_for(i) for i in range(3)] == [0.5, 1.0, 1.0]
