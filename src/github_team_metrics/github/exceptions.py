"""GitHub client exceptions."""

from datetime import datetime
from typing import Any


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""

    pass


class GitHubAuthenticationError(GitHubClientError):
    """Raised when authentication fails (401) or no token is configured."""

    pass


class GitHubNotFoundError(GitHubClientError):
    """Raised when a resource is not found (404)."""

    pass


class GitHubRetryableError(GitHubClientError):
    """Transient upstream failure (gateway error, timeout, connection reset).

    The client retries these with backoff and raises this error once
    retries are exhausted.
    """

    def __init__(self, message: str, attempts: int = 1) -> None:
        super().__init__(message)
        self.attempts = attempts


class GitHubRateLimitError(GitHubClientError):
    """Raised when the quota is exhausted (remaining=0).

    Not retryable: callers should wait until ``reset_at`` instead of
    retrying immediately.
    """

    def __init__(self, message: str, reset_at: datetime | None = None) -> None:
        super().__init__(message)
        self.reset_at = reset_at


class GitHubGraphQLError(GitHubClientError):
    """Raised when a GraphQL response carries a non-empty ``errors`` array."""

    def __init__(self, errors: list[dict[str, Any]]) -> None:
        messages = "; ".join(str(e.get("message", e)) for e in errors)
        super().__init__(f"GraphQL query failed: {messages}")
        self.errors = errors
