"""GitHub API client module.

This module provides:
- GitHubClient: async client with quota pacing, retries and both pagination styles
- Rate limit monitoring: RateLimitMonitor, RateLimitStatus, etc.
- Request pacing: RequestPacer, RetryPolicy
- Sync: SyncOrchestrator, SyncOptions, SyncResult
"""

from .client import GitHubClient
from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubGraphQLError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubRetryableError,
)
from .pacing import RequestPacer, RetryPolicy
from .rate_limit import (
    PoolRateLimit,
    RateLimitMonitor,
    RateLimitPool,
    RateLimitSnapshot,
    RateLimitStatus,
)
from .sync import (
    OutputFormat,
    SyncOptions,
    SyncOrchestrator,
    SyncResult,
)

__all__ = [
    # Client
    "GitHubClient",
    # Exceptions
    "GitHubAuthenticationError",
    "GitHubClientError",
    "GitHubGraphQLError",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "GitHubRetryableError",
    # Rate limit monitoring
    "PoolRateLimit",
    "RateLimitMonitor",
    "RateLimitPool",
    "RateLimitSnapshot",
    "RateLimitStatus",
    # Request pacing
    "RequestPacer",
    "RetryPolicy",
    # Sync
    "OutputFormat",
    "SyncOptions",
    "SyncOrchestrator",
    "SyncResult",
]
