"""Request pacing for the GitHub API.

Components:
- RequestPacer: waits for the quota reset at the low-water-mark
- RetryPolicy: bounded exponential backoff for transient failures
"""

from .pacer import RequestPacer
from .retry import RetryPolicy

__all__ = [
    "RequestPacer",
    "RetryPolicy",
]
