"""Test fixtures for GitHub Team Metrics."""

from .rate_limit_responses import (
    RATE_LIMIT_RESPONSE,
    future_reset_timestamp,
    make_rate_limit_headers,
)

__all__ = [
    "RATE_LIMIT_RESPONSE",
    "future_reset_timestamp",
    "make_rate_limit_headers",
]
