"""GitHub rate limit payloads: the /rate_limit body and x-ratelimit-* headers.

See: https://docs.github.com/en/rest/rate-limit/rate-limit
"""

import time


def future_reset_timestamp(seconds_from_now: int = 3600) -> int:
    """Unix timestamp ``seconds_from_now`` in the future."""
    return int(time.time()) + seconds_from_now


def make_rate_limit_headers(
    remaining: int = 4500,
    limit: int = 5000,
    reset_seconds: int = 3600,
    resource: str = "core",
) -> dict[str, str]:
    """Response headers as GitHub sends them (lower-case keys)."""
    return {
        "x-ratelimit-limit": str(limit),
        "x-ratelimit-remaining": str(remaining),
        "x-ratelimit-used": str(limit - remaining),
        "x-ratelimit-reset": str(future_reset_timestamp(reset_seconds)),
        "x-ratelimit-resource": resource,
    }


# GET /rate_limit for a token with healthy core and graphql quota
RATE_LIMIT_RESPONSE = {
    "resources": {
        "core": {
            "limit": 5000,
            "remaining": 4500,
            "used": 500,
            "reset": future_reset_timestamp(3600),
        },
        "search": {
            "limit": 30,
            "remaining": 28,
            "used": 2,
            "reset": future_reset_timestamp(60),
        },
        "graphql": {
            "limit": 5000,
            "remaining": 900,
            "used": 4100,
            "reset": future_reset_timestamp(1800),
        },
    },
    "rate": {
        "limit": 5000,
        "remaining": 4500,
        "used": 500,
        "reset": future_reset_timestamp(3600),
    },
}
