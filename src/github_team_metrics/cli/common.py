"""Common CLI option factories and helpers.

This module centralizes reusable CLI options to reduce duplication
and consolidate noqa comments for Typer's required function call pattern.

It also provides:
- `run_async_command`: Unified async execution with error handling for CLI commands
- `parse_datetime`: Date option parsing
- `print_json` / `require_token`: shared output and validation helpers
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine
from datetime import UTC, datetime
from typing import Annotated, Any, TypeVar

import typer
from rich.console import Console

from github_team_metrics.config import get_settings
from github_team_metrics.github.sync.enums import OutputFormat

# Shared console instance for CLI output
console = Console()

T = TypeVar("T")

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%dT%H:%M:%S%z",
)


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Execute async code from synchronous CLI command with unified error handling.

    Uses asyncio.run() for clean event loop management. Catches exceptions,
    prints user-friendly error messages, and exits with code 1.

    Args:
        coro: Async coroutine to execute
        error_prefix: Prefix for error messages (default: "Error")

    Returns:
        Result from the coroutine

    Raises:
        typer.Exit: Re-raised from deliberate exits, or raised with code 1 on error

    Example:
        async def _check() -> dict[str, Any]:
            async with GitHubClient() as client:
                return await client.get_rate_limit()

        result = run_async_command(_check(), error_prefix="Rate limit check failed")
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        # Re-raise deliberate exits (e.g., from validation helpers)
        raise
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None


def parse_datetime(value: str | None) -> datetime | None:
    """Parse a date option into a UTC datetime.

    Supports YYYY-MM-DD, YYYY-MM-DDTHH:MM:SS (optionally with Z or an offset).

    Raises:
        typer.BadParameter: If the string matches no supported format
    """
    if value is None:
        return None

    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed

    raise typer.BadParameter(
        f"Invalid date format: {value}. Use YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS format."
    )


def print_json(data: Any) -> None:
    """Print a JSON document without rich markup processing."""
    console.print_json(json.dumps(data, default=str))


def require_token() -> None:
    """Exit with an error when no GitHub token is configured."""
    if not get_settings().github_token:
        console.print("[red]Error:[/red] GITHUB_TOKEN not set in environment")
        raise typer.Exit(1)


# Typer requires function calls as default arguments, which triggers B008.
# Using Annotated with a centralized type alias keeps the noqa in one place.

OutputFormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format",
    ),
]
"""Output format option type for CLI commands.

Usage:
    def command(output_format: OutputFormatOption = OutputFormat.TEXT):
"""

ReposListOption = Annotated[
    str | None,
    typer.Option(
        "--repos",
        "-r",
        help="Comma-separated list of repos (owner/repo). "
        "If not specified, all active repositories are synced.",
    ),
]
"""Comma-separated repository list override option.

Usage:
    def sync_run(repos: ReposListOption = None) -> None:
"""


def validate_repo_list(repos_str: str | None) -> list[str] | None:
    """Parse and validate comma-separated repository list.

    Args:
        repos_str: Comma-separated repos or None

    Returns:
        List of validated repo strings, or None if input was None

    Raises:
        typer.Exit(1): If any repo format is invalid
    """
    if repos_str is None:
        return None

    from github_team_metrics.schemas import parse_repo_string

    repo_list = [r.strip() for r in repos_str.split(",") if r.strip()]

    for repo in repo_list:
        try:
            parse_repo_string(repo)
        except ValueError:
            console.print(
                f"[red]Error:[/red] Repository '{repo}' must be in owner/name format"
            )
            raise typer.Exit(1) from None

    return repo_list
