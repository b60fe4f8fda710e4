"""GitHub API verification commands."""

from typing import Any

import typer
from rich.table import Table

from github_team_metrics.cli.common import (
    OutputFormatOption,
    console,
    print_json,
    require_token,
    run_async_command,
)
from github_team_metrics.config import get_settings
from github_team_metrics.github import GitHubClient, OutputFormat

app = typer.Typer(help="GitHub API commands")

_STATUS_STYLES = {
    "healthy": "green",
    "warning": "yellow",
    "critical": "red",
    "exhausted": "bold red",
}


@app.command("rate-limit")
def rate_limit(output_format: OutputFormatOption = OutputFormat.TEXT) -> None:
    """Show the current quota of every rate-limit pool.

    GET /rate_limit does not count against the quota.

    Examples:
        ghmetrics github rate-limit
        ghmetrics github rate-limit --format json
    """
    require_token()

    async def _check() -> dict[str, Any]:
        async with GitHubClient() as client:
            return await client.get_rate_limit()

    data = run_async_command(_check(), error_prefix="Rate limit check failed")

    if output_format == OutputFormat.JSON:
        print_json(data)
        return

    table = Table(title="GitHub Rate Limits", show_header=True)
    table.add_column("Pool", style="bold")
    table.add_column("Remaining", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Used %", justify="right")
    table.add_column("Resets in", justify="right")
    table.add_column("Status")

    for name, pool in data["pools"].items():
        style = _STATUS_STYLES.get(pool["status"], "white")
        minutes, seconds = divmod(int(pool["seconds_until_reset"]), 60)
        table.add_row(
            name,
            str(pool["remaining"]),
            str(pool["limit"]),
            f"{100 - pool['remaining_percent']:.1f}",
            f"{minutes}m {seconds:02d}s",
            f"[{style}]{pool['status']}[/{style}]",
        )

    console.print(table)
    console.print(f"Low-water mark: {data.get('low_water_mark')}")


@app.command("test")
def test_connection() -> None:
    """Verify the token and organization are reachable.

    Examples:
        ghmetrics github test
    """
    require_token()
    org = get_settings().organization

    async def _test() -> tuple[int, int]:
        async with GitHubClient() as client:
            rate = await client.get_rate_limit()
            core = rate["pools"].get("core", {})
            members = 0
            async for page in client.iter_org_members(org):
                members += len(page)
                break
            return core.get("remaining", 0), members

    remaining, members = run_async_command(_test(), error_prefix="Connection test failed")

    console.print(f"[green]Connected.[/green] Core quota remaining: {remaining}")
    console.print(f"Organization {org}: first page has {members} members")
