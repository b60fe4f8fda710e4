"""Sync commands for GitHub Team Metrics."""

from typing import Any, Literal

import typer
from rich.table import Table
from sqlalchemy import func, select

from github_team_metrics.cli.common import (
    OutputFormatOption,
    ReposListOption,
    console,
    parse_datetime,
    print_json,
    require_token,
    run_async_command,
    validate_repo_list,
)
from github_team_metrics.db import (
    Activity,
    Actor,
    Commit,
    Repository,
    dispose_engine,
    get_session,
)
from github_team_metrics.github import (
    GitHubClient,
    OutputFormat,
    SyncOptions,
    SyncOrchestrator,
    SyncResult,
)

app = typer.Typer(help="Sync organization activity from GitHub")


def print_sync_result(result: SyncResult) -> None:
    """Render a SyncResult as a summary table plus error list."""
    status = "[green]completed[/green]" if result.success else "[red]not run[/red]"
    console.print(f"\n[bold]Sync {status}:[/bold] {result.message}")

    table = Table(show_header=True)
    table.add_column("Entity", style="bold")
    table.add_column("Synced", justify="right")
    for label, count in (
        ("Actors", result.actors_synced),
        ("Repositories", result.repositories_synced),
        ("Pull requests", result.activities_synced),
        ("Reviews", result.reviews_synced),
        ("Comments", result.comments_synced),
        ("Commits", result.commits_synced),
    ):
        table.add_row(label, str(count))
    console.print(table)
    console.print(f"Duration: {result.duration_seconds:.1f}s")

    if result.errors:
        console.print(f"\n[yellow]{len(result.errors)} errors:[/yellow]")
        for error in result.errors[:20]:
            console.print(f"  • {error}")
        if len(result.errors) > 20:
            console.print(f"  ... and {len(result.errors) - 20} more")


@app.command("run")
def sync_run(
    since: str | None = typer.Option(
        None,
        "--since",
        "-s",
        help="Only pull requests/commits updated after this date (YYYY-MM-DD)",
    ),
    full: bool = typer.Option(
        False,
        "--full",
        help="Don't stop at pull requests older than the window",
    ),
    skip_actors: bool = typer.Option(False, "--skip-actors", help="Skip organization members"),
    skip_repositories: bool = typer.Option(
        False, "--skip-repositories", help="Skip the repository listing"
    ),
    skip_activities: bool = typer.Option(
        False, "--skip-activities", help="Skip pull requests and their reviews/comments"
    ),
    skip_commits: bool = typer.Option(False, "--skip-commits", help="Skip commit history"),
    repos: ReposListOption = None,
    transport: str | None = typer.Option(
        None,
        "--transport",
        "-t",
        help="API used to list pull requests: rest or graphql",
    ),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync members, repositories, pull requests and commits.

    Examples:
        ghmetrics sync run
        ghmetrics sync run --since 2024-10-01
        ghmetrics sync run --skip-actors --skip-repositories --repos octo/widgets
        ghmetrics sync run --transport graphql --format json
    """
    require_token()
    if transport is not None and transport not in ("rest", "graphql"):
        raise typer.BadParameter("--transport must be 'rest' or 'graphql'")

    options = SyncOptions(
        since=parse_datetime(since),
        full_sync=full,
        skip_actors=skip_actors,
        skip_repositories=skip_repositories,
        skip_activities=skip_activities,
        skip_commits=skip_commits,
        repositories=validate_repo_list(repos),
        transport=_transport(transport),
    )

    async def _run() -> SyncResult:
        try:
            async with GitHubClient() as client:
                return await SyncOrchestrator(client).sync(options)
        finally:
            await dispose_engine()

    result = run_async_command(_run(), error_prefix="Sync failed")

    if output_format == OutputFormat.JSON:
        print_json(result.to_dict())
    else:
        print_sync_result(result)

    if not result.success:
        raise typer.Exit(1)


def _transport(value: str | None) -> Literal["rest", "graphql"] | None:
    if value == "graphql":
        return "graphql"
    if value == "rest":
        return "rest"
    return None


@app.command("status")
def sync_status(output_format: OutputFormatOption = OutputFormat.TEXT) -> None:
    """Show stored entity counts, sync watermarks and rate limit state.

    Examples:
        ghmetrics sync status
        ghmetrics sync status --format json
    """
    require_token()

    async def _status() -> dict[str, Any]:
        try:
            async with GitHubClient() as client:
                await client.get_rate_limit()
                status = SyncOrchestrator(client).get_status()
            async with get_session() as session:
                counts = {}
                for label, model in (
                    ("actors", Actor),
                    ("repositories", Repository),
                    ("activities", Activity),
                    ("commits", Commit),
                ):
                    counts[label] = (
                        await session.execute(select(func.count()).select_from(model))
                    ).scalar() or 0
                last_sync = (
                    await session.execute(select(func.max(Repository.last_sync_at)))
                ).scalar()
            status["stored"] = counts
            status["last_repository_sync_at"] = last_sync.isoformat() if last_sync else None
            return status
        finally:
            await dispose_engine()

    status = run_async_command(_status(), error_prefix="Status check failed")

    if output_format == OutputFormat.JSON:
        print_json(status)
        return

    console.print("\n[bold]Sync status[/bold]")
    console.print(f"  Last repository sync: {status['last_repository_sync_at'] or 'never'}")
    for label, count in status["stored"].items():
        console.print(f"  {label.capitalize()}: {count}")
    core = status["rate_limit"].get("pools", {}).get("core")
    if core:
        console.print(
            f"  Core quota: {core['remaining']}/{core['limit']} "
            f"(resets in {core['seconds_until_reset']}s)"
        )


@app.command("stop")
def sync_stop() -> None:
    """Request that running syncs stop.

    Syncs are not interruptible; this reports that and exits.
    """
    require_token()

    async def _stop() -> dict[str, Any]:
        async with GitHubClient() as client:
            return SyncOrchestrator(client).request_stop()

    payload = run_async_command(_stop(), error_prefix="Stop failed")
    console.print(f"[yellow]{payload['message']}[/yellow]")
