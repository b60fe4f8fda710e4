"""Scheduler commands: run the job table or fire single jobs."""

import asyncio
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
from github_team_metrics.db import dispose_engine
from github_team_metrics.github import GitHubClient, OutputFormat, SyncOrchestrator
from github_team_metrics.metrics import MetricsEngine
from github_team_metrics.scheduling import Scheduler

app = typer.Typer(help="Run sync and metrics jobs on their schedules")


def _build_scheduler(client: GitHubClient) -> Scheduler:
    return Scheduler.with_default_jobs(SyncOrchestrator(client), MetricsEngine())


@app.command("run")
def scheduler_run() -> None:
    """Run the scheduler in the foreground until interrupted (Ctrl+C)."""
    require_token()

    async def _serve() -> None:
        async with GitHubClient() as client:
            scheduler = _build_scheduler(client)
            await scheduler.start()
            for name, next_run in scheduler.get_next_run_times().items():
                console.print(f"  {name}: next run {next_run or 'disabled'}")
            try:
                await asyncio.Event().wait()
            finally:
                await scheduler.stop()
                await dispose_engine()

    console.print("[bold]Scheduler running.[/bold] Press Ctrl+C to stop.")
    try:
        run_async_command(_serve(), error_prefix="Scheduler failed")
    except KeyboardInterrupt:
        console.print("\n[yellow]Scheduler stopped[/yellow]")


@app.command("jobs")
def scheduler_jobs(output_format: OutputFormatOption = OutputFormat.TEXT) -> None:
    """List the built-in jobs with their schedules and next run times."""
    require_token()
    scheduler = _build_scheduler(GitHubClient())
    next_runs = scheduler.get_next_run_times()

    if output_format == OutputFormat.JSON:
        jobs = [scheduler.get_job(name).to_dict() for name in scheduler.job_names]
        for job in jobs:
            job["next_run_at"] = next_runs[job["name"]]
        print_json(jobs)
        return

    table = Table(title="Scheduled jobs", show_header=True)
    table.add_column("Job", style="bold")
    table.add_column("Schedule")
    table.add_column("Next run (UTC)")
    table.add_column("Description")
    for name in scheduler.job_names:
        spec = scheduler.get_job(name).spec
        table.add_row(
            name,
            spec.schedule.describe(),
            next_runs[name] or "[dim]disabled[/dim]",
            spec.description,
        )
    console.print(table)


@app.command("run-job")
def scheduler_run_job(
    name: str = typer.Argument(..., help="Job name (see `ghmetrics scheduler jobs`)"),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Run one job immediately, outside its schedule.

    Examples:
        ghmetrics scheduler run-job daily_metrics
    """
    require_token()

    async def _run() -> dict[str, Any]:
        try:
            async with GitHubClient() as client:
                scheduler = _build_scheduler(client)
                if name not in scheduler.job_names:
                    console.print(
                        f"[red]Error:[/red] Unknown job '{name}'. "
                        f"Available: {', '.join(scheduler.job_names)}"
                    )
                    raise typer.Exit(1)
                state = await scheduler.run_job(name)
                payload = state.to_dict()
                payload["last_result"] = state.last_result
                return payload
        finally:
            await dispose_engine()

    payload = run_async_command(_run(), error_prefix="Job failed")

    if output_format == OutputFormat.JSON:
        print_json(payload)
    elif payload["last_error"]:
        console.print(f"[red]Job {name} failed:[/red] {payload['last_error']}")
    else:
        console.print(f"[green]Job {name} finished[/green]")
        result = payload["last_result"]
        if isinstance(result, dict) and result.get("message"):
            console.print(result["message"])

    if payload["last_error"]:
        raise typer.Exit(1)
