"""Metrics calculation commands."""

import typer
from rich.table import Table

from github_team_metrics.cli.common import (
    OutputFormatOption,
    console,
    parse_datetime,
    print_json,
    run_async_command,
)
from github_team_metrics.db import MetricType, dispose_engine
from github_team_metrics.github import OutputFormat
from github_team_metrics.metrics import MetricsEngine, MetricsOptions, MetricsResult

app = typer.Typer(help="Compute metric rollups from synced data")


@app.command("calculate")
def calculate(
    metric_type: MetricType = typer.Option(
        MetricType.DAILY,
        "--type",
        "-t",
        help="Rollup period",
        case_sensitive=False,
    ),
    start: str | None = typer.Option(
        None, "--start", help="First period start (YYYY-MM-DD), aligned down"
    ),
    end: str | None = typer.Option(None, "--end", help="Range end (YYYY-MM-DD), exclusive"),
    actor_id: int | None = typer.Option(None, "--actor-id", help="Only this actor"),
    repository_id: int | None = typer.Option(
        None, "--repository-id", help="Only this repository"
    ),
    recalculate: bool = typer.Option(
        False, "--recalculate", help="Overwrite samples that already exist"
    ),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Calculate metric samples over a date range.

    Examples:
        ghmetrics metrics calculate
        ghmetrics metrics calculate --type weekly --start 2024-09-01
        ghmetrics metrics calculate --repository-id 3 --recalculate --format json
    """
    options = MetricsOptions(
        metric_type=metric_type,
        start=parse_datetime(start),
        end=parse_datetime(end),
        actor_id=actor_id,
        repository_id=repository_id,
        recalculate=recalculate,
    )

    async def _calculate() -> MetricsResult:
        try:
            return await MetricsEngine().calculate_metrics(options)
        finally:
            await dispose_engine()

    result = run_async_command(_calculate(), error_prefix="Metrics calculation failed")

    if output_format == OutputFormat.JSON:
        print_json(result.to_dict())
    else:
        table = Table(title=f"{result.metric_type.value.capitalize()} metrics", show_header=True)
        table.add_column("Periods", justify="right")
        table.add_column("Scopes", justify="right")
        table.add_column("Created", justify="right")
        table.add_column("Updated", justify="right")
        table.add_column("Skipped", justify="right")
        table.add_row(
            str(result.periods),
            str(result.scopes),
            str(result.samples_created),
            str(result.samples_updated),
            str(result.samples_skipped),
        )
        console.print(table)
        console.print(result.message)
        for error in result.errors:
            console.print(f"  [yellow]•[/yellow] {error}")

    if not result.success:
        raise typer.Exit(1)
