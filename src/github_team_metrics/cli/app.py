"""Main CLI application for GitHub Team Metrics."""

from typing import Annotated

import typer
from rich.console import Console

from github_team_metrics import __version__
from github_team_metrics.cli import db as db_cmd
from github_team_metrics.cli import github as github_cmd
from github_team_metrics.cli import metrics as metrics_cmd
from github_team_metrics.cli import scheduler as scheduler_cmd
from github_team_metrics.cli import sync as sync_cmd
from github_team_metrics.config import get_settings
from github_team_metrics.logging import setup_logging

app = typer.Typer(
    name="ghmetrics",
    help="Ingest GitHub organization activity and compute team metrics.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"ghmetrics version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """GitHub Team Metrics - activity ingestion and rollups."""
    settings = get_settings()
    setup_logging(settings.log_level, verbose=verbose, quiet=quiet, file=settings.logging)


# Register subcommands
app.add_typer(sync_cmd.app, name="sync")
app.add_typer(scheduler_cmd.app, name="scheduler")
app.add_typer(metrics_cmd.app, name="metrics")
app.add_typer(github_cmd.app, name="github")
app.add_typer(db_cmd.app, name="db")


if __name__ == "__main__":
    app()
