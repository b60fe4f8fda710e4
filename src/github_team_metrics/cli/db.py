"""Database management commands."""

import typer

from github_team_metrics.cli.common import console, run_async_command
from github_team_metrics.config import get_settings
from github_team_metrics.db import create_tables, dispose_engine, drop_tables

app = typer.Typer(help="Database commands")


@app.command("init")
def db_init() -> None:
    """Create all tables that don't exist yet.

    Deployments that track schema history should run `alembic upgrade head`
    instead.
    """

    async def _init() -> None:
        try:
            await create_tables()
        finally:
            await dispose_engine()

    run_async_command(_init(), error_prefix="Database init failed")
    console.print(f"[green]Tables created[/green] ({get_settings().database_url})")


@app.command("reset")
def db_reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation"),
) -> None:
    """Drop and recreate all tables. Deletes all data."""
    if not yes:
        typer.confirm("This deletes all synced data and metrics. Continue?", abort=True)

    async def _reset() -> None:
        try:
            await drop_tables()
            await create_tables()
        finally:
            await dispose_engine()

    run_async_command(_reset(), error_prefix="Database reset failed")
    console.print("[green]Database reset[/green]")
