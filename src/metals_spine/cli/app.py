"""
Root Typer application for the metals-spine CLI.

Global options (store URL, log level and format) are taken once by the
root callback; sub-commands read them from the Typer context.
"""

from __future__ import annotations

import typer
from typer import Typer

from metals_spine import __version__
from metals_spine.cli.utils import CliState, err_console
from metals_spine.framework.logging import configure_logging

app = Typer(
    name="metals-spine",
    help="metals-spine: idempotent commodity-curve ingestion.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"metals-spine {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    database: str | None = typer.Option(
        None, "--database", "-d", help="Store URL (overrides METALS_DATABASE_URL)."
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="DEBUG, INFO, WARNING or ERROR (overrides METALS_LOG_LEVEL)."
    ),
    log_format: str | None = typer.Option(
        None, "--log-format", help="console or json (overrides METALS_LOG_FORMAT)."
    ),
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """metals-spine CLI for curve ingestion and run inspection."""
    try:
        configure_logging(level=log_level, format=log_format, force=True)
    except ValueError as e:
        err_console.print(f"[bold red]Error[/bold red]: {e}")
        raise typer.Exit(code=1) from e
    ctx.obj = CliState(database=database)


# ── Sub-command registration ─────────────────────────────────────────────

from metals_spine.cli.db import app as db_app  # noqa: E402
from metals_spine.cli.ingest import ingest  # noqa: E402
from metals_spine.cli.runs import app as runs_app  # noqa: E402
from metals_spine.cli.status import health, status  # noqa: E402

app.command("ingest")(ingest)
app.command("status")(status)
app.command("health")(health)
app.add_typer(runs_app, name="runs", help="Ingest run audit trail.")
app.add_typer(db_app, name="db", help="Database operations.")


def main() -> None:
    """Console-script entry point."""
    app()
