"""
CLI utility helpers: shared state, store scoping and output formatting.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

import typer
from pydantic import ValidationError as SettingsValidationError
from rich.console import Console
from rich.table import Table

from metals_spine.core.connection import open_connection
from metals_spine.core.errors import ConfigError, DatabaseConnectionError
from metals_spine.core.protocols import Connection
from metals_spine.core.settings import Settings, get_settings
from metals_spine.core.temporal import parse_iso_date
from metals_spine.domains.metals_curve.schema import create_tables

console = Console()
err_console = Console(stderr=True)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFLICT = 2


# ── Shared state ─────────────────────────────────────────────────────────


@dataclass
class CliState:
    """Global options captured by the root callback."""

    database: str | None = None

    def settings(self) -> Settings:
        try:
            settings = get_settings()
        except SettingsValidationError as e:
            err_console.print(f"[bold red]Invalid configuration[/bold red]: {e}")
            raise typer.Exit(code=EXIT_ERROR) from e
        if self.database:
            settings = settings.model_copy(update={"database_url": self.database})
        return settings


def get_state(ctx: typer.Context) -> CliState:
    root = ctx.find_root()
    if not isinstance(root.obj, CliState):
        root.obj = CliState()
    return root.obj


# ── Option callbacks ─────────────────────────────────────────────────────


def validate_date(value: str | None) -> str | None:
    """Typer callback: normalise a YYYY-MM-DD option."""
    if value is None:
        return None
    try:
        return parse_iso_date(value).isoformat()
    except ValueError as e:
        raise typer.BadParameter(f"expected YYYY-MM-DD, got {value!r}") from e


# ── Connection helper ────────────────────────────────────────────────────


@contextmanager
def store(settings: Settings, *, init_schema: bool = True) -> Iterator[Connection]:
    """Open the configured store for one command; closed on every exit path."""
    try:
        with open_connection(settings.database_url) as conn:
            if init_schema:
                create_tables(conn)
            yield conn
    except (DatabaseConnectionError, ConfigError) as e:
        err_console.print(f"[bold red]Error[/bold red] (database): {e}")
        raise typer.Exit(code=EXIT_ERROR) from e


# ── Output helpers ───────────────────────────────────────────────────────


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        if isinstance(v, dict):
            v = ", ".join(f"{ik}={iv}" for ik, iv in v.items()) or "-"
        console.print(f"  [cyan]{k}[/cyan]: {v}")


def print_table(rows: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table."""
    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*("" if v is None else str(v) for v in row.values()))
    console.print(table)
