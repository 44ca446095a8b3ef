"""
CLI: ``metals-spine db``: database management commands.
"""

from __future__ import annotations

import typer

from metals_spine.cli.utils import console, get_state, print_json, store
from metals_spine.domains.metals_curve.schema import create_tables

app = typer.Typer(no_args_is_help=True)


@app.command()
def init(
    ctx: typer.Context,
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Create the curve and audit tables (idempotent)."""
    settings = get_state(ctx).settings()
    with store(settings, init_schema=False) as conn:
        tables = create_tables(conn)

    if json_out:
        print_json({"ok": True, "tables": tables})
        return
    console.print("[bold green]Database initialised[/bold green]")
    for table in tables:
        console.print(f"  [cyan]{table}[/cyan]")
