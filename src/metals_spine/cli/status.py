"""
CLI: ``metals-spine status`` and ``metals-spine health``.
"""

from __future__ import annotations

import typer

from metals_spine.cli.utils import (
    EXIT_ERROR,
    console,
    get_state,
    print_dict,
    print_json,
    store,
    validate_date,
)
from metals_spine.domains.metals_curve.status import check_health, curve_status


def status(
    ctx: typer.Context,
    date: str | None = typer.Option(
        None, "--date", help="As-of date (YYYY-MM-DD); newest when omitted.", callback=validate_date
    ),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Row counts of the latest curve, by metal."""
    settings = get_state(ctx).settings()
    with store(settings) as conn:
        report = curve_status(conn, as_of_date=date)

    if json_out:
        print_json(report.to_dict())
        return

    if report.as_of_date is None:
        console.print("[dim]No curve ingested yet.[/dim]")
    else:
        console.print(f"[bold]Curve as of {report.as_of_date}[/bold]: {report.total_rows} rows")
        print_dict(report.per_metal)
    if report.last_run is not None:
        run = report.last_run
        console.print(
            f"[dim]Last run {run.run_timestamp} ({run.trigger_source}): "
            f"{run.status.value}{' / ' + run.reason if run.reason else ''}[/dim]"
        )


def health(
    ctx: typer.Context,
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Ping the store and show table row counts."""
    settings = get_state(ctx).settings()
    with store(settings, init_schema=False) as conn:
        report = check_health(conn)

    if json_out:
        print_json(report.to_dict())
    else:
        label = "[bold green]healthy[/bold green]" if report.ok else "[bold red]unhealthy[/bold red]"
        console.print(f"Store: {label}")
        print_dict({name: "missing" if n is None else n for name, n in report.tables.items()})
        if report.error:
            console.print(f"[red]{report.error}[/red]")

    if not report.ok:
        raise typer.Exit(code=EXIT_ERROR)
