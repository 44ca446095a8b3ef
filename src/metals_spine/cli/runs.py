"""
CLI: ``metals-spine runs``: ingest audit trail.
"""

from __future__ import annotations

import typer

from metals_spine.cli.utils import (
    EXIT_ERROR,
    err_console,
    get_state,
    print_dict,
    print_json,
    print_table,
    store,
    validate_date,
)
from metals_spine.domains.metals_curve.audit import IngestRunLog
from metals_spine.domains.metals_curve.schema import RunStatus

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_runs(
    ctx: typer.Context,
    date: str | None = typer.Option(None, "--date", help="Run date (YYYY-MM-DD).", callback=validate_date),
    status: RunStatus | None = typer.Option(None, "--status", "-s", case_sensitive=False),
    limit: int = typer.Option(20, "--limit", "-n", min=1),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List ingest runs, newest first."""
    settings = get_state(ctx).settings()
    with store(settings) as conn:
        runs = IngestRunLog(conn).recent(limit=limit, run_date=date, status=status)

    if json_out:
        print_json([run.to_dict() for run in runs])
        return

    print_table(
        [
            {
                "id": run.id,
                "run_date": run.run_date,
                "trigger": run.trigger_source,
                "status": run.status.value,
                "reason": run.reason,
                "rows": run.row_count,
                "dropped": run.dropped_count,
                "forced": run.forced,
                "at": run.run_timestamp,
            }
            for run in runs
        ],
        title="Ingest runs",
    )


@app.command("show")
def show_run(
    ctx: typer.Context,
    run_id: str = typer.Argument(..., help="Run ID"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show one ingest run with its detail."""
    settings = get_state(ctx).settings()
    with store(settings) as conn:
        run = IngestRunLog(conn).get(run_id)

    if run is None:
        err_console.print(f"[bold red]Error[/bold red]: no run with id {run_id}")
        raise typer.Exit(code=EXIT_ERROR)

    payload = run.to_dict()
    payload["detail"] = run.detail_dict()
    if json_out:
        print_json(payload)
    else:
        print_dict(payload, title=f"Run: {run_id}")
