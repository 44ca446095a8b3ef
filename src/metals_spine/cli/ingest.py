"""
CLI: ``metals-spine ingest``: run the curve ingest pipeline once.

Exit codes: 0 success or skipped, 2 history conflict, 1 error.
"""

from __future__ import annotations

from pathlib import Path

import typer

from metals_spine.cli.utils import (
    EXIT_CONFLICT,
    EXIT_ERROR,
    EXIT_OK,
    console,
    err_console,
    get_state,
    print_dict,
    print_json,
    print_table,
    store,
)
from metals_spine.domains.metals_curve.pipelines import (
    IngestCurvePipeline,
    IngestOutcome,
    OutcomeStatus,
)
from metals_spine.framework.sources import FileSource, HttpSource, Source

_EXIT_CODES = {
    OutcomeStatus.SUCCESS: EXIT_OK,
    OutcomeStatus.SKIPPED: EXIT_OK,
    OutcomeStatus.CONFLICT: EXIT_CONFLICT,
    OutcomeStatus.ERROR: EXIT_ERROR,
}

_STYLES = {
    OutcomeStatus.SUCCESS: "bold green",
    OutcomeStatus.SKIPPED: "bold yellow",
    OutcomeStatus.CONFLICT: "bold magenta",
    OutcomeStatus.ERROR: "bold red",
}


def exit_code_for(outcome: IngestOutcome) -> int:
    return _EXIT_CODES[outcome.status]


def _render(outcome: IngestOutcome) -> None:
    style = _STYLES[outcome.status]
    console.print(f"[{style}]{outcome.status.value.upper()}[/{style}]" + (f" ({outcome.reason})" if outcome.reason else ""))
    payload = outcome.to_dict()
    existing = payload.pop("existing_rows", None)
    for key in ("ok", "status", "reason"):
        payload.pop(key, None)
    print_dict(payload)
    if existing:
        print_table(existing, title=f"Existing history for {outcome.as_of_date}")
        console.print("[dim]Re-run with --force to replace this date.[/dim]")


def ingest(
    ctx: typer.Context,
    file: Path | None = typer.Option(None, "--file", "-f", help="Read the CSV from a local file."),
    url: str | None = typer.Option(None, "--url", "-u", help="Fetch the CSV from this URL."),
    source: str = typer.Option("manual", "--source", "-s", help="Trigger source; 'cron…' marks a scheduled run."),
    force: bool = typer.Option(False, "--force", help="Override date, conflict and duplicate-run checks."),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Ingest one curve snapshot (defaults to METALS_CSV_URL)."""
    if file is not None and url is not None:
        err_console.print("[bold red]Error[/bold red]: use either --file or --url, not both")
        raise typer.Exit(code=EXIT_ERROR)
    if not source.strip():
        err_console.print("[bold red]Error[/bold red]: --source must not be blank")
        raise typer.Exit(code=EXIT_ERROR)

    settings = get_state(ctx).settings()
    src: Source | None = None
    if file is not None:
        src = FileSource(file)
    elif url is not None:
        src = HttpSource(url, timeout=settings.http_timeout)

    with store(settings) as conn:
        outcome = IngestCurvePipeline(conn, settings).run(src, trigger_source=source, force=force)

    if json_out:
        print_json(outcome.to_dict())
    else:
        _render(outcome)

    raise typer.Exit(code=exit_code_for(outcome))
