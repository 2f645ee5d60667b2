from __future__ import annotations

import sys
from typing import Optional

import psycopg
import typer
from psycopg.conninfo import conninfo_to_dict, make_conninfo

from txnload.config import get_settings
from txnload.errors import SetupError
from txnload.infrastructure.db_factory import build_dsn
from txnload.orchestrator import RunConfig, available_modes, run as run_once
from txnload.reporter import print_result
from txnload.utils.logging import configure_logging

app = typer.Typer(help="Transactional insert load generator for distributed SQL databases.")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    params = conninfo_to_dict(build_dsn(settings))
    if params.get("password"):
        params["password"] = "***"
    dsn = make_conninfo(**params)
    typer.echo(
        f"DSN={dsn} | table={settings.table_name} tz={settings.timezone} "
        f"mode={settings.mode} batch={settings.batch_size} log_every={settings.log_every}"
    )


@app.command()
def modes() -> None:
    """
    List workload modes.
    """
    typer.echo("Available modes: " + ", ".join(available_modes()))


@app.command()
def run(
    delete_all: bool = typer.Option(
        False,
        "--delete-all",
        help="Delete every row of the target table and exit (no load is generated).",
    ),
    mode: Optional[str] = typer.Option(
        None,
        "--mode",
        "-m",
        help="Workload mode: each (one transaction per record) or once (single batch).",
    ),
    table: Optional[str] = typer.Option(None, "--table", "-t", help="Override target table."),
    max_records: Optional[int] = typer.Option(
        None,
        "--max-records",
        "-n",
        help="Stop after this many committed records (default: run until interrupted).",
    ),
    batch_size: Optional[int] = typer.Option(
        None, "--batch-size", "-b", help="Inserts per transaction in 'once' mode."
    ),
    run_seconds: Optional[float] = typer.Option(
        None, "--run-seconds", help="Stop after this many seconds."
    ),
) -> None:
    """
    Generate insert load, or reset the table with --delete-all.
    """
    settings = get_settings()
    overrides = {
        key: value
        for key, value in {
            "table_name": table,
            "max_records": max_records,
            "batch_size": batch_size,
            "run_seconds": run_seconds,
        }.items()
        if value is not None
    }
    if overrides:
        settings = settings.model_validate({**settings.model_dump(), **overrides})
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    try:
        outcome = run_once(RunConfig(settings=settings, mode=mode, delete_all=delete_all))
    except SetupError as exc:
        typer.echo(f"Setup failed: {exc}", err=True)
        raise typer.Exit(code=1)
    except psycopg.Error as exc:
        typer.echo(f"Database error: {exc}", err=True)
        raise typer.Exit(code=1)

    if outcome.deleted is not None:
        typer.echo(f"All records deleted ({outcome.deleted:,} rows).")
        return
    if outcome.result is not None:
        print_result(outcome.result)
        if outcome.result.get("error"):
            raise typer.Exit(code=1)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
