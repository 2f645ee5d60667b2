"""
Schema helper for the txnload harness.

Creates the target table `(id, name, time)` the workload drivers insert into.
The harness itself assumes the table exists; this script is a convenience for
local databases and CI.
"""

from __future__ import annotations

import sys

import psycopg
import typer
from psycopg import sql

from txnload.config import get_settings
from txnload.infrastructure.db_factory import build_dsn

app = typer.Typer(help="Create (or recreate) the txnload target table.")

CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS {table} (
    id   VARCHAR(36) PRIMARY KEY,
    name VARCHAR(36) NOT NULL,
    time VARCHAR(32) NOT NULL
)
"""


def create_table(dsn: str, table: str, drop: bool = False) -> None:
    with psycopg.connect(dsn, autocommit=True) as conn:
        with conn.cursor() as cur:
            if drop:
                cur.execute(sql.SQL("DROP TABLE IF EXISTS {}").format(sql.Identifier(table)))
            cur.execute(sql.SQL(CREATE_TABLE).format(table=sql.Identifier(table)))


@app.command()
def main(
    table: str | None = typer.Option(None, "--table", "-t", help="Table name (default from settings)."),
    dsn: str | None = typer.Option(None, "--dsn", help="Optional DSN override."),
    drop: bool = typer.Option(False, "--drop", help="DROP the table before creating it."),
) -> None:
    """
    Create the target table if it does not exist.
    """
    settings = get_settings()
    target = table or settings.table_name
    create_table(dsn or build_dsn(settings), target, drop=drop)
    typer.echo(f"Table {target!r} ready.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
