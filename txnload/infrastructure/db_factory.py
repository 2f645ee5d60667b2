"""
Database connection factory utilities for the txnload harness.

Composes the connection string from settings and opens psycopg connections,
retrying transient connect failures with tenacity. The workload drivers never
touch connections directly; they go through `txnload.infrastructure.store`.
"""

from __future__ import annotations

import psycopg
from psycopg import Connection
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from txnload.config import Settings


def build_dsn(settings: Settings) -> str:
    """
    Return the configured connection string.

    `DATABASE_URL` wins when set; otherwise the DSN is composed from the
    individual DB_* settings.
    """
    if settings.database_url:
        return settings.database_url
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def apply_statement_timeout(conn: Connection, timeout_ms: int) -> None:
    """Set a session-wide statement timeout; 0 leaves the server default."""
    if timeout_ms <= 0:
        return
    with conn.cursor() as cur:
        cur.execute("SELECT set_config('statement_timeout', %s, false)", (str(timeout_ms),))


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: str, statement_timeout_ms: int = 0) -> Connection:
    """
    Open an autocommit connection with automatic retry.

    Transactions are demarcated explicitly with `conn.transaction()`, so the
    session itself runs in autocommit mode.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    conn = psycopg.connect(dsn, autocommit=True)
    try:
        apply_statement_timeout(conn, statement_timeout_ms)
    except Exception:
        conn.close()
        raise
    return conn


__all__ = ["apply_statement_timeout", "build_dsn", "get_sync_connection"]
