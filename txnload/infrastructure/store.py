"""
Transactional store handle for the txnload harness.

The workload drivers only need four things from the database: run a
read-write transaction around a callable, wipe a table, count a table and
close. `StoreHandle` captures that contract; `PostgresStore` implements it on
top of a single psycopg connection. Any engine speaking the PostgreSQL wire
protocol works (PostgreSQL, CockroachDB, YugabyteDB, Spanner via PGAdapter).

`run_transaction` may re-run the body a few times on serialization failures
and deadlocks before reporting upward, the way distributed SQL clients do.
Callers treat that as opaque.
"""

from __future__ import annotations

from typing import (
    Any,
    Callable,
    Mapping,
    Optional,
    Protocol,
    TypeVar,
    Union,
    runtime_checkable,
)

import psycopg
from psycopg import Connection, errors, sql
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from txnload.config import Settings
from txnload.errors import SetupError, StoreClosedError
from txnload.infrastructure.db_factory import build_dsn, get_sync_connection
from txnload.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")
Query = Union[str, sql.Composable]

# Errors the server asks the client to retry.
TRANSIENT_ERRORS = (errors.SerializationFailure, errors.DeadlockDetected)


@runtime_checkable
class TransactionContext(Protocol):
    """Handle passed to a transaction body."""

    def execute(
        self, statement: Query, params: Optional[Mapping[str, Any]] = None, *, savepoint: bool = False
    ) -> int:
        """
        Execute one statement and return the affected-row count.

        With `savepoint=True` the statement runs inside a savepoint, so a
        failure leaves the enclosing transaction usable.
        """
        ...


TransactionBody = Callable[[TransactionContext], T]


@runtime_checkable
class StoreHandle(Protocol):
    """Opaque connection to the backing transactional database."""

    @property
    def closed(self) -> bool: ...

    def run_transaction(self, body: TransactionBody[T]) -> T:
        """Run `body` in a read-write transaction; commit on return, roll back on error."""
        ...

    def delete_all(self, table: str) -> int:
        """Unconditionally delete every row of `table`; return the count deleted."""
        ...

    def count_rows(self, table: str) -> int: ...

    def close(self) -> None: ...


class _PsycopgTransaction:
    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def execute(
        self, statement: Query, params: Optional[Mapping[str, Any]] = None, *, savepoint: bool = False
    ) -> int:
        with self._conn.cursor() as cur:
            if savepoint:
                # Nested transaction() blocks are savepoints in psycopg.
                with self._conn.transaction():
                    cur.execute(statement, params)
            else:
                cur.execute(statement, params)
            return cur.rowcount


class PostgresStore:
    """
    StoreHandle backed by one psycopg connection.

    A broken connection is replaced on the next transaction; the handle
    itself stays valid until `close()`.
    """

    def __init__(
        self,
        dsn: str,
        statement_timeout_ms: int = 0,
        txn_retries: int = 3,
        connect: Callable[[str, int], Connection] = get_sync_connection,
    ) -> None:
        self._dsn = dsn
        self._statement_timeout_ms = statement_timeout_ms
        self._txn_retries = txn_retries
        self._connect = connect
        self._closed = False
        self._conn = self._connect(dsn, statement_timeout_ms)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PostgresStore":
        """
        Build a store from settings.

        Raises
        ------
        SetupError
            If the initial connection cannot be established.
        """
        try:
            return cls(
                build_dsn(settings),
                statement_timeout_ms=settings.db_statement_timeout_ms,
                txn_retries=settings.db_txn_retries,
            )
        except psycopg.Error as exc:
            raise SetupError(f"cannot connect to database: {exc}") from exc

    @property
    def closed(self) -> bool:
        return self._closed

    def _connection(self) -> Connection:
        if self._closed:
            raise StoreClosedError("store handle is closed")
        if self._conn.broken or self._conn.closed:
            log.warning("Connection lost; reconnecting")
            self._conn.close()
            self._conn = self._connect(self._dsn, self._statement_timeout_ms)
        return self._conn

    def run_transaction(self, body: TransactionBody[T]) -> T:
        retrying = Retrying(
            stop=stop_after_attempt(self._txn_retries + 1),
            wait=wait_exponential(multiplier=0.05, max=1),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                conn = self._connection()
                with conn.transaction():
                    return body(_PsycopgTransaction(conn))
        raise AssertionError("unreachable")  # pragma: no cover

    def delete_all(self, table: str) -> int:
        conn = self._connection()
        statement = sql.SQL("DELETE FROM {}").format(sql.Identifier(table))
        with conn.transaction():
            with conn.cursor() as cur:
                cur.execute(statement)
                return cur.rowcount

    def count_rows(self, table: str) -> int:
        conn = self._connection()
        statement = sql.SQL("SELECT count(*) FROM {}").format(sql.Identifier(table))
        with conn.cursor() as cur:
            cur.execute(statement)
            row = cur.fetchone()
        return int(row[0]) if row else 0

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._conn.close()


__all__ = [
    "PostgresStore",
    "StoreHandle",
    "TRANSIENT_ERRORS",
    "TransactionBody",
    "TransactionContext",
]
