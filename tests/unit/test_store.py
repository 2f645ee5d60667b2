from __future__ import annotations

from contextlib import contextmanager
from typing import Any, List, Optional

import psycopg
import pytest
from psycopg import errors

from txnload.config import Settings
from txnload.errors import SetupError, StoreClosedError
from txnload.infrastructure.store import PostgresStore


class _FakeCursor:
    def __init__(self, conn: "_FakeConnection") -> None:
        self._conn = conn
        self.rowcount = -1

    def __enter__(self) -> "_FakeCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        del exc_type, exc, tb

    def execute(self, statement: Any, params: Optional[dict] = None) -> None:
        self._conn.executed.append((statement, params))
        if self._conn.execute_errors:
            raise self._conn.execute_errors.pop(0)
        self.rowcount = self._conn.rowcount

    def fetchone(self):
        return (self._conn.rowcount,)


class _FakeConnection:
    def __init__(self) -> None:
        self.executed: List[tuple] = []
        self.execute_errors: List[Exception] = []
        self.rowcount = 1
        self.depth = 0
        self.savepoints = 0
        self.commits = 0
        self.rollbacks = 0
        self.broken = False
        self.closed = False

    def cursor(self) -> _FakeCursor:
        return _FakeCursor(self)

    @contextmanager
    def transaction(self):
        self.depth += 1
        if self.depth > 1:
            self.savepoints += 1
        try:
            yield
        except Exception:
            if self.depth == 1:
                self.rollbacks += 1
            raise
        else:
            if self.depth == 1:
                self.commits += 1
        finally:
            self.depth -= 1

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def connections() -> List[_FakeConnection]:
    return []


@pytest.fixture
def pg_store(connections) -> PostgresStore:
    def connect(dsn: str, timeout_ms: int) -> _FakeConnection:
        conn = _FakeConnection()
        connections.append(conn)
        return conn

    return PostgresStore("postgresql://test", txn_retries=2, connect=connect)


def test_transaction_commits_body_result(pg_store, connections) -> None:
    result = pg_store.run_transaction(lambda txn: txn.execute("INSERT 1", {"id": "x"}))

    assert result == 1
    assert connections[0].commits == 1
    assert connections[0].executed == [("INSERT 1", {"id": "x"})]


def test_serialization_failures_rerun_the_body(pg_store, connections) -> None:
    conn = connections[0]
    conn.execute_errors = [errors.SerializationFailure("restart transaction")]
    calls = []

    def body(txn):
        calls.append(1)
        return txn.execute("INSERT 1")

    assert pg_store.run_transaction(body) == 1
    assert len(calls) == 2
    assert conn.rollbacks == 1
    assert conn.commits == 1


def test_non_transient_errors_are_raised_immediately(pg_store, connections) -> None:
    connections[0].execute_errors = [errors.UniqueViolation("duplicate key")]
    calls = []

    def body(txn):
        calls.append(1)
        return txn.execute("INSERT 1")

    with pytest.raises(errors.UniqueViolation):
        pg_store.run_transaction(body)
    assert len(calls) == 1


def test_savepoint_statement_failure_keeps_transaction(pg_store, connections) -> None:
    conn = connections[0]
    conn.execute_errors = [errors.UniqueViolation("duplicate key")]

    def body(txn):
        with pytest.raises(errors.UniqueViolation):
            txn.execute("INSERT 1", savepoint=True)
        return txn.execute("INSERT 2", savepoint=True)

    assert pg_store.run_transaction(body) == 1
    assert conn.savepoints == 2
    assert conn.commits == 1


def test_broken_connection_is_replaced(pg_store, connections) -> None:
    connections[0].broken = True

    pg_store.run_transaction(lambda txn: txn.execute("INSERT 1"))

    assert len(connections) == 2
    assert connections[1].commits == 1


def test_delete_all_and_count(pg_store, connections) -> None:
    connections[0].rowcount = 42

    assert pg_store.delete_all("test") == 42
    assert pg_store.count_rows("test") == 42
    assert connections[0].commits == 1


def test_closed_store_rejects_operations(pg_store, connections) -> None:
    pg_store.close()
    pg_store.close()

    assert pg_store.closed
    assert connections[0].closed
    with pytest.raises(StoreClosedError):
        pg_store.run_transaction(lambda txn: None)
    with pytest.raises(StoreClosedError):
        pg_store.delete_all("test")


def test_from_settings_wraps_connection_errors(monkeypatch) -> None:
    def refuse(self, *args, **kwargs):
        raise psycopg.OperationalError("connection refused")

    monkeypatch.setattr(PostgresStore, "__init__", refuse)

    with pytest.raises(SetupError, match="connection refused"):
        PostgresStore.from_settings(Settings(_env_file=None))
