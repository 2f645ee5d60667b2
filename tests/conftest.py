"""
Pytest configuration for the txnload harness.

Provides fixtures for:
- An in-memory StoreHandle double with scripted failures (unit tests)
- Settings with test-specific overrides
- Database connection management for integration tests
"""

from __future__ import annotations

import io
import os
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Generator, Iterable, List, Mapping, Optional

import psycopg
import pytest
from rich.console import Console

from txnload.config import Settings
from txnload.domain.models import LocalClock, RecordFactory
from txnload.errors import StoreClosedError


class StatementError(RuntimeError):
    pass


class CommitError(RuntimeError):
    pass


class MemoryTransaction:
    def __init__(self, store: "InMemoryStore", staged: Dict[str, Dict[str, Any]]) -> None:
        self._store = store
        self._staged = staged

    def execute(
        self, statement: Any, params: Optional[Mapping[str, Any]] = None, *, savepoint: bool = False
    ) -> int:
        store = self._store
        store.statements += 1
        store.statement_log.append(statement)
        if savepoint:
            store.savepoints += 1
        assert params is not None
        store.attempted_ids.append(params["id"])
        if store.statements in store.fail_statements:
            raise StatementError(f"statement {store.statements} rejected")
        if params["id"] in store.rows or params["id"] in self._staged:
            raise StatementError(f"duplicate key {params['id']}")
        self._staged[params["id"]] = dict(params)
        return 1


class InMemoryStore:
    """
    StoreHandle double.

    fail_first : the first N run_transaction calls run the body, then fail at commit.
    fail_statements : 1-based global statement numbers that raise.
    commit_error : raised at every commit when set.
    """

    def __init__(
        self,
        fail_first: int = 0,
        fail_statements: Iterable[int] = (),
        commit_error: Optional[Exception] = None,
    ) -> None:
        self.fail_first = fail_first
        self.fail_statements = set(fail_statements)
        self.commit_error = commit_error
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.transactions = 0
        self.statements = 0
        self.savepoints = 0
        self.close_calls = 0
        self.attempted_ids: List[str] = []
        self.statement_log: List[Any] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreClosedError("store handle is closed")

    def run_transaction(self, body: Callable[[MemoryTransaction], Any]) -> Any:
        self._ensure_open()
        self.transactions += 1
        staged: Dict[str, Dict[str, Any]] = {}
        result = body(MemoryTransaction(self, staged))
        if self.transactions <= self.fail_first:
            raise CommitError(f"transaction {self.transactions} aborted")
        if self.commit_error is not None:
            raise self.commit_error
        self.rows.update(staged)
        return result

    def seed(self, count: int) -> None:
        for i in range(count):
            key = f"seed-{i}"
            self.rows[key] = {"id": key, "name": key, "time": "2026-01-01T00:00:00Z"}

    def delete_all(self, table: str) -> int:
        self._ensure_open()
        deleted = len(self.rows)
        self.rows.clear()
        return deleted

    def count_rows(self, table: str) -> int:
        self._ensure_open()
        return len(self.rows)

    def close(self) -> None:
        self.close_calls += 1
        self._closed = True


@pytest.fixture
def make_store() -> Callable[..., InMemoryStore]:
    return InMemoryStore


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def fixed_clock() -> LocalClock:
    """Clock pinned to 2026-10-19 12:00:00 UTC, rendered in Asia/Tokyo."""
    moment = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)
    return LocalClock("Asia/Tokyo", now_fn=lambda: moment)


@pytest.fixture
def records() -> RecordFactory:
    return RecordFactory(LocalClock("Asia/Tokyo"))


@pytest.fixture
def quiet_console() -> Console:
    return Console(file=io.StringIO(), force_terminal=False)


@pytest.fixture
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        _env_file=None,
        database_url=os.getenv("DATABASE_URL", ""),
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "txnload"),
        table_name="test",
        timezone="Asia/Tokyo",
        mode="each",
        batch_size=25,
        log_every=10,
        max_records=5,
        run_seconds=None,
        retry_max_attempts=None,
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn() -> str:
    """
    Database connection string for integration tests.
    """
    if os.getenv("DATABASE_URL"):
        return os.environ["DATABASE_URL"]
    return (
        f"postgresql://{os.getenv('DB_USER', 'postgres')}:{os.getenv('DB_PASSWORD', 'postgres')}"
        f"@{os.getenv('DB_HOST', 'localhost')}:{os.getenv('DB_PORT', '5432')}"
        f"/{os.getenv('DB_NAME', 'txnload')}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped autocommit connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn, autocommit=True)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def clean_test_table(
    db_connection: psycopg.Connection, test_dsn: str
) -> Generator[str, None, None]:
    """
    Ensure the `txnload_it` table exists and is empty around each test.
    """
    table = "txnload_it"
    from scripts.create_schema import create_table

    create_table(test_dsn, table)
    with db_connection.cursor() as cur:
        cur.execute(f"TRUNCATE TABLE {table};")
    yield table
    with db_connection.cursor() as cur:
        cur.execute(f"TRUNCATE TABLE {table};")
