"""
Driver interfaces and result contracts for the txnload harness.

Workload drivers (per-record, batched) implement the WorkloadDriver protocol
and return a DriverResult TypedDict so the orchestrator and reporter can
treat every mode the same way.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, TypedDict, runtime_checkable

from psycopg import sql

from txnload.infrastructure.store import StoreHandle

INSERT_SQL = "INSERT INTO {table} (id, name, time) VALUES (%(id)s, %(name)s, %(time)s)"


def insert_statement(table: str) -> sql.Composed:
    # Quoted like the reset and schema statements so mixed-case names match.
    return sql.SQL(INSERT_SQL).format(table=sql.Identifier(table))


class DriverResult(TypedDict, total=False):
    """
    Metrics returned by a workload run.

    `committed` counts rows known to be committed; `attempts` counts every
    insert the driver issued, including failed ones.
    """

    mode: str
    committed: int
    attempts: int
    failures: int
    statement_errors: int
    duration_seconds: float
    throughput_rows_per_sec: float
    peak_rss_bytes: Optional[int]
    cpu_percent: Optional[float]
    last_id: Optional[str]
    error: Optional[str]
    notes: Optional[str]


@dataclass
class DriverState:
    """
    Mutable counters threaded through every attempt.

    `position` is the 1-based number of the record being written; it only
    advances after a commit, so retries reuse it.
    """

    position: int = 1
    committed: int = 0
    attempts: int = 0
    failures: int = 0
    statement_errors: int = 0
    last_id: Optional[str] = None
    last_count: int = 0


@dataclass
class RunControl:
    """
    Stop conditions for a run.

    All fields default to "never stop": no cancellation, no deadline, no
    record cap. `deadline` is read against `clock`.
    """

    cancel: threading.Event = field(default_factory=threading.Event)
    deadline: Optional[float] = None
    max_records: Optional[int] = None
    clock: Callable[[], float] = time.monotonic

    @classmethod
    def for_duration(
        cls,
        seconds: Optional[float],
        max_records: Optional[int] = None,
        cancel: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> "RunControl":
        deadline = clock() + seconds if seconds else None
        return cls(
            cancel=cancel or threading.Event(),
            deadline=deadline,
            max_records=max_records,
            clock=clock,
        )

    @property
    def cancelled(self) -> bool:
        return self.cancel.is_set()

    def expired(self) -> bool:
        return self.deadline is not None and self.clock() >= self.deadline

    def should_stop(self, done: int) -> bool:
        if self.cancelled or self.expired():
            return True
        return self.max_records is not None and done >= self.max_records


@runtime_checkable
class WorkloadDriver(Protocol):
    """
    Common interface all workload modes implement.

    Attributes
    ----------
    name : str
        Mode name as accepted on the command line.
    description : str
        A human-friendly summary of the load shape.
    """

    name: str
    description: str

    def run(self, store: StoreHandle, control: Optional[RunControl] = None) -> DriverResult:
        """
        Drive load against `store` until `control` says to stop.

        Transient failures are handled inside the driver and never raised.
        """
        ...


__all__ = [
    "DriverResult",
    "DriverState",
    "INSERT_SQL",
    "RunControl",
    "WorkloadDriver",
    "insert_statement",
]
