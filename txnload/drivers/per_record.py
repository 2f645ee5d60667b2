"""
Per-record workload: one transaction per inserted row (mode "each").

Every transaction inserts a single freshly built Record. A failed transaction
is retried at the same position according to the RetryPolicy; with the
default policy that means immediately and forever. The loop itself has no
exit condition other than what RunControl provides.
"""

from __future__ import annotations

import time
from typing import Optional

from tenacity import RetryCallState, RetryError

from txnload.domain.models import RecordFactory
from txnload.drivers.abstract import DriverResult, DriverState, RunControl, insert_statement
from txnload.drivers.retry import RetryPolicy
from txnload.errors import RetryBudgetExhausted
from txnload.infrastructure.store import StoreHandle, TransactionContext
from txnload.utils.logging import get_logger

log = get_logger(__name__)


class PerRecordDriver:
    """
    Sustained load of small transactions.

    The success counter only moves after a commit; failed attempts are logged
    and counted in `failures` but never consume a position.
    """

    name: str = "each"
    description: str = "One read-write transaction per record, retried until it commits."

    def __init__(
        self,
        table: str,
        records: RecordFactory,
        retry_policy: Optional[RetryPolicy] = None,
        log_every: int = 10_000,
    ) -> None:
        self.table = table
        self.records = records
        self.retry_policy = retry_policy or RetryPolicy()
        self.log_every = log_every
        self.statement = insert_statement(table)

    def _attempt(self, txn: TransactionContext, state: DriverState) -> int:
        """Transaction body: build a new record and insert it."""
        record = self.records()
        state.last_id = record.id
        return txn.execute(self.statement, record.as_params())

    def _run_once(self, store: StoreHandle, state: DriverState) -> int:
        state.attempts += 1
        return store.run_transaction(lambda txn: self._attempt(txn, state))

    def _failure_logger(self, state: DriverState):
        def _after(retry_state: RetryCallState) -> None:
            state.failures += 1
            log.error(
                "Transaction #%d failed (attempt %d): %s",
                state.position,
                retry_state.attempt_number,
                retry_state.outcome.exception(),
                extra={"position": state.position, "attempt": retry_state.attempt_number},
            )

        return _after

    def commit_one(
        self, store: StoreHandle, state: DriverState, control: RunControl
    ) -> Optional[int]:
        """
        Commit the record at `state.position`, retrying per policy.

        Returns the affected-row count, or None if the run was cancelled or
        hit its deadline while retrying.

        Raises
        ------
        RetryBudgetExhausted
            If a bounded policy gives up.
        """
        retrying = self.retry_policy.build(
            after=self._failure_logger(state),
            cancel=control.cancel,
            expired=control.expired,
        )
        try:
            count = retrying(self._run_once, store, state)
        except RetryError as exc:
            if control.cancelled or control.expired():
                return None
            last = exc.last_attempt
            raise RetryBudgetExhausted(
                state.position, last.attempt_number, last.exception()
            ) from last.exception()

        state.last_count = count
        if state.position % self.log_every == 0:
            log.info(
                "%d %s %d",
                state.position,
                state.last_id,
                count,
                extra={"position": state.position, "last_id": state.last_id, "affected": count},
            )
        state.position += 1
        state.committed += 1
        return count

    def run(self, store: StoreHandle, control: Optional[RunControl] = None) -> DriverResult:
        control = control or RunControl()
        state = DriverState()
        error: Optional[str] = None
        log.info(
            "Per-record load started",
            extra={"table": self.table, "max_records": control.max_records},
        )

        start = time.perf_counter()
        while not control.should_stop(state.committed):
            try:
                if self.commit_one(store, state, control) is None:
                    break
            except RetryBudgetExhausted as exc:
                log.error("Giving up: %s", exc, extra={"position": exc.position})
                error = str(exc)
                break
        duration = time.perf_counter() - start

        return DriverResult(
            mode=self.name,
            committed=state.committed,
            attempts=state.attempts,
            failures=state.failures,
            statement_errors=0,
            duration_seconds=duration,
            throughput_rows_per_sec=state.committed / duration if duration > 0 else 0.0,
            last_id=state.last_id,
            error=error,
            notes="one transaction per record",
        )


__all__ = ["PerRecordDriver"]
