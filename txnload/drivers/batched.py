"""
Batched workload: many inserts inside one transaction (mode "once").

A single outer transaction loops up to `batch_size` times. Statement errors
are either skipped (continue_on_error) or abort the batch. If the outer
transaction fails, the batch is reported as failed and not retried.
"""

from __future__ import annotations

import time
from typing import Optional

from txnload.domain.models import RecordFactory
from txnload.drivers.abstract import DriverResult, DriverState, RunControl, insert_statement
from txnload.infrastructure.store import StoreHandle, TransactionContext
from txnload.utils.logging import get_logger

log = get_logger(__name__)


class BatchedDriver:
    """
    One very large transaction.

    With `continue_on_error=True` each insert runs in its own savepoint so a
    failed statement costs one row, not the whole batch.
    """

    name: str = "once"
    description: str = "Single read-write transaction containing the whole batch."

    def __init__(
        self,
        table: str,
        records: RecordFactory,
        batch_size: int = 10_000_000,
        log_every: int = 10_000,
        continue_on_error: bool = True,
    ) -> None:
        self.table = table
        self.records = records
        self.batch_size = batch_size
        self.log_every = log_every
        self.continue_on_error = continue_on_error
        self.statement = insert_statement(table)

    def _fill(self, txn: TransactionContext, state: DriverState, control: RunControl) -> int:
        """Transaction body; returns rows inserted. May be re-run by the store."""
        state.attempts = 0
        state.statement_errors = 0
        inserted = 0
        for i in range(1, self.batch_size + 1):
            if control.should_stop(inserted):
                log.warning("Batch stopped early at %d", i - 1, extra={"inserted": inserted})
                break
            record = self.records()
            state.last_id = record.id
            state.attempts += 1
            try:
                state.last_count = txn.execute(
                    self.statement, record.as_params(), savepoint=self.continue_on_error
                )
                inserted += state.last_count
            except Exception as exc:  # noqa: BLE001 - per-statement errors are skipped by policy
                if not self.continue_on_error:
                    raise
                state.statement_errors += 1
                log.warning("Insert %d failed: %s", i, exc, extra={"position": i})
            if i % self.log_every == 0:
                log.info(
                    "%d %s %d",
                    i,
                    state.last_id,
                    state.last_count,
                    extra={"position": i, "last_id": state.last_id, "affected": state.last_count},
                )
        return inserted

    def run(self, store: StoreHandle, control: Optional[RunControl] = None) -> DriverResult:
        control = control or RunControl()
        state = DriverState()
        error: Optional[str] = None
        committed = 0
        log.info(
            "Batched load started",
            extra={"table": self.table, "batch_size": self.batch_size},
        )

        start = time.perf_counter()
        try:
            committed = store.run_transaction(lambda txn: self._fill(txn, state, control))
        except Exception as exc:  # noqa: BLE001 - a failed batch is reported, not retried
            log.error("Batch transaction failed: %s", exc, extra={"attempts": state.attempts})
            error = str(exc)
            state.failures = 1
        duration = time.perf_counter() - start

        state.committed = committed
        return DriverResult(
            mode=self.name,
            committed=committed,
            attempts=state.attempts,
            failures=state.failures,
            statement_errors=state.statement_errors,
            duration_seconds=duration,
            throughput_rows_per_sec=committed / duration if duration > 0 else 0.0,
            last_id=state.last_id,
            error=error,
            notes=(
                f"batch_size={self.batch_size} continue_on_error={self.continue_on_error}"
            ),
        )


__all__ = ["BatchedDriver"]
