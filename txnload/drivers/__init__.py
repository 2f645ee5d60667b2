"""
Drivers package for the txnload harness.

Re-exports the driver contracts, the two workload modes, the retry policy and
the reset operation so callers can import from `txnload.drivers` directly.
"""

from txnload.drivers.abstract import (
    DriverResult,
    DriverState,
    RunControl,
    WorkloadDriver,
    insert_statement,
)
from txnload.drivers.batched import BatchedDriver
from txnload.drivers.per_record import PerRecordDriver
from txnload.drivers.reset import ResetOperation
from txnload.drivers.retry import RetryPolicy

__all__ = [
    # Contracts
    "DriverResult",
    "DriverState",
    "RunControl",
    "WorkloadDriver",
    "insert_statement",
    # Modes
    "BatchedDriver",
    "PerRecordDriver",
    # Operations and policies
    "ResetOperation",
    "RetryPolicy",
]
