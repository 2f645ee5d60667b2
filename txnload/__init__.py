"""
txnload - transactional insert load generator for distributed SQL databases.

Drives sustained write load against a PostgreSQL wire-compatible database in
one of two shapes:

- Per-record mode ("each"): one read-write transaction per inserted row,
  retried at the same position until it commits
- Batched mode ("once"): a single transaction containing up to millions of
  inserts

plus a one-shot reset that deletes every row of the target table.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from txnload.config import Settings, get_settings
from txnload.domain.models import LocalClock, Record, RecordFactory
from txnload.drivers import (
    BatchedDriver,
    DriverResult,
    PerRecordDriver,
    ResetOperation,
    RetryPolicy,
    RunControl,
    WorkloadDriver,
)
from txnload.errors import RetryBudgetExhausted, SetupError, StoreClosedError, TxnLoadError
from txnload.infrastructure.store import PostgresStore, StoreHandle
from txnload.orchestrator import RunConfig, RunOutcome, available_modes, run
from txnload.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "LocalClock",
    "Record",
    "RecordFactory",
    # Drivers
    "BatchedDriver",
    "DriverResult",
    "PerRecordDriver",
    "ResetOperation",
    "RetryPolicy",
    "RunControl",
    "WorkloadDriver",
    # Store
    "PostgresStore",
    "StoreHandle",
    # Orchestration
    "RunConfig",
    "RunOutcome",
    "available_modes",
    "run",
    # Errors
    "RetryBudgetExhausted",
    "SetupError",
    "StoreClosedError",
    "TxnLoadError",
    # Logging
    "configure_logging",
    "get_logger",
]
