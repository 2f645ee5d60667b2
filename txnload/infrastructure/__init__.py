"""
Infrastructure package for the txnload harness.

Centralizes database connectivity: DSN composition, connection acquisition
and the transactional store handle the drivers run against.
"""

from txnload.infrastructure.db_factory import build_dsn, get_sync_connection
from txnload.infrastructure.store import PostgresStore, StoreHandle, TransactionContext

__all__ = [
    "PostgresStore",
    "StoreHandle",
    "TransactionContext",
    "build_dsn",
    "get_sync_connection",
]
