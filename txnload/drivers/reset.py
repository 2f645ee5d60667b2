"""
Reset operation: delete every row of the target table, once.

Runs outside any retry loop and consumes the store handle: the handle is
closed afterwards whether the delete succeeded or not.
"""

from __future__ import annotations

from typing import Optional

from rich.console import Console

from txnload.infrastructure.store import StoreHandle
from txnload.utils.logging import get_logger

log = get_logger(__name__)


class ResetOperation:
    name: str = "delete-all"
    description: str = "Unconditional delete of every row in the target table."

    def __init__(self, table: str, console: Optional[Console] = None) -> None:
        self.table = table
        self.console = console or Console(stderr=True)

    def run(self, store: StoreHandle) -> int:
        """
        Delete all rows and close `store`. Returns the number of rows deleted.

        Errors from the store propagate unchanged.
        """
        try:
            with self.console.status(f"Deleting all rows from {self.table}...", spinner="dots"):
                deleted = store.delete_all(self.table)
        finally:
            store.close()
        log.info("Deleted %d rows from %s", deleted, self.table, extra={"deleted": deleted})
        return deleted


__all__ = ["ResetOperation"]
