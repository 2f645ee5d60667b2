"""
Exception hierarchy for the txnload harness.

Transient errors are absorbed by the workload drivers; everything else
propagates to the CLI boundary.
"""

from __future__ import annotations


class TxnLoadError(Exception):
    """Base class for harness errors."""


class SetupError(TxnLoadError):
    """Configuration or store construction failed before any work started."""


class StoreClosedError(TxnLoadError):
    """An operation was issued against a store handle that is already closed."""


class RetryBudgetExhausted(TxnLoadError):
    """A bounded retry policy gave up on a transaction."""

    def __init__(self, position: int, attempts: int, last_error: BaseException) -> None:
        super().__init__(
            f"transaction #{position} failed after {attempts} attempts: {last_error}"
        )
        self.position = position
        self.attempts = attempts
        self.last_error = last_error


__all__ = ["TxnLoadError", "SetupError", "StoreClosedError", "RetryBudgetExhausted"]
