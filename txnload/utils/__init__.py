"""
Utilities package for the txnload harness.

Exports shared helpers for logging and profiling. Keep this package
lightweight and free of domain-specific logic.
"""

from txnload.utils.logging import configure_logging, get_logger
from txnload.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
