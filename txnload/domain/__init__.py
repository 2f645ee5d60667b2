"""
Domain package for the txnload harness.

Exports the row model and the identity/clock helpers used to build it.
Keep this package focused on data definitions and validation concerns.
"""

from txnload.domain.models import (
    LocalClock,
    Record,
    RecordFactory,
    format_rfc3339,
    load_timezone,
    new_record_id,
)

__all__ = [
    "LocalClock",
    "Record",
    "RecordFactory",
    "format_rfc3339",
    "load_timezone",
    "new_record_id",
]
