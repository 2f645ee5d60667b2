"""
Domain models for the txnload harness.

Defines the row written by the workload drivers together with the two small
services that fill it in: a random identifier generator and a clock pinned to
a fixed civil timezone. The model mirrors the target table
`(id, name, time)`.
"""
from __future__ import annotations

import re
import uuid
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, model_validator

from txnload.errors import SetupError

_OFFSET_RE = re.compile(r"^(?P<sign>[+-])(?P<hours>\d{2}):?(?P<minutes>\d{2})$")


def new_record_id() -> str:
    """Return a random (version 4) UUID in canonical text form."""
    return str(uuid.uuid4())


def load_timezone(name: str) -> tzinfo:
    """
    Resolve an IANA zone name (e.g. "Asia/Tokyo") or a fixed offset
    ("+09:00", "-0330", "UTC") to a tzinfo.

    Raises
    ------
    SetupError
        If the zone cannot be loaded.
    """
    if name.upper() in ("UTC", "Z"):
        return timezone.utc
    match = _OFFSET_RE.match(name)
    if match:
        delta = timedelta(hours=int(match["hours"]), minutes=int(match["minutes"]))
        if delta >= timedelta(hours=24):
            raise SetupError(f"timezone offset out of range: {name!r}")
        return timezone(-delta if match["sign"] == "-" else delta)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise SetupError(f"cannot load timezone {name!r}: {exc}") from exc


def format_rfc3339(moment: datetime) -> str:
    """Format an aware datetime as RFC 3339 with second precision."""
    text = moment.isoformat(timespec="seconds")
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


class LocalClock:
    """
    Wall clock rendered in one fixed civil timezone.

    `now_fn` exists so tests can pin time; it must return an aware datetime.
    """

    def __init__(
        self,
        tz: tzinfo | str = "Asia/Tokyo",
        now_fn: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.tz = load_timezone(tz) if isinstance(tz, str) else tz
        self._now_fn = now_fn or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        return self._now_fn().astimezone(self.tz)

    def now_rfc3339(self) -> str:
        return format_rfc3339(self.now())


class Record(BaseModel):
    """
    Representation of a single row in the target table.

    `name` duplicates `id`; the table keeps both columns.
    """

    id: str = Field(..., description="Primary key (canonical UUID text).")
    name: str = Field(..., description="Same value as id.")
    time: str = Field(..., description="RFC 3339 timestamp of the attempt.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "arbitrary_types_allowed": False,
    }

    @model_validator(mode="after")
    def _name_matches_id(self) -> "Record":
        if self.name != self.id:
            raise ValueError("name must equal id")
        return self

    def as_params(self) -> Dict[str, Any]:
        """Bind parameters for the insert statement."""
        return {"id": self.id, "name": self.name, "time": self.time}


class RecordFactory:
    """
    Builds a fresh Record on every call.

    Called from inside a transaction body, so a retried attempt always gets a
    new identifier and a new timestamp.
    """

    def __init__(
        self,
        clock: LocalClock,
        id_fn: Callable[[], str] = new_record_id,
    ) -> None:
        self.clock = clock
        self._id_fn = id_fn

    def __call__(self) -> Record:
        record_id = self._id_fn()
        return Record(id=record_id, name=record_id, time=self.clock.now_rfc3339())


__all__ = [
    "LocalClock",
    "Record",
    "RecordFactory",
    "format_rfc3339",
    "load_timezone",
    "new_record_id",
]
