"""
Orchestrator: wires settings, store and driver for one process invocation.

Exactly one operation runs per invocation: either the reset (delete-all) or
one workload mode. Usage:

    from txnload.config import get_settings
    from txnload.orchestrator import RunConfig, run

    outcome = run(RunConfig(settings=get_settings(), mode="each"))
    print(outcome.result)
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional

from rich.console import Console

from txnload.config import Settings
from txnload.domain.models import LocalClock, RecordFactory
from txnload.drivers.abstract import DriverResult, RunControl, WorkloadDriver
from txnload.drivers.batched import BatchedDriver
from txnload.drivers.per_record import PerRecordDriver
from txnload.drivers.reset import ResetOperation
from txnload.drivers.retry import RetryPolicy
from txnload.infrastructure.store import PostgresStore, StoreHandle
from txnload.utils.logging import get_logger
from txnload.utils.profiler import ProfileStats, profile_block

log = get_logger(__name__)

DEFAULT_MODE = "each"

StoreFactory = Callable[[Settings], StoreHandle]
DriverFactory = Callable[[Settings, RecordFactory], WorkloadDriver]


@dataclass
class RunConfig:
    """
    What to run. `mode=None` falls back to `settings.mode`.
    """

    settings: Settings
    mode: Optional[str] = None
    delete_all: bool = False
    cancel: Optional[threading.Event] = None


@dataclass
class RunOutcome:
    deleted: Optional[int] = None
    result: Optional[DriverResult] = None


def _driver_factories() -> Dict[str, DriverFactory]:
    """Registry of available workload modes."""
    return {
        "each": lambda settings, records: PerRecordDriver(
            settings.table_name,
            records,
            retry_policy=RetryPolicy.from_settings(settings),
            log_every=settings.log_every,
        ),
        "once": lambda settings, records: BatchedDriver(
            settings.table_name,
            records,
            batch_size=settings.batch_size,
            log_every=settings.log_every,
            continue_on_error=settings.continue_on_error,
        ),
    }


def available_modes() -> List[str]:
    """List available mode names."""
    return sorted(_driver_factories().keys())


def resolve_mode(name: Optional[str]) -> str:
    """Map a mode name to a registered mode; unknown names fall back to "each"."""
    if name in _driver_factories():
        return name
    if name:
        log.warning("Unknown mode %r; falling back to %r", name, DEFAULT_MODE)
    return DEFAULT_MODE


def _timestamp() -> str:
    return datetime.now().astimezone().isoformat()


def _merge_result(result: DriverResult, stats: ProfileStats) -> DriverResult:
    merged = DriverResult(**result)
    merged["duration_seconds"] = round(result.get("duration_seconds", stats.duration_seconds), 2)
    merged["throughput_rows_per_sec"] = round(result.get("throughput_rows_per_sec", 0.0), 2)
    merged["peak_rss_bytes"] = stats.peak_rss_bytes
    merged["cpu_percent"] = round(stats.cpu_percent, 1) if stats.cpu_percent is not None else None
    return merged


def run_reset(settings: Settings, store: StoreHandle, console: Optional[Console] = None) -> int:
    deleted = ResetOperation(settings.table_name, console=console).run(store)
    log.info("All records deleted", extra={"deleted": deleted})
    return deleted


def run_workload(
    settings: Settings,
    store: StoreHandle,
    mode: Optional[str] = None,
    cancel: Optional[threading.Event] = None,
    clock: Optional[LocalClock] = None,
) -> DriverResult:
    """
    Run one workload mode to completion and close the store.

    Completion means whatever RunControl allows; with default settings the
    per-record mode never returns on its own.
    """
    try:
        name = resolve_mode(mode)
        records = RecordFactory(clock or LocalClock(settings.timezone))
        driver = _driver_factories()[name](settings, records)
        control = RunControl.for_duration(settings.run_seconds, settings.max_records, cancel)

        log.info(f"[MODE] {name}: {driver.description}", extra={"mode": name})
        with profile_block(name) as stats:
            result = driver.run(store, control)
    finally:
        store.close()
        log.info("End %s", _timestamp())
    return _merge_result(result, stats)


def run(
    config: RunConfig,
    store_factory: StoreFactory = PostgresStore.from_settings,
    console: Optional[Console] = None,
) -> RunOutcome:
    """
    Run the reset operation or one workload mode, never both.

    Raises
    ------
    SetupError
        If the timezone cannot be loaded or the store cannot be built.
    """
    settings = config.settings
    log.info("Start %s", _timestamp())

    # Setup failures abort before anything touches the database.
    clock = LocalClock(settings.timezone)
    store = store_factory(settings)

    if config.delete_all:
        return RunOutcome(deleted=run_reset(settings, store, console=console))

    result = run_workload(
        settings,
        store,
        mode=config.mode or settings.mode,
        cancel=config.cancel,
        clock=clock,
    )
    return RunOutcome(result=result)


__all__ = [
    "DEFAULT_MODE",
    "RunConfig",
    "RunOutcome",
    "available_modes",
    "resolve_mode",
    "run",
    "run_reset",
    "run_workload",
]
