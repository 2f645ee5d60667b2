"""
Profiling helpers for workload runs.

`profile_block` wraps a run and records wall-clock duration, the process's
peak RSS (sampled on a background thread via psutil) and CPU percent.

Usage:
    from txnload.utils.profiler import profile_block

    with profile_block("each") as stats:
        driver.run(store, control)

    print(stats.duration_seconds, stats.peak_rss_bytes)
"""

from __future__ import annotations

import contextlib
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Generator, Optional

import psutil


@dataclass
class ProfileStats:
    label: str
    start_ts: float = field(default=0.0)
    end_ts: float = field(default=0.0)
    duration_seconds: float = field(default=0.0)
    peak_rss_bytes: Optional[int] = field(default=None)
    cpu_percent: Optional[float] = field(default=None)
    extra: dict[str, Any] = field(default_factory=dict)


@contextlib.contextmanager
def profile_block(label: str, sample_interval_ms: int = 200) -> Generator[ProfileStats, None, None]:
    """
    Profile the enclosed block.

    Load runs can last hours, so sampling is coarse by default; lower
    `sample_interval_ms` for short runs.
    """
    stats = ProfileStats(label=label)
    process = psutil.Process()
    peak_rss = process.memory_info().rss
    stop_sampling = threading.Event()

    def _sample() -> None:
        nonlocal peak_rss
        while not stop_sampling.wait(timeout=sample_interval_ms / 1000.0):
            try:
                peak_rss = max(peak_rss, process.memory_info().rss)
            except psutil.Error:
                return

    # First call primes psutil's CPU counters.
    process.cpu_percent(interval=None)
    sampler = threading.Thread(target=_sample, name=f"profile-{label}", daemon=True)
    sampler.start()

    stats.start_ts = time.perf_counter()
    try:
        yield stats
    finally:
        stats.end_ts = time.perf_counter()
        stats.duration_seconds = stats.end_ts - stats.start_ts
        stop_sampling.set()
        sampler.join(timeout=1.0)
        stats.peak_rss_bytes = max(peak_rss, process.memory_info().rss)
        stats.cpu_percent = process.cpu_percent(interval=None)


__all__ = ["ProfileStats", "profile_block"]
