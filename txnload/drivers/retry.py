"""
Retry policy for per-record transactions.

The default policy retries forever with no pause, which is what a sustained
load generator wants. Caps, exponential backoff and jitter are opt-in so tests
and bounded runs can limit execution.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_never,
    stop_when_event_set,
    wait_exponential,
    wait_none,
    wait_random,
)

from txnload.config import Settings


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: Optional[int] = None
    backoff_seconds: float = 0.0
    backoff_max_seconds: float = 10.0
    jitter_seconds: float = 0.0
    sleep: Callable[[float], None] = time.sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.retry_max_attempts,
            backoff_seconds=settings.retry_backoff_seconds,
            backoff_max_seconds=settings.retry_backoff_max_seconds,
            jitter_seconds=settings.retry_jitter_seconds,
        )

    @property
    def unbounded(self) -> bool:
        return self.max_attempts is None

    def _wait(self):
        wait = wait_none()
        if self.backoff_seconds > 0:
            wait = wait_exponential(multiplier=self.backoff_seconds, max=self.backoff_max_seconds)
        if self.jitter_seconds > 0:
            wait = wait + wait_random(0, self.jitter_seconds)
        return wait

    def build(
        self,
        after: Optional[Callable[[RetryCallState], None]] = None,
        cancel: Optional[threading.Event] = None,
        expired: Optional[Callable[[], bool]] = None,
    ) -> Retrying:
        """
        Return a tenacity Retrying configured for this policy.

        `after` is called after every failed attempt. Exhausting the policy,
        setting `cancel` or `expired()` turning true raises tenacity.RetryError.
        """
        stop = stop_never if self.unbounded else stop_after_attempt(self.max_attempts)
        if cancel is not None:
            stop = stop | stop_when_event_set(cancel)
        if expired is not None:
            stop = stop | (lambda retry_state: expired())
        hooks = {"after": after} if after is not None else {}
        return Retrying(
            stop=stop,
            wait=self._wait(),
            retry=retry_if_exception_type(Exception),
            sleep=self.sleep,
            reraise=False,
            **hooks,
        )


__all__ = ["RetryPolicy"]
