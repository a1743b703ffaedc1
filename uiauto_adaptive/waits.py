# uiauto_adaptive/waits.py
"""
@file waits.py
@brief Basic polling wait and the clock/logging helpers shared by waits and retries.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Optional, TypeVar

from .config import TimeConfig
from .exceptions import TimeoutError, WaitError
from .timinglogger import TIMING_LOGGER

T = TypeVar("T")


def _now() -> float:
    """Monotonic time source for deterministic timeout calculations."""
    return time.monotonic()


def _emit(
    event: str,
    description: Optional[str],
    status: str = "info",
    **metadata: Any,
) -> None:
    if TIMING_LOGGER.is_enabled():
        TIMING_LOGGER.log(event=event, description=description, status=status, metadata=metadata)


def _set_timeout_metadata(
    error: TimeoutError,
    *,
    description: str,
    timeout: float,
    attempt_count: int,
    elapsed: float,
    stage: Optional[str] = None,
    original_exception: Optional[BaseException] = None,
) -> TimeoutError:
    error.description = description
    error.timeout = timeout
    error.attempt_count = attempt_count
    error.elapsed_time = elapsed
    error.stage = stage
    error.original_exception = original_exception
    return error


def _sleep_within(interval: float, start: float, timeout: float) -> None:
    """Sleep for `interval`, but never past the deadline."""
    time_left = timeout - (_now() - start)
    sleep_time = min(interval, time_left)
    if sleep_time > 0:
        time.sleep(sleep_time)


class Wait:
    """
    Minimal polling wait for boolean existence/enablement checks.

    No backoff and no stability window. On timeout the last exception the
    predicate raised is re-raised as-is; if it never raised, WaitError.
    """

    def __init__(self, timeout: Optional[float] = None, interval: Optional[float] = None):
        """
        @param timeout Seconds to wait before timing out (config default if None)
        @param interval Seconds to sleep between polls (config default if None)
        """
        settings = TimeConfig.current().basic_wait
        self.timeout = float(timeout) if timeout is not None else settings.timeout
        self.interval = float(interval) if interval is not None else settings.interval

    def until(self, predicate: Callable[[], T], description: str = "condition") -> T:
        """
        Poll `predicate` until it returns a truthy value and return that value.

        @throws The predicate's last exception, or WaitError if it only returned falsy
        """
        start = _now()
        attempts = 0
        last_exception: Optional[Exception] = None

        _emit("wait_start", description, timeout_s=self.timeout, interval_s=self.interval)

        while True:
            attempts += 1
            try:
                result = predicate()
                if result:
                    _emit(
                        "wait_success", description, "success",
                        attempts=attempts, elapsed_s=round(_now() - start, 3),
                    )
                    return result
            except Exception as e:
                last_exception = e

            if _now() - start >= self.timeout:
                break
            _sleep_within(self.interval, start, self.timeout)

        elapsed = _now() - start
        _emit(
            "wait_timeout", description, "error",
            timeout_s=self.timeout, attempts=attempts, elapsed_s=round(elapsed, 3),
        )

        if last_exception is not None:
            raise last_exception

        error = WaitError(description, self.timeout)
        _set_timeout_metadata(
            error,
            description=description,
            timeout=self.timeout,
            attempt_count=attempts,
            elapsed=elapsed,
        )
        raise error


def wait_for(
    predicate: Callable[[], T],
    timeout: Optional[float] = None,
    interval: Optional[float] = None,
    description: str = "condition",
) -> T:
    """Functional shortcut for Wait(timeout, interval).until(predicate)."""
    return Wait(timeout=timeout, interval=interval).until(predicate, description=description)
