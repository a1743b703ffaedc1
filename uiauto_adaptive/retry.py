# uiauto_adaptive/retry.py
"""
@file retry.py
@brief Bounded-attempt executor with exponential backoff and exception filtering.

`with_retry` is the single primitive. The derived operations below bind it to
a handle lookup (`fetch`) and an operation-specific set of retriable errors;
the page layer supplies `fetch` for a named element.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type, TypeVar, Union

from . import conditions as cond
from .config import TimeConfig, validate_retry_values
from .exceptions import (ConfigurationError, ElementNotFoundError,
                         ElementStateError, StaleElementError, TimeoutError)
from .timinglogger import TIMING_LOGGER
from .waits import _emit, _now

log = logging.getLogger("uiauto_adaptive.retry")

T = TypeVar("T")

RetryPredicate = Callable[[BaseException, int], bool]
RetryCallback = Callable[[BaseException, int, float], None]

DEFAULT_RETRY_ON: Tuple[Type[BaseException], ...] = (Exception,)

RETRY_ON_BY_OPERATION = {
    "find": (ElementNotFoundError, StaleElementError, TimeoutError),
    "interact": (Exception,),
    "text": (Exception,),
    "state": (ElementNotFoundError, StaleElementError, ElementStateError),
}

STATES = ("displayed", "enabled", "not_displayed")


@dataclass
class RetryConfig:
    """
    Attempt budget, backoff curve and filters for one with_retry call.

    retry_on: exception classes worth another attempt
    retry_if: optional veto predicate(error, attempt) evaluated after retry_on
    on_retry: optional callback(error, attempt, delay) fired before each sleep
    """
    max_attempts: int = 3
    base_delay: float = 0.5
    backoff_multiplier: float = 1.5
    max_delay: float = 30.0
    retry_on: Tuple[Type[BaseException], ...] = DEFAULT_RETRY_ON
    retry_if: Optional[RetryPredicate] = None
    on_retry: Optional[RetryCallback] = None

    def __post_init__(self) -> None:
        validate_retry_values(
            self.max_attempts, self.base_delay, self.backoff_multiplier, self.max_delay
        )
        if isinstance(self.retry_on, type):
            self.retry_on = (self.retry_on,)
        else:
            self.retry_on = tuple(self.retry_on)
        if not self.retry_on:
            raise ConfigurationError("retry_on", self.retry_on, "at least one exception class is required")

    def delay_for(self, attempt: int) -> float:
        """Delay slept after failed attempt number `attempt` (1-based)."""
        return min(self.base_delay * self.backoff_multiplier ** (attempt - 1), self.max_delay)

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        if not isinstance(error, self.retry_on):
            return False
        if self.retry_if is not None and not self.retry_if(error, attempt):
            return False
        return True


def with_retry(
    action: Callable[[], T],
    config: Optional[RetryConfig] = None,
    description: str = "operation",
    stage: Optional[str] = None,
) -> T:
    """
    Invoke `action` until it succeeds or the attempt budget is spent.
    Positional order is (action, config); `with_retry(config=cfg, action=fn)`
    gives the (config, action) reading.

    A non-retriable exception (wrong class, or vetoed by retry_if) propagates
    after that single attempt. When attempts run out, the last exception
    propagates unchanged.

    @param action Zero-argument callable to execute
    @param config Retry parameters (RetryConfig() defaults if None)
    @param description Human-readable label for timing events
    @param stage Optional phase tag for timing events
    @return Whatever `action` returned on the first successful attempt
    """
    config = config or RetryConfig()
    start = _now()
    attempt = 1

    _emit(
        "retry_start", description,
        max_attempts=config.max_attempts, base_delay_s=config.base_delay, stage=stage,
    )

    while True:
        if TIMING_LOGGER.should_log_retry_attempt(attempt):
            _emit("retry_attempt", description, attempt=attempt, stage=stage)
        try:
            result = action()
        except Exception as e:
            if not config.should_retry(e, attempt) or attempt >= config.max_attempts:
                _emit(
                    "retry_failed", description, "error",
                    attempts=attempt, elapsed_s=round(_now() - start, 3),
                    error=type(e).__name__, stage=stage,
                )
                raise

            delay = config.delay_for(attempt)
            if config.on_retry is not None:
                config.on_retry(e, attempt, delay)
            _emit("retry_wait", description, attempt=attempt, sleep_s=round(delay, 3), stage=stage)
            time.sleep(delay)
            attempt += 1
            continue

        _emit(
            "retry_success", description, "success",
            attempts=attempt, elapsed_s=round(_now() - start, 3), stage=stage,
        )
        return result


def _warn_on_retry(config: RetryConfig, description: str) -> RetryCallback:
    def on_retry(error: BaseException, attempt: int, delay: float) -> None:
        log.warning(
            "Retry attempt %d/%d for %s: %s (delay: %ss)",
            attempt, config.max_attempts, description, error, delay,
        )
    return on_retry


def build_retry_config(
    operation: str = "find",
    *,
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    backoff_multiplier: Optional[float] = None,
    max_delay: Optional[float] = None,
    retry_on: Optional[Union[Type[BaseException], Tuple[Type[BaseException], ...]]] = None,
    retry_if: Optional[RetryPredicate] = None,
    on_retry: Optional[RetryCallback] = None,
    description: Optional[str] = None,
) -> RetryConfig:
    """
    RetryConfig for a named operation: TimeConfig values, then explicit options.

    Without an explicit `on_retry`, each retry is logged as a warning.
    """
    settings = TimeConfig.current().get_retry_settings(operation).with_overrides(
        max_attempts=max_attempts,
        base_delay=base_delay,
        backoff_multiplier=backoff_multiplier,
        max_delay=max_delay,
    )
    kind = operation if operation in RETRY_ON_BY_OPERATION else "find"
    config = RetryConfig(
        max_attempts=settings.max_attempts,
        base_delay=settings.base_delay,
        backoff_multiplier=settings.backoff_multiplier,
        max_delay=settings.max_delay,
        retry_on=retry_on if retry_on is not None else RETRY_ON_BY_OPERATION[kind],
        retry_if=retry_if,
        on_retry=on_retry,
    )
    if config.on_retry is None:
        config.on_retry = _warn_on_retry(config, description or operation)
    return config


# --- Derived operations ---

def find_with_retry(
    fetch: Callable[[], T],
    element_name: str = "element",
    config: Optional[RetryConfig] = None,
    **options: Any,
) -> T:
    """Retry a handle lookup on not-found, stale and timeout errors."""
    config = config or build_retry_config("find", description=element_name, **options)
    return with_retry(fetch, config, description=f"find {element_name}", stage="resolve")


def _perform(handle: Any, action: Union[str, Callable[[Any], Any]], text: Optional[str]) -> None:
    if callable(action):
        action(handle)
    elif action in ("tap", "click"):
        handle.click()
    elif action == "clear":
        handle.clear()
    elif action == "send_keys":
        handle.send_keys(text or "")
    else:
        method = getattr(handle, action, None)
        if not callable(method):
            raise ConfigurationError("action", action, "handle has no such method")
        method()


def interact_with_retry(
    fetch: Callable[[], Any],
    action: Union[str, Callable[[Any], Any]] = "tap",
    element_name: str = "element",
    text: Optional[str] = None,
    config: Optional[RetryConfig] = None,
    **options: Any,
) -> Any:
    """
    Resolve a handle and perform `action` on it, retrying the pair on failure.

    @param action "tap"/"click", "clear", "send_keys" (uses `text`), any other
                  handle method name, or a callable taking the handle
    @return The handle the action succeeded on
    """
    config = config or build_retry_config("interact", description=element_name, **options)
    label = action if isinstance(action, str) else getattr(action, "__name__", "action")

    def attempt() -> Any:
        handle = fetch()
        _perform(handle, action, text)
        return handle

    return with_retry(attempt, config, description=f"{label} {element_name}", stage="execute")


def get_text_with_retry(
    fetch: Callable[[], Any],
    element_name: str = "element",
    validate: Optional[Callable[[str], bool]] = None,
    config: Optional[RetryConfig] = None,
    **options: Any,
) -> str:
    """
    Read a handle's text; a text rejected by `validate` counts as a failed attempt.

    @throws ElementStateError when validation still fails on the last attempt
    """
    config = config or build_retry_config("text", description=element_name, **options)

    def attempt() -> str:
        text = fetch().get_text()
        if validate is not None and not validate(text):
            raise ElementStateError(element_name, "valid text", text)
        return text

    return with_retry(attempt, config, description=f"get text {element_name}", stage="execute")


def wait_for_state_with_retry(
    fetch: Callable[[], Any],
    element_name: str = "element",
    state: str = "displayed",
    config: Optional[RetryConfig] = None,
    **options: Any,
) -> Any:
    """
    Retry until the handle is in `state` ("displayed", "enabled" or "not_displayed").

    @throws ConfigurationError immediately for any other state name
    """
    if state not in STATES:
        raise ConfigurationError("element_state", state, "Unknown state")
    config = config or build_retry_config("state", description=element_name, **options)

    def attempt() -> Any:
        handle = fetch()
        if state == "displayed" and not cond.element_visible(handle)():
            raise ElementStateError(element_name, "displayed", "not displayed")
        if state == "enabled" and not cond.element_enabled(handle)():
            raise ElementStateError(element_name, "enabled", "disabled")
        if state == "not_displayed" and not cond.element_invisible(handle)():
            raise ElementStateError(element_name, "not displayed", "displayed")
        return handle

    return with_retry(attempt, config, description=f"{state} {element_name}", stage="precondition")
