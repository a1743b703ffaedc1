# uiauto_adaptive/smart_wait.py
"""
@file smart_wait.py
@brief Deadline-bounded condition polling: single-shot, "while" and "stable-for" waits.

Every wait is an explicit loop carrying `last_error` and ending in a
`WaitOutcome` (Success or TimedOut). Exceptions raised by a condition never
abort the loop; what happens to them at the deadline is decided by one
explicit branch per public operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple, TypeVar, Union

from . import conditions as cond
from .config import TimeConfig
from .exceptions import (ConfigurationError, ElementNotFoundError,
                         LocatorAttempt, TimeoutError)
from .interfaces import ILocatorResolver
from .locator import Locator, LocatorLike, as_locator
from .waits import _emit, _now, _set_timeout_metadata, _sleep_within

T = TypeVar("T")


@dataclass(frozen=True)
class Success:
    """The condition produced a truthy value."""
    value: Any
    elapsed: float
    attempts: int


@dataclass(frozen=True)
class TimedOut:
    """The deadline passed; `last_error` is the last exception the condition raised."""
    elapsed: float
    attempts: int
    last_error: Optional[BaseException] = None


WaitOutcome = Union[Success, TimedOut]


@dataclass
class StabilityWindow:
    """Tracks how long a condition has been continuously true."""
    became_true_at: Optional[float] = None

    def observe(self, satisfied: bool, now: float) -> None:
        if not satisfied:
            self.became_true_at = None
        elif self.became_true_at is None:
            self.became_true_at = now

    def held_for(self, now: float) -> float:
        if self.became_true_at is None:
            return 0.0
        return now - self.became_true_at


@dataclass(frozen=True)
class AnyConditionMatch:
    """First (locator, condition) pair that was satisfied in for_any_condition."""
    index: int
    handle: Any
    locator: Locator


def _validate_timing(timeout: float, interval: float) -> None:
    if timeout < 0:
        raise ConfigurationError("timeout", timeout, "must be >= 0")
    if interval <= 0:
        raise ConfigurationError("interval", interval, "must be > 0")


def _next_interval(
    current: float,
    backoff_factor: Optional[float],
    max_interval: Optional[float],
) -> float:
    if not backoff_factor:
        return current
    grown = current * backoff_factor
    if max_interval is not None:
        return min(grown, max_interval)
    return grown


class ConditionalWait:
    """
    Polls conditions until they hold, with optional backoff and stability windows.

    The locator-based operations (for_element, for_elements, for_any_condition)
    re-resolve through the injected resolver on every tick.
    """

    def __init__(
        self,
        resolver: Optional[ILocatorResolver] = None,
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
        condition: Optional[Callable[..., Any]] = None,
        description: Optional[str] = None,
    ):
        """
        @param resolver Locator resolution capability (needed by for_* operations);
               a Resolver is swapped for its fresh_lookup() view
        @param timeout Default deadline in seconds (config element_wait if None)
        @param interval Default polling interval (config element_wait if None)
        @param condition Default handle condition for for_element/for_elements
        @param description Human-readable description of the default condition
        """
        settings = TimeConfig.current().element_wait
        # one backend lookup per tick, never a nested resolve deadline
        fresh_lookup = getattr(resolver, "fresh_lookup", None)
        self.resolver = fresh_lookup() if callable(fresh_lookup) else resolver
        self.timeout = float(timeout) if timeout is not None else settings.timeout
        self.interval = float(interval) if interval is not None else settings.interval
        self.condition = condition
        self.condition_description = description or (
            cond.describe(condition) if condition is not None else "custom condition"
        )
        _validate_timing(self.timeout, self.interval)

    # --- Core polling loop ---

    def poll_until(
        self,
        condition: Callable[[], T],
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
        backoff_factor: Optional[float] = None,
        max_interval: Optional[float] = None,
    ) -> WaitOutcome:
        """
        Evaluate `condition` until truthy or the deadline passes.

        Never raises because of the condition: exceptions are captured as
        `last_error`, which is kept until the end even if later evaluations
        return plain False.
        """
        timeout = self.timeout if timeout is None else float(timeout)
        current_interval = self.interval if interval is None else float(interval)
        _validate_timing(timeout, current_interval)
        if backoff_factor is not None and backoff_factor < 1:
            raise ConfigurationError("backoff_factor", backoff_factor, "must be >= 1")

        start = _now()
        attempts = 0
        last_error: Optional[BaseException] = None

        while True:
            attempts += 1
            try:
                value = condition()
                if value:
                    return Success(value=value, elapsed=_now() - start, attempts=attempts)
            except Exception as e:
                last_error = e

            elapsed = _now() - start
            if elapsed >= timeout:
                return TimedOut(elapsed=elapsed, attempts=attempts, last_error=last_error)

            _sleep_within(current_interval, start, timeout)
            current_interval = _next_interval(current_interval, backoff_factor, max_interval)

    def wait_until(
        self,
        condition: Callable[[], T],
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
        backoff_factor: Optional[float] = None,
        max_interval: Optional[float] = None,
        description: Optional[str] = None,
    ) -> T:
        """
        Return the first truthy value produced by `condition`.

        On timeout, an exception the condition raised at any point is
        re-raised unchanged; only if it never raised is a TimeoutError
        naming the condition raised instead.
        """
        description = description or cond.describe(condition)
        timeout = self.timeout if timeout is None else float(timeout)
        _emit("wait_start", description, timeout_s=timeout, backoff_factor=backoff_factor)

        outcome = self.poll_until(
            condition,
            timeout=timeout,
            interval=interval,
            backoff_factor=backoff_factor,
            max_interval=max_interval,
        )

        if isinstance(outcome, Success):
            _emit(
                "wait_success", description, "success",
                attempts=outcome.attempts, elapsed_s=round(outcome.elapsed, 3),
            )
            return outcome.value

        _emit(
            "wait_timeout", description, "error",
            attempts=outcome.attempts, elapsed_s=round(outcome.elapsed, 3),
            last_error=type(outcome.last_error).__name__ if outcome.last_error else None,
        )
        if outcome.last_error is not None:
            raise outcome.last_error

        error = TimeoutError(
            f"Condition '{description}' not met within {timeout}s "
            f"(elapsed {outcome.elapsed:.2f}s)"
        )
        raise _set_timeout_metadata(
            error,
            description=description,
            timeout=timeout,
            attempt_count=outcome.attempts,
            elapsed=outcome.elapsed,
        )

    def wait_until_with_backoff(
        self,
        condition: Callable[[], T],
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
        backoff_factor: float = 2.0,
        max_interval: float = 5.0,
    ) -> T:
        return self.wait_until(
            condition,
            timeout=timeout,
            interval=interval,
            backoff_factor=backoff_factor,
            max_interval=max_interval,
        )

    def wait_while(
        self,
        condition: Callable[[], Any],
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
        description: Optional[str] = None,
    ) -> bool:
        """
        Return True once `condition` first evaluates falsy.

        A raising evaluation is "not yet decided" and keeps polling.
        """
        description = description or cond.describe(condition)
        timeout = self.timeout if timeout is None else float(timeout)
        _emit("wait_start", f"while {description}", timeout_s=timeout)

        last_error: Optional[BaseException] = None

        def released() -> bool:
            nonlocal last_error
            try:
                return not condition()
            except Exception as e:
                last_error = e
                raise

        outcome = self.poll_until(released, timeout=timeout, interval=interval)
        if isinstance(outcome, Success):
            _emit(
                "wait_success", f"while {description}", "success",
                attempts=outcome.attempts, elapsed_s=round(outcome.elapsed, 3),
            )
            return True

        _emit(
            "wait_timeout", f"while {description}", "error",
            attempts=outcome.attempts, elapsed_s=round(outcome.elapsed, 3),
        )
        error = TimeoutError(f"Condition remained true for {timeout}s")
        raise _set_timeout_metadata(
            error,
            description=f"while {description}",
            timeout=timeout,
            attempt_count=outcome.attempts,
            elapsed=outcome.elapsed,
            original_exception=last_error,
        )

    def wait_for_stable_condition(
        self,
        condition: Callable[[], T],
        stable_duration: float = 1.0,
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
        description: Optional[str] = None,
    ) -> T:
        """
        Return once `condition` has held continuously for `stable_duration`.

        Any falsy or raising evaluation restarts the stability window.
        """
        if stable_duration < 0:
            raise ConfigurationError("stable_duration", stable_duration, "must be >= 0")
        description = description or cond.describe(condition)
        timeout = self.timeout if timeout is None else float(timeout)
        interval = self.interval if interval is None else float(interval)
        _validate_timing(timeout, interval)

        _emit(
            "wait_start", f"stable {description}",
            timeout_s=timeout, stable_duration_s=stable_duration,
        )

        window = StabilityWindow()
        start = _now()
        attempts = 0
        last_error: Optional[BaseException] = None

        while True:
            attempts += 1
            value: Any = None
            try:
                value = condition()
                window.observe(bool(value), _now())
            except Exception as e:
                last_error = e
                window.observe(False, _now())

            if window.became_true_at is not None and window.held_for(_now()) >= stable_duration:
                _emit(
                    "wait_success", f"stable {description}", "success",
                    attempts=attempts, elapsed_s=round(_now() - start, 3),
                )
                return value

            elapsed = _now() - start
            if elapsed >= timeout:
                break
            _sleep_within(interval, start, timeout)

        _emit(
            "wait_timeout", f"stable {description}", "error",
            attempts=attempts, elapsed_s=round(elapsed, 3),
        )
        error = TimeoutError(
            f"Condition did not remain stable for {stable_duration}s within {timeout}s"
        )
        raise _set_timeout_metadata(
            error,
            description=f"stable {description}",
            timeout=timeout,
            attempt_count=attempts,
            elapsed=elapsed,
            original_exception=last_error,
        )

    # --- Locator-driven waits ---

    def _require_resolver(self) -> ILocatorResolver:
        if self.resolver is None:
            raise ConfigurationError("resolver", None, "a locator resolver is required")
        return self.resolver

    def _require_condition(self, condition: Optional[Callable[..., Any]]) -> Callable[..., Any]:
        chosen = condition or self.condition
        if chosen is None:
            raise ConfigurationError("condition", None, "No condition provided")
        return chosen

    def _poll_resolved(
        self,
        locator: Locator,
        lookup: Callable[[Locator], Any],
        condition: Callable[[Any], Any],
        label: str,
    ) -> Any:
        def attempt() -> Optional[Tuple[Any]]:
            found = lookup(locator)
            return (found,) if condition(found) else None

        _emit("wait_start", label, timeout_s=self.timeout, locator=locator.describe())
        outcome = self.poll_until(attempt, timeout=self.timeout, interval=self.interval)

        if isinstance(outcome, Success):
            _emit(
                "wait_success", label, "success",
                attempts=outcome.attempts, elapsed_s=round(outcome.elapsed, 3),
            )
            return outcome.value[0]

        _emit(
            "wait_timeout", label, "error",
            attempts=outcome.attempts, elapsed_s=round(outcome.elapsed, 3),
        )
        last = outcome.last_error
        raise ElementNotFoundError(
            f"{locator.describe()} with condition: {label}",
            self.timeout,
            attempts=[LocatorAttempt(locator=locator.describe(), error=_format_error(last))],
            last_error=_format_error(last),
        )

    def for_element(
        self,
        locator: LocatorLike,
        condition: Optional[Callable[[Any], Any]] = None,
    ) -> Any:
        """
        Re-resolve `locator` every tick until `condition(handle)` holds.

        Resolution failures mid-poll count as "not yet".

        @throws ElementNotFoundError on timeout
        """
        resolver = self._require_resolver()
        chosen = self._require_condition(condition)
        label = cond.describe(chosen, self.condition_description) if condition else self.condition_description
        return self._poll_resolved(as_locator(locator), resolver.resolve, chosen, label)

    def for_elements(
        self,
        locator: LocatorLike,
        condition: Optional[Callable[[List[Any]], Any]] = None,
    ) -> List[Any]:
        """Collection analogue of for_element: `condition` receives the handle list."""
        resolver = self._require_resolver()
        chosen = self._require_condition(condition)
        label = cond.describe(chosen, self.condition_description) if condition else self.condition_description
        return self._poll_resolved(
            as_locator(locator), resolver.resolve_all, chosen, f"{label} (collection)"
        )

    def for_any_condition(
        self,
        *pairs: Tuple[LocatorLike, Callable[[Any], Any]],
    ) -> AnyConditionMatch:
        """
        Return the first (locator, condition) pair satisfied, checked in order each tick.

        A failure while resolving or evaluating one pair does not prevent the
        others from being evaluated on the same tick.

        @throws ElementNotFoundError listing every locator on timeout
        """
        if not pairs:
            raise ConfigurationError("conditions", None, "No conditions provided")
        resolver = self._require_resolver()
        prepared = [(as_locator(loc), check) for loc, check in pairs]
        errors: List[Optional[BaseException]] = [None] * len(prepared)

        def attempt() -> Optional[AnyConditionMatch]:
            for index, (locator, check) in enumerate(prepared):
                try:
                    handle = resolver.resolve(locator)
                    if check(handle):
                        return AnyConditionMatch(index=index, handle=handle, locator=locator)
                except Exception as e:
                    errors[index] = e
            return None

        label = f"any of {len(prepared)} conditions"
        _emit("wait_start", label, timeout_s=self.timeout)
        outcome = self.poll_until(attempt, timeout=self.timeout, interval=self.interval)

        if isinstance(outcome, Success):
            _emit(
                "wait_success", f"condition {outcome.value.index + 1}", "success",
                attempts=outcome.attempts, elapsed_s=round(outcome.elapsed, 3),
            )
            return outcome.value

        _emit(
            "wait_timeout", label, "error",
            attempts=outcome.attempts, elapsed_s=round(outcome.elapsed, 3),
        )
        descriptions = "; ".join(
            f"{i + 1}: {loc.describe()}" for i, (loc, _) in enumerate(prepared)
        )
        raise ElementNotFoundError(
            f"any of: {descriptions}",
            self.timeout,
            attempts=[
                LocatorAttempt(locator=loc.describe(), error=_format_error(err))
                for (loc, _), err in zip(prepared, errors)
            ],
        )


def _format_error(error: Optional[BaseException]) -> Optional[str]:
    if error is None:
        return None
    return f"{type(error).__name__}: {error}"


# --- Factory helpers: build a ConditionalWait for one common condition ---

def until_clickable(
    resolver: ILocatorResolver,
    locator: LocatorLike,
    timeout: Optional[float] = None,
) -> Any:
    wait = ConditionalWait(resolver, timeout=timeout, condition=cond.clickable(), description="clickable")
    return wait.for_element(locator)


def until_text_matches(
    resolver: ILocatorResolver,
    locator: LocatorLike,
    text: str,
    exact: bool = False,
    timeout: Optional[float] = None,
) -> Any:
    wait = ConditionalWait(
        resolver,
        timeout=timeout,
        condition=cond.text_matches(text, exact=exact),
        description=f"text {'equals' if exact else 'matches'} '{text}'",
    )
    return wait.for_element(locator)


def until_invisible(
    resolver: ILocatorResolver,
    locator: LocatorLike,
    timeout: Optional[float] = None,
) -> Any:
    wait = ConditionalWait(resolver, timeout=timeout, condition=cond.invisible(), description="invisible")
    return wait.for_element(locator)


def until_count_equals(
    resolver: ILocatorResolver,
    locator: LocatorLike,
    count: int,
    timeout: Optional[float] = None,
) -> List[Any]:
    wait = ConditionalWait(
        resolver,
        timeout=timeout,
        condition=cond.count_equals(count),
        description=f"count equals {count}",
    )
    return wait.for_elements(locator)


def until_condition(
    resolver: ILocatorResolver,
    locator: LocatorLike,
    condition: Callable[[Any], Any],
    description: str = "custom condition",
    timeout: Optional[float] = None,
) -> Any:
    wait = ConditionalWait(resolver, timeout=timeout, condition=condition, description=description)
    return wait.for_element(locator)


# --- Handle-level conveniences ---

def wait_until(
    condition: Callable[[], T],
    timeout: Optional[float] = None,
    backoff_factor: Optional[float] = None,
    max_interval: Optional[float] = None,
) -> T:
    wait = ConditionalWait(timeout=timeout)
    if backoff_factor and max_interval:
        return wait.wait_until_with_backoff(
            condition, backoff_factor=backoff_factor, max_interval=max_interval
        )
    return wait.wait_until(condition)


def wait_for_element_visible(handle: Any, timeout: Optional[float] = None) -> bool:
    return wait_until(cond.element_visible(handle), timeout=timeout)


def wait_for_element_clickable(handle: Any, timeout: Optional[float] = None) -> bool:
    return wait_until(cond.element_clickable(handle), timeout=timeout)


def wait_for_text_present(handle: Any, text: Any, timeout: Optional[float] = None) -> bool:
    return wait_until(cond.text_present(handle, text), timeout=timeout)


def wait_for_text_to_change(handle: Any, initial_text: str, timeout: Optional[float] = None) -> bool:
    return wait_until(cond.text_changed(handle, initial_text), timeout=timeout)


def wait_for_stable_element(
    handle: Any,
    timeout: Optional[float] = None,
    stable_duration: float = 1.0,
) -> bool:
    """Wait until the handle stays displayed and enabled for `stable_duration`."""
    settings = TimeConfig.current().stable_wait
    wait = ConditionalWait(
        timeout=timeout if timeout is not None else settings.timeout,
        interval=settings.interval,
    )
    return wait.wait_for_stable_condition(
        cond.element_clickable(handle), stable_duration=stable_duration
    )


__all__ = [
    "AnyConditionMatch",
    "ConditionalWait",
    "StabilityWindow",
    "Success",
    "TimedOut",
    "WaitOutcome",
    "until_clickable",
    "until_condition",
    "until_count_equals",
    "until_invisible",
    "until_text_matches",
    "wait_for_element_clickable",
    "wait_for_element_visible",
    "wait_for_stable_element",
    "wait_for_text_present",
    "wait_for_text_to_change",
    "wait_until",
]
