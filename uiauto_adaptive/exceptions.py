# uiauto_adaptive/exceptions.py
"""
@file exceptions.py
@brief Exception classes for element resolution, waits and retries.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class UIAutoError(Exception):
    """Base exception for the framework."""

    def __init__(self, message: str = "", context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context: Dict[str, Any] = context or {}

    def detailed_message(self) -> str:
        parts = [str(self)]
        if self.context:
            parts.append(f"Context: {self.context}")
        return "\n".join(parts)


class ConfigurationError(UIAutoError):
    """Raised for invalid caller input: unknown state names, bad retry or timing values."""

    def __init__(self, setting: str, value: Any = None, reason: Optional[str] = None):
        self.setting = setting
        self.value = value
        self.reason = reason
        message = f"Invalid configuration for '{setting}'"
        if value is not None:
            message += f" (value: {value})"
        if reason:
            message += f": {reason}"
        super().__init__(message, {"setting": setting, "value": value, "reason": reason})


class TimeoutError(UIAutoError):
    """
    Raised when a condition never became true (or stable) within its deadline.

    Attributes:
        original_exception: Last exception captured while polling, if any
        description: Human-readable description of what was being waited for
        timeout: The timeout value in seconds
        attempt_count: Number of evaluations made
        elapsed_time: Actual elapsed time in seconds
        stage: Optional phase tag (resolve, precondition, execute)
    """

    def __init__(self, message: str = "Operation timed out"):
        super().__init__(message)
        self.original_exception: Optional[BaseException] = None
        self.description: Optional[str] = None
        self.timeout: Optional[float] = None
        self.attempt_count: Optional[int] = None
        self.elapsed_time: Optional[float] = None
        self.stage: Optional[str] = None

    def __str__(self) -> str:
        base_msg = super().__str__()

        details = []
        if self.original_exception is not None:
            details.append(f"Original exception: {type(self.original_exception).__name__}")
        if self.attempt_count is not None:
            details.append(f"Attempts: {self.attempt_count}")
        if self.elapsed_time is not None:
            details.append(f"Elapsed: {self.elapsed_time:.2f}s")
        if self.stage is not None:
            details.append(f"Stage: {self.stage}")

        if details:
            return f"{base_msg} [{', '.join(details)}]"
        return base_msg

    def get_root_cause(self) -> Optional[BaseException]:
        """
        Get the root cause exception by traversing the chain.

        @return The deepest original_exception in the chain, or None
        """
        current = self.original_exception
        while current is not None:
            nested = getattr(current, "original_exception", None)
            if nested is None:
                return current
            current = nested
        return None

    def get_traceback_str(self) -> str:
        """Formatted traceback of the original exception, or empty string."""
        if self.original_exception is None:
            return ""
        return "".join(traceback.format_exception(
            type(self.original_exception),
            self.original_exception,
            self.original_exception.__traceback__
        ))


class WaitError(TimeoutError):
    """Raised by the basic wait when its predicate stayed falsy until the deadline."""

    def __init__(self, condition: str, timeout: float):
        super().__init__(f"Wait condition '{condition}' not met within {timeout}s")
        self.condition = condition
        self.description = condition
        self.timeout = timeout
        self.context = {"condition": condition, "timeout": timeout}


@dataclass
class LocatorAttempt:
    """Records a single resolution attempt for debugging."""
    locator: str
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class ElementNotFoundError(UIAutoError):
    """
    Raised when a locator resolves to nothing within the deadline.

    Carries the locator description plus every recorded attempt so the
    failure report shows what was tried.
    """

    def __init__(
        self,
        selector: Optional[str] = None,
        timeout: Optional[float] = None,
        attempts: Optional[List[LocatorAttempt]] = None,
        last_error: Optional[str] = None,
    ):
        self.selector = selector
        self.timeout = timeout
        self.attempts = attempts or []
        self.last_error = last_error
        message = "Element not found"
        if selector:
            message += f" with selector: {selector}"
        if timeout is not None:
            message += f" within {timeout}s"
        super().__init__(message, {"selector": selector, "timeout": timeout})

    def __str__(self) -> str:
        lines = [super().__str__()]
        if self.last_error:
            lines.append(f"Last error: {self.last_error}")
        if self.attempts:
            lines.append("Attempts:")
            for i, a in enumerate(self.attempts, start=1):
                lines.append(f"  {i}. {a.locator} err={a.error}")
        return "\n".join(lines)


class ElementStateError(UIAutoError):
    """Raised when a handle resolved but is not in the expected state."""

    def __init__(self, element_name: str, expected: str, actual: Optional[str] = None):
        self.element_name = element_name
        self.expected = expected
        self.actual = actual
        message = f"Element '{element_name}' expected to be {expected}"
        if actual is not None:
            message += f" but was {actual}"
        super().__init__(message, {"element": element_name, "expected": expected, "actual": actual})


class StaleElementError(UIAutoError):
    """Raised when a handle is no longer attached to the UI tree."""

    def __init__(self, element_name: str, message: Optional[str] = None):
        self.element_name = element_name
        msg = f"Element '{element_name}' is stale (no longer attached to the UI tree)"
        if message:
            msg += f": {message}"
        super().__init__(msg)
