# uiauto_adaptive/__init__.py
"""Adaptive element resolution: handle cache, condition polling and retries."""

from .cache import ElementCache
from .config import TimeConfig, load_config
from .exceptions import (ConfigurationError, ElementNotFoundError,
                         ElementStateError, StaleElementError, TimeoutError,
                         UIAutoError, WaitError)
from .interfaces import IHandle, ILocatorResolver
from .locator import Locator
from .page import ElementSpec, Page
from .resolver import ResolutionContext, Resolver
from .retry import RetryConfig, with_retry
from .session import Session
from .smart_wait import ConditionalWait, Success, TimedOut
from .timinglogger import TIMING_LOGGER
from .waits import Wait, wait_for

__version__ = "1.0.0"

__all__ = [
    "ElementCache",
    "TimeConfig",
    "load_config",
    "UIAutoError",
    "ConfigurationError",
    "ElementNotFoundError",
    "ElementStateError",
    "StaleElementError",
    "TimeoutError",
    "WaitError",
    "IHandle",
    "ILocatorResolver",
    "Locator",
    "ElementSpec",
    "Page",
    "ResolutionContext",
    "Resolver",
    "RetryConfig",
    "with_retry",
    "Session",
    "ConditionalWait",
    "Success",
    "TimedOut",
    "TIMING_LOGGER",
    "Wait",
    "wait_for",
]
