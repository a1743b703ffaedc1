# tests/conftest.py
"""
Shared fakes and fixtures.
"""

from typing import Dict, List, Optional

import pytest

from uiauto_adaptive.config import TimeConfig
from uiauto_adaptive.exceptions import ElementNotFoundError, StaleElementError
from uiauto_adaptive.interfaces import IHandle, ILocatorResolver
from uiauto_adaptive.locator import Locator, as_locator
from uiauto_adaptive.timinglogger import TIMING_LOGGER


class FakeHandle(IHandle):
    """In-memory element. Every probe raises StaleElementError once `alive` is False."""

    def __init__(
        self,
        name: str = "element",
        text: str = "",
        displayed: bool = True,
        enabled: bool = True,
        attributes: Optional[Dict[str, str]] = None,
    ):
        self.name = name
        self.text = text
        self.displayed = displayed
        self.enabled = enabled
        self.attributes = dict(attributes or {})
        self.alive = True
        self.clicks = 0
        self.typed: List[str] = []

    def _check(self) -> None:
        if not self.alive:
            raise StaleElementError(self.name)

    def is_displayed(self) -> bool:
        self._check()
        return self.displayed

    def is_enabled(self) -> bool:
        self._check()
        return self.enabled

    def get_text(self) -> str:
        self._check()
        return self.text

    def get_attribute(self, name: str) -> Optional[str]:
        self._check()
        return self.attributes.get(name)

    def click(self) -> None:
        self._check()
        self.clicks += 1

    def clear(self) -> None:
        self._check()
        self.text = ""

    def send_keys(self, text: str) -> None:
        self._check()
        self.typed.append(text)
        self.text += text

    def __repr__(self) -> str:
        return f"FakeHandle({self.name!r})"


class FakeFinder(ILocatorResolver):
    """
    Backend lookup over a dict of locator -> handles.

    `appear_after=n` makes the first n lookups of that locator fail.
    """

    def __init__(self):
        self.elements: Dict[Locator, List[FakeHandle]] = {}
        self.pending: Dict[Locator, int] = {}
        self.calls: List[Locator] = []

    def add(self, locator, *handles: FakeHandle, appear_after: int = 0) -> None:
        loc = as_locator(locator)
        self.elements[loc] = list(handles)
        if appear_after:
            self.pending[loc] = appear_after

    def remove(self, locator) -> None:
        self.elements.pop(as_locator(locator), None)

    def _current(self, locator: Locator) -> List[FakeHandle]:
        self.calls.append(locator)
        remaining = self.pending.get(locator, 0)
        if remaining > 0:
            self.pending[locator] = remaining - 1
            return []
        return list(self.elements.get(locator, []))

    def resolve(self, locator):
        loc = as_locator(locator)
        found = self._current(loc)
        if not found:
            raise ElementNotFoundError(loc.describe())
        return found[0]

    def resolve_all(self, locator):
        return self._current(as_locator(locator))


@pytest.fixture(autouse=True)
def reset_state():
    TimeConfig.reset_to_defaults()
    TIMING_LOGGER.disable()
    TIMING_LOGGER.clear_hooks()
    yield
    TimeConfig.reset_to_defaults()
    TIMING_LOGGER.disable()
    TIMING_LOGGER.clear_hooks()


@pytest.fixture
def fast_config():
    """Short deadlines for resolver/page tests."""
    short = {"timeout": 0.3, "interval": 0.02}
    with TimeConfig.override(
        resolve_element=short,
        element_wait=short,
        disappear_wait=short,
        wait_for_any=short,
        basic_wait=short,
    ) as cfg:
        yield cfg


@pytest.fixture
def finder():
    return FakeFinder()


@pytest.fixture
def events():
    """Collects every timing event emitted during the test."""
    received = []
    TIMING_LOGGER.add_hook(received.append)
    return received
