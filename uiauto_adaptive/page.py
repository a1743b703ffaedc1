# uiauto_adaptive/page.py
"""
@file page.py
@brief Declared elements and generic lookup/wait helpers over a Resolver.

A page is a list of ElementSpec records plus generic operations that take an
element name. Nothing is generated per element: `page.find("login")` replaces
what would otherwise be a `login` accessor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import (Any, Callable, Dict, Iterable, List, Optional, Sequence,
                    Union)

from . import conditions as cond
from . import retry as retry_ops
from . import smart_wait
from .exceptions import (ConfigurationError, ElementNotFoundError,
                         TimeoutError, UIAutoError)
from .locator import Locator, as_locator
from .resolver import Resolver
from .smart_wait import AnyConditionMatch

log = logging.getLogger("uiauto_adaptive.page")

ElementRef = Union[str, Locator, tuple]


@dataclass(frozen=True)
class ElementSpec:
    """One declared element: a logical name bound to a locator."""
    name: str
    strategy: str
    value: Any
    options: Dict[str, Any] = field(default_factory=dict)
    description: str = ""

    @property
    def locator(self) -> Locator:
        return Locator(self.strategy, self.value, dict(self.options))


class Page:
    """
    Element helpers for one screen.

    Subclasses may declare `elements` as a class attribute; more specs can be
    passed to the constructor. Every helper accepts a declared element name
    or a raw locator.
    """

    elements: Sequence[ElementSpec] = ()

    def __init__(self, resolver: Resolver, elements: Optional[Iterable[ElementSpec]] = None):
        self.resolver = resolver
        self._specs: Dict[str, ElementSpec] = {}
        for spec in list(type(self).elements) + list(elements or []):
            self._specs[spec.name] = spec

    # --- Declarations ---

    def declare(self, spec: ElementSpec) -> None:
        self._specs[spec.name] = spec

    def spec(self, name: str) -> ElementSpec:
        try:
            return self._specs[name]
        except KeyError:
            raise ConfigurationError("element", name, "element is not declared on this page") from None

    @property
    def element_names(self) -> List[str]:
        return sorted(self._specs)

    def locator(self, element: ElementRef) -> Locator:
        if isinstance(element, str):
            return self.spec(element).locator
        return as_locator(element)

    def _name(self, element: ElementRef) -> str:
        return element if isinstance(element, str) else self.locator(element).describe()

    # --- Lookup ---

    def find(self, element: ElementRef, timeout: Optional[float] = None) -> Any:
        return self.resolver.resolve(self.locator(element), timeout=timeout)

    def find_all(self, element: ElementRef) -> List[Any]:
        return self.resolver.resolve_all(self.locator(element))

    def has(self, element: ElementRef, timeout: float = 0) -> bool:
        return self.resolver.exists(self.locator(element), timeout=timeout)

    def has_no(self, element: ElementRef, timeout: Optional[float] = None) -> bool:
        """True once the element is gone; False if it is still there at the deadline."""
        try:
            return self.resolver.wait_for_element_gone(self.locator(element), timeout=timeout)
        except TimeoutError:
            return False

    # --- Interaction helpers ---

    def tap_and_wait(
        self,
        element: ElementRef,
        wait_for: Optional[ElementRef] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Tap an element, then optionally wait for another one to become visible.

        @return The `wait_for` handle if given, else the tapped handle
        """
        handle = self.find(element, timeout=timeout)
        handle.click()
        if wait_for is None:
            return handle
        return self._wait(timeout).for_element(self.locator(wait_for), cond.visible())

    def wait_and_tap(self, element: ElementRef, timeout: Optional[float] = None) -> Any:
        handle = self.wait_for_clickable(element, timeout=timeout)
        handle.click()
        return handle

    def get_attribute_with_fallback(
        self,
        element: ElementRef,
        attribute: str,
        fallback: Any = None,
    ) -> Any:
        """Attribute value, or `fallback` when missing or unreadable."""
        try:
            value = self.find(element).get_attribute(attribute)
        except Exception as e:
            log.warning("Failed to get attribute %s for %s: %s", attribute, self._name(element), e)
            return fallback
        return fallback if value is None else value

    def element_contains_text(self, element: ElementRef, text: str) -> bool:
        try:
            actual = self.get_text_with_retry(element)
        except UIAutoError:
            return False
        return text in (actual or "")

    # --- Waits ---

    def _wait(self, timeout: Optional[float] = None, interval: Optional[float] = None) -> smart_wait.ConditionalWait:
        return self.resolver.conditional_wait(timeout=timeout, interval=interval)

    def _timeout(self, timeout: Optional[float]) -> float:
        return timeout if timeout is not None else self.resolver.context.time_config.element_wait.timeout

    def wait_for_clickable(self, element: ElementRef, timeout: Optional[float] = None) -> Any:
        return smart_wait.until_clickable(
            self.resolver.fresh_lookup(), self.locator(element), timeout=self._timeout(timeout)
        )

    def wait_for_text_match(
        self,
        element: ElementRef,
        text: str,
        exact: bool = False,
        timeout: Optional[float] = None,
    ) -> Any:
        return smart_wait.until_text_matches(
            self.resolver.fresh_lookup(), self.locator(element), text,
            exact=exact, timeout=self._timeout(timeout),
        )

    def wait_for_invisible(self, element: ElementRef, timeout: Optional[float] = None) -> Any:
        return smart_wait.until_invisible(
            self.resolver.fresh_lookup(), self.locator(element), timeout=self._timeout(timeout)
        )

    def wait_for_count(self, element: ElementRef, count: int, timeout: Optional[float] = None) -> List[Any]:
        return smart_wait.until_count_equals(
            self.resolver.fresh_lookup(), self.locator(element), count, timeout=self._timeout(timeout)
        )

    def wait_for_condition(
        self,
        element: ElementRef,
        condition: Callable[[Any], Any],
        description: str = "custom condition",
        timeout: Optional[float] = None,
    ) -> Any:
        return smart_wait.until_condition(
            self.resolver.fresh_lookup(), self.locator(element), condition,
            description=description, timeout=self._timeout(timeout),
        )

    def wait_for_any(self, *elements: ElementRef, timeout: Optional[float] = None) -> AnyConditionMatch:
        """First of `elements` to be visible; raises ElementNotFoundError listing all of them."""
        settings = self.resolver.context.time_config.wait_for_any
        wait = self._wait(
            timeout=timeout if timeout is not None else settings.timeout,
            interval=settings.interval,
        )
        return wait.for_any_condition(*[(self.locator(e), cond.visible()) for e in elements])

    def wait_for_disappear(self, element: ElementRef, timeout: Optional[float] = None) -> bool:
        return self.resolver.wait_for_element_gone(self.locator(element), timeout=timeout)

    def wait_for_text_in_element(
        self,
        element: ElementRef,
        expected_text: str,
        timeout: Optional[float] = None,
    ) -> bool:
        """Poll the element's text (re-resolving each time) until it contains `expected_text`."""
        locator = self.locator(element)
        lookup = self.resolver.fresh_lookup()

        def contains() -> bool:
            try:
                return expected_text in (lookup.resolve(locator).get_text() or "")
            except ElementNotFoundError:
                return False

        return self._wait(timeout).wait_until(
            contains, description=f"text '{expected_text}' in {self._name(element)}"
        )

    # --- Retried operations ---

    def _fetch(self, element: ElementRef) -> Callable[[], Any]:
        locator = self.locator(element)
        resolver = self.resolver

        def fetch() -> Any:
            return resolver.resolve(locator)
        return fetch

    def find_with_retry(self, element: ElementRef, **options: Any) -> Any:
        return retry_ops.find_with_retry(self._fetch(element), self._name(element), **options)

    def interact_with_retry(
        self,
        element: ElementRef,
        action: Union[str, Callable[[Any], Any]] = "tap",
        text: Optional[str] = None,
        **options: Any,
    ) -> Any:
        return retry_ops.interact_with_retry(
            self._invalidating(element), action, self._name(element), text=text, **options
        )

    def get_text_with_retry(
        self,
        element: ElementRef,
        validate: Optional[Callable[[str], bool]] = None,
        **options: Any,
    ) -> str:
        return retry_ops.get_text_with_retry(
            self._invalidating(element), self._name(element), validate=validate, **options
        )

    def wait_for_state_with_retry(self, element: ElementRef, state: str = "displayed", **options: Any) -> Any:
        return retry_ops.wait_for_state_with_retry(
            self._fetch(element), self._name(element), state=state, **options
        )

    def _invalidating(self, element: ElementRef) -> Callable[[], Any]:
        """
        Fetch that drops the cached handle before every retry after the first,
        so an interaction failing on a stale handle re-resolves it.
        """
        locator = self.locator(element)
        resolver = self.resolver
        calls = {"n": 0}

        def fetch() -> Any:
            calls["n"] += 1
            if calls["n"] > 1:
                resolver.invalidate(locator)
            return resolver.resolve(locator)
        return fetch
