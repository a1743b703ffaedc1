# uiauto_adaptive/resolver.py
"""
@file resolver.py
@brief Resolution entrypoint: cache lookup, then a deadline-bounded backend lookup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from . import conditions as cond
from .cache import ElementCache
from .config import TimeConfig
from .exceptions import ElementNotFoundError, LocatorAttempt
from .interfaces import ILocatorResolver
from .locator import Locator, LocatorLike, as_locator
from .smart_wait import ConditionalWait, Success

log = logging.getLogger("uiauto_adaptive.resolver")


@dataclass
class ResolutionContext:
    """
    Everything one resolver needs, built once and passed in explicitly.

    finder: backend lookup (raises ElementNotFoundError when nothing matches)
    cache: handle cache shared by every resolver built on this context
    config: fixed TimeConfig snapshot, or None to follow TimeConfig.current()
    """
    finder: ILocatorResolver
    cache: ElementCache = field(default_factory=ElementCache)
    cache_enabled: bool = True
    config: Optional[TimeConfig] = None

    @classmethod
    def build(cls, finder: ILocatorResolver, config: Optional[TimeConfig] = None) -> ResolutionContext:
        """Context whose cache is sized from the config's cache settings."""
        settings = (config or TimeConfig.current()).cache
        return cls(
            finder=finder,
            cache=ElementCache.from_settings(settings),
            cache_enabled=settings.enabled,
            config=config,
        )

    @property
    def time_config(self) -> TimeConfig:
        return self.config or TimeConfig.current()


def _passes_filters(handle: Any, locator: Locator) -> bool:
    if locator.visible is not None:
        try:
            if bool(handle.is_displayed()) != bool(locator.visible):
                return False
        except Exception:
            return False
    if locator.text is not None:
        if not cond.text_present(handle, locator.text)():
            return False
    return True


class _FreshLookup(ILocatorResolver):
    """Single uncached lookup per call; ConditionalWait supplies the polling."""

    def __init__(self, resolver: Resolver):
        self._resolver = resolver

    def resolve(self, locator: Locator) -> Any:
        return self._resolver.resolve(locator, timeout=0, use_cache=False)

    def resolve_all(self, locator: Locator) -> List[Any]:
        return self._resolver.resolve_all(locator)


class Resolver(ILocatorResolver):
    """
    Resolves locators to handles through the context's cache and finder.

    Locators carrying `text=`/`visible=` options are looked up with the
    backend's resolve_all and filtered here; the first passing match wins.
    """

    def __init__(self, context: ResolutionContext):
        self.context = context

    @property
    def cache(self) -> ElementCache:
        return self.context.cache

    @property
    def timeout(self) -> float:
        return self.context.time_config.resolve_element.timeout

    @property
    def interval(self) -> float:
        return self.context.time_config.resolve_element.interval

    def _matches(self, locator: Locator) -> List[Any]:
        finder = self.context.finder
        if not locator.has_filters:
            return [finder.resolve(locator)]
        candidates = finder.resolve_all(locator.without_filters())
        return [h for h in candidates if _passes_filters(h, locator)]

    def _lookup(self, locator: Locator, timeout: float) -> Any:
        def attempt() -> Optional[tuple]:
            found = self._matches(locator)
            return (found[0],) if found else None

        outcome = ConditionalWait(timeout=timeout, interval=self.interval).poll_until(attempt)
        if isinstance(outcome, Success):
            return outcome.value[0]

        last_error = None
        if outcome.last_error is not None:
            last_error = f"{type(outcome.last_error).__name__}: {outcome.last_error}"
        raise ElementNotFoundError(
            locator.describe(),
            timeout,
            attempts=[LocatorAttempt(
                locator=locator.describe(),
                error=last_error,
                metadata={"polls": outcome.attempts},
            )],
            last_error=last_error,
        )

    def resolve(
        self,
        locator: LocatorLike,
        timeout: Optional[float] = None,
        use_cache: bool = True,
    ) -> Any:
        """
        Resolve one handle.

        @param locator Locator or (strategy, value[, options]) tuple
        @param timeout Lookup deadline (config resolve_element if None)
        @param use_cache Consult and fill the cache (ignored when caching is disabled)
        @return Handle
        @throws ElementNotFoundError if nothing matched within the deadline
        """
        loc = as_locator(locator)
        effective_timeout = self.timeout if timeout is None else float(timeout)

        if use_cache and self.context.cache_enabled:
            return self.cache.get_or_find(loc, lambda: self._lookup(loc, effective_timeout))
        return self._lookup(loc, effective_timeout)

    def resolve_all(self, locator: LocatorLike) -> List[Any]:
        """Every current match, filtered; never cached and never waited for."""
        loc = as_locator(locator)
        finder = self.context.finder
        if not loc.has_filters:
            return list(finder.resolve_all(loc))
        return [h for h in finder.resolve_all(loc.without_filters()) if _passes_filters(h, loc)]

    def exists(self, locator: LocatorLike, timeout: float = 0) -> bool:
        try:
            self.resolve(locator, timeout=timeout)
            return True
        except ElementNotFoundError:
            return False

    def wait_for_element_gone(self, locator: LocatorLike, timeout: Optional[float] = None) -> bool:
        """
        Wait until the locator no longer matches anything.

        The cached handle for the locator is dropped first so a stale entry
        cannot keep the element "present".
        """
        loc = as_locator(locator)
        self.cache.invalidate(loc)
        settings = self.context.time_config.disappear_wait

        def present() -> bool:
            try:
                return bool(self._matches(loc))
            except ElementNotFoundError:
                return False

        wait = ConditionalWait(
            timeout=timeout if timeout is not None else settings.timeout,
            interval=settings.interval,
        )
        return wait.wait_while(present, description=f"{loc.describe()} present")

    def invalidate(self, locator: LocatorLike) -> bool:
        return self.cache.invalidate(as_locator(locator))

    def clear_cache(self) -> None:
        self.cache.clear()

    def enable_cache(self, enabled: bool = True) -> None:
        """Enable or disable caching for every resolver sharing this context."""
        self.context.cache_enabled = enabled
        if not enabled:
            self.cache.clear()
        log.debug("Element cache %s", "enabled" if enabled else "disabled")

    def fresh_lookup(self) -> ILocatorResolver:
        """View of this resolver that does one uncached lookup per call."""
        return _FreshLookup(self)

    def conditional_wait(
        self,
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
        condition: Any = None,
        description: Optional[str] = None,
    ) -> ConditionalWait:
        """ConditionalWait bound to this resolver, for for_element/for_any_condition."""
        settings = self.context.time_config.element_wait
        return ConditionalWait(
            self.fresh_lookup(),
            timeout=timeout if timeout is not None else settings.timeout,
            interval=interval if interval is not None else settings.interval,
            condition=condition,
            description=description,
        )
