# uiauto_adaptive/session.py
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, Optional, Type, TypeVar

from .cache import ElementCache
from .config import TimeConfig
from .exceptions import ConfigurationError
from .interfaces import ILocatorResolver
from .page import ElementSpec, Page
from .resolver import ResolutionContext, Resolver

P = TypeVar("P", bound=Page)


class Session:
    """
    Owns one resolution context (finder + cache) and hands out pages bound to it.

    Library code receives a Session or Resolver explicitly. `install()` and
    `default()` exist for application entrypoints and test fixtures only.
    """

    _default: Optional["Session"] = None
    _lock = threading.Lock()

    def __init__(
        self,
        finder: ILocatorResolver,
        config: Optional[TimeConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.log = logger or logging.getLogger("uiauto_adaptive")
        self.context = ResolutionContext.build(finder, config)
        self.resolver = Resolver(self.context)

    @property
    def cache(self) -> ElementCache:
        return self.context.cache

    def page(self, page_cls: Type[P] = Page, elements: Optional[Iterable[ElementSpec]] = None) -> P:  # type: ignore[assignment]
        return page_cls(self.resolver, elements)

    def statistics(self) -> Dict[str, Any]:
        return self.context.cache.statistics()

    def close(self) -> None:
        """Drop every cached handle; the handles themselves are left alone."""
        stats = self.context.cache.statistics()
        self.context.cache.clear()
        self.log.info(
            "Session closed (cache hits=%s misses=%s hit_rate=%s%%)",
            stats["hits"], stats["misses"], stats["hit_rate"],
        )

    def install(self) -> "Session":
        """Make this session the process default."""
        with Session._lock:
            Session._default = self
        return self

    @classmethod
    def default(cls) -> "Session":
        if cls._default is None:
            raise ConfigurationError("session", None, "no default session installed; call Session.install() first")
        return cls._default

    @classmethod
    def uninstall(cls) -> None:
        with cls._lock:
            cls._default = None
