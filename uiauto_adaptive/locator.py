# uiauto_adaptive/locator.py
"""
@file locator.py
@brief Locator descriptions and their cache fingerprints.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

# Filter options applied by the resolver after the backend lookup.
FILTER_KEYS = {"text", "visible"}


def _canonical(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _canonical(v) for k, v in sorted(value.items(), key=lambda kv: str(kv[0]))}
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    pattern = getattr(value, "pattern", None)
    if isinstance(pattern, str):
        return {"__regex__": pattern, "flags": getattr(value, "flags", 0)}
    return repr(value)


def fingerprint(strategy: str, value: Any, options: Optional[Dict[str, Any]] = None) -> str:
    """
    Deterministic digest of a locator.

    Equal logical locators (same strategy, value and options regardless of
    option ordering) always produce the same key.
    """
    payload = json.dumps(
        [str(strategy), _canonical(value), _canonical(options or {})],
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.md5(payload.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class Locator:
    """
    How to find an element: a backend strategy, its value, and extra options.

    `text` and `visible` options are filters evaluated by the resolver over
    the backend's matches; any other option is passed through untouched.
    """
    strategy: str
    value: Any
    options: Dict[str, Any] = field(default_factory=dict)

    def __hash__(self) -> int:
        return hash(self.key)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Locator):
            return NotImplemented
        return self.key == other.key

    @property
    def key(self) -> str:
        """Fingerprint used as cache key."""
        return fingerprint(self.strategy, self.value, self.options)

    @property
    def text(self) -> Optional[Any]:
        return self.options.get("text")

    @property
    def visible(self) -> Optional[bool]:
        return self.options.get("visible")

    @property
    def has_filters(self) -> bool:
        return any(k in self.options for k in FILTER_KEYS)

    def without_filters(self) -> Locator:
        """Same locator with resolver-side filters stripped."""
        rest = {k: v for k, v in self.options.items() if k not in FILTER_KEYS}
        return Locator(self.strategy, self.value, rest)

    def describe(self) -> str:
        parts = [f"{self.strategy}={self.value!r}"]
        for k, v in sorted(self.options.items()):
            parts.append(f"{k}={v!r}")
        return ", ".join(parts)

    def __str__(self) -> str:
        return self.describe()


LocatorLike = Union[Locator, Tuple[Any, ...]]


def as_locator(spec: LocatorLike) -> Locator:
    """
    Coerce a Locator or a (strategy, value[, options]) tuple into a Locator.
    """
    if isinstance(spec, Locator):
        return spec
    if isinstance(spec, (tuple, list)):
        if len(spec) == 2:
            return Locator(spec[0], spec[1])
        if len(spec) == 3 and isinstance(spec[2], dict):
            return Locator(spec[0], spec[1], dict(spec[2]))
    raise TypeError(f"Cannot build a Locator from {spec!r}")
