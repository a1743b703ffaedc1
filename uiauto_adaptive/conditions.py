# uiauto_adaptive/conditions.py
"""
@file conditions.py
@brief Condition factories and combinators for ConditionalWait.

Every factory returns a predicate that never raises: a probe failure on the
handle degrades to False. The one exception is `element_invisible`/`invisible`,
where a failing probe means the element is gone, which counts as invisible.
"""

from __future__ import annotations

from typing import Any, Callable, List, Pattern, Sequence, Union

Condition = Callable[[], Any]
HandleCondition = Callable[[Any], Any]


def _described(fn: Callable[..., Any], description: str) -> Callable[..., Any]:
    fn.description = description  # type: ignore[attr-defined]
    return fn


def describe(condition: Callable[..., Any], default: str = "custom condition") -> str:
    """Human-readable description attached by the factories, if any."""
    return getattr(condition, "description", None) or default


def _text_matches(actual: str, expected: Union[str, Pattern[str]]) -> bool:
    if hasattr(expected, "search"):
        return expected.search(actual or "") is not None
    return str(expected) in (actual or "")


# --- Zero-argument conditions bound to a handle ---

def element_visible(handle: Any) -> Condition:
    def condition() -> bool:
        try:
            return bool(handle.is_displayed())
        except Exception:
            return False
    return _described(condition, "element visible")


def element_enabled(handle: Any) -> Condition:
    def condition() -> bool:
        try:
            return bool(handle.is_enabled())
        except Exception:
            return False
    return _described(condition, "element enabled")


def element_clickable(handle: Any) -> Condition:
    def condition() -> bool:
        try:
            return bool(handle.is_displayed()) and bool(handle.is_enabled())
        except Exception:
            return False
    return _described(condition, "element clickable")


def element_invisible(handle: Any) -> Condition:
    def condition() -> bool:
        try:
            return not handle.is_displayed()
        except Exception:
            # gone counts as invisible
            return True
    return _described(condition, "element invisible")


def text_present(handle: Any, expected: Union[str, Pattern[str]]) -> Condition:
    """Literal substring or compiled regex searched in the handle's text."""
    def condition() -> bool:
        try:
            return _text_matches(handle.get_text(), expected)
        except Exception:
            return False
    shown = getattr(expected, "pattern", expected)
    return _described(condition, f"text present '{shown}'")


def text_changed(handle: Any, baseline: str) -> Condition:
    def condition() -> bool:
        try:
            return handle.get_text() != baseline
        except Exception:
            return False
    return _described(condition, f"text changed from '{baseline}'")


def attribute_contains(handle: Any, name: str, expected: Any) -> Condition:
    def condition() -> bool:
        try:
            return str(expected) in (handle.get_attribute(name) or "")
        except Exception:
            return False
    return _described(condition, f"attribute '{name}' contains '{expected}'")


def attribute_equals(handle: Any, name: str, expected: Any) -> Condition:
    def condition() -> bool:
        try:
            return handle.get_attribute(name) == expected
        except Exception:
            return False
    return _described(condition, f"attribute '{name}' equals '{expected}'")


def custom_condition(fn: Condition, description: str = "custom condition") -> Condition:
    return _described(fn, description)


# --- Combinators ---

def any_condition(conditions: Sequence[Condition]) -> Condition:
    """
    True as soon as one condition is true.

    A condition that raises counts as False for this evaluation and does not
    stop the remaining ones from being evaluated.
    """
    items: List[Condition] = list(conditions)

    def condition() -> bool:
        for item in items:
            try:
                if item():
                    return True
            except Exception:
                continue
        return False
    return _described(condition, "any of [" + ", ".join(describe(c) for c in items) + "]")


def all_conditions(conditions: Sequence[Condition]) -> Condition:
    """True only if every condition is true; a raising condition counts as False."""
    items: List[Condition] = list(conditions)

    def condition() -> bool:
        for item in items:
            try:
                if not item():
                    return False
            except Exception:
                return False
        return True
    return _described(condition, "all of [" + ", ".join(describe(c) for c in items) + "]")


# --- Conditions applied to a freshly resolved handle (for_element/for_elements) ---

def visible() -> HandleCondition:
    def condition(handle: Any) -> bool:
        try:
            return bool(handle.is_displayed())
        except Exception:
            return False
    return _described(condition, "visible")


def enabled() -> HandleCondition:
    def condition(handle: Any) -> bool:
        try:
            return bool(handle.is_enabled())
        except Exception:
            return False
    return _described(condition, "enabled")


def clickable() -> HandleCondition:
    def condition(handle: Any) -> bool:
        if handle is None:
            return False
        try:
            return bool(handle.is_displayed()) and bool(handle.is_enabled())
        except Exception:
            return False
    return _described(condition, "clickable")


def invisible() -> HandleCondition:
    def condition(handle: Any) -> bool:
        try:
            return not handle.is_displayed()
        except Exception:
            return True
    return _described(condition, "invisible")


def text_matches(expected: Any, exact: bool = False) -> HandleCondition:
    def condition(handle: Any) -> bool:
        try:
            actual = handle.get_text()
            if exact:
                return actual == str(expected)
            return str(expected) in (actual or "")
        except Exception:
            return False
    verb = "equals" if exact else "matches"
    return _described(condition, f"text {verb} '{expected}'")


def count_equals(expected_count: int) -> HandleCondition:
    def condition(handles: Sequence[Any]) -> bool:
        try:
            return len(handles) == expected_count
        except Exception:
            return False
    return _described(condition, f"count equals {expected_count}")
