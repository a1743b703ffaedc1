# tests/test_conditions.py
"""
Tests for condition factories and combinators.
"""

import re

from uiauto_adaptive import conditions as cond

from .conftest import FakeHandle


def dead(**kwargs):
    handle = FakeHandle(**kwargs)
    handle.alive = False
    return handle


class TestHandleBoundConditions:
    """Tests for zero-argument conditions bound to a handle."""

    def test_visible_and_enabled(self):
        handle = FakeHandle(displayed=True, enabled=False)
        assert cond.element_visible(handle)() is True
        assert cond.element_enabled(handle)() is False
        assert cond.element_clickable(handle)() is False

        handle.enabled = True
        assert cond.element_clickable(handle)() is True

    def test_probe_failure_degrades_to_false(self):
        handle = dead()
        assert cond.element_visible(handle)() is False
        assert cond.element_enabled(handle)() is False
        assert cond.element_clickable(handle)() is False
        assert cond.text_present(handle, "x")() is False
        assert cond.text_changed(handle, "x")() is False
        assert cond.attribute_equals(handle, "a", "b")() is False
        assert cond.attribute_contains(handle, "a", "b")() is False

    def test_invisible_counts_gone_as_invisible(self):
        assert cond.element_invisible(FakeHandle(displayed=False))() is True
        assert cond.element_invisible(FakeHandle(displayed=True))() is False
        assert cond.element_invisible(dead())() is True

    def test_text_present_literal_and_pattern(self):
        handle = FakeHandle(text="Order #1234 confirmed")
        assert cond.text_present(handle, "confirmed")() is True
        assert cond.text_present(handle, "cancelled")() is False
        assert cond.text_present(handle, re.compile(r"#\d{4}"))() is True
        assert cond.text_present(handle, re.compile(r"^confirmed"))() is False

    def test_text_changed(self):
        handle = FakeHandle(text="Loading")
        changed = cond.text_changed(handle, "Loading")
        assert changed() is False
        handle.text = "Done"
        assert changed() is True

    def test_attributes(self):
        handle = FakeHandle(attributes={"class": "btn btn-primary"})
        assert cond.attribute_contains(handle, "class", "primary")() is True
        assert cond.attribute_equals(handle, "class", "btn")() is False
        assert cond.attribute_contains(handle, "missing", "x")() is False

    def test_descriptions(self):
        assert cond.describe(cond.element_visible(FakeHandle())) == "element visible"
        assert cond.describe(cond.text_present(FakeHandle(), re.compile("a+"))) == "text present 'a+'"
        assert cond.describe(lambda: True) == "custom condition"
        assert cond.describe(cond.custom_condition(lambda: True, "my check")) == "my check"


class TestCombinators:
    """Tests for any_condition and all_conditions."""

    def test_any_isolates_exceptions(self):
        calls = []

        def boom():
            calls.append("boom")
            raise RuntimeError("probe failed")

        def yes():
            calls.append("yes")
            return True

        assert cond.any_condition([boom, yes])() is True
        assert calls == ["boom", "yes"]

    def test_any_short_circuits(self):
        calls = []

        def first():
            calls.append(1)
            return True

        def second():
            calls.append(2)
            return True

        assert cond.any_condition([first, second])() is True
        assert calls == [1]

    def test_any_all_false(self):
        assert cond.any_condition([lambda: False, lambda: None])() is False
        assert cond.any_condition([])() is False

    def test_all(self):
        assert cond.all_conditions([lambda: True, lambda: 1])() is True
        assert cond.all_conditions([lambda: True, lambda: False])() is False

    def test_all_treats_exception_as_false(self):
        def boom():
            raise RuntimeError("x")

        assert cond.all_conditions([lambda: True, boom])() is False

    def test_combined_description(self):
        combined = cond.any_condition([cond.element_visible(FakeHandle()), lambda: True])
        assert cond.describe(combined) == "any of [element visible, custom condition]"


class TestHandleTakingConditions:
    """Tests for conditions applied to a freshly resolved handle."""

    def test_clickable(self):
        check = cond.clickable()
        assert check(FakeHandle()) is True
        assert check(FakeHandle(enabled=False)) is False
        assert check(None) is False
        assert check(dead()) is False

    def test_visible_enabled_invisible(self):
        assert cond.visible()(FakeHandle(displayed=False)) is False
        assert cond.enabled()(FakeHandle(enabled=True)) is True
        assert cond.invisible()(FakeHandle(displayed=False)) is True
        assert cond.invisible()(dead()) is True

    def test_text_matches(self):
        handle = FakeHandle(text="Welcome back")
        assert cond.text_matches("Welcome")(handle) is True
        assert cond.text_matches("Welcome", exact=True)(handle) is False
        assert cond.text_matches("Welcome back", exact=True)(handle) is True

    def test_count_equals(self):
        assert cond.count_equals(2)([FakeHandle(), FakeHandle()]) is True
        assert cond.count_equals(2)([]) is False
        assert cond.count_equals(0)(None) is False
