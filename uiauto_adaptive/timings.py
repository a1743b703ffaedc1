# uiauto_adaptive/timings.py
"""
@file timings.py
@brief Wait, retry and cache defaults plus named presets.
"""

from __future__ import annotations
from copy import deepcopy
from typing import Any, Dict


TIMEOUT_FIELDS: Dict[str, Dict[str, Any]] = {
    "basic_wait": {"timeout": 5.0, "interval": 0.25},
    "element_wait": {"timeout": 10.0, "interval": 0.25},
    "resolve_element": {"timeout": 10.0, "interval": 0.1},
    "stable_wait": {"timeout": 10.0, "interval": 0.25},
    "disappear_wait": {"timeout": 30.0, "interval": 0.25},
    "wait_for_any": {"timeout": 10.0, "interval": 0.1},
}

RETRY_FIELDS: Dict[str, Dict[str, Any]] = {
    "find_retry": {"max_attempts": 3, "base_delay": 0.5, "backoff_multiplier": 1.5, "max_delay": 30.0},
    "interact_retry": {"max_attempts": 3, "base_delay": 0.5, "backoff_multiplier": 1.5, "max_delay": 30.0},
    "text_retry": {"max_attempts": 3, "base_delay": 0.5, "backoff_multiplier": 1.5, "max_delay": 30.0},
    "state_retry": {"max_attempts": 3, "base_delay": 0.5, "backoff_multiplier": 1.5, "max_delay": 30.0},
}

CACHE_FIELDS: Dict[str, Any] = {
    "max_size": 50,
    "ttl": 30.0,
    "enabled": True,
}

PRESET_OVERRIDES: Dict[str, Dict[str, Any]] = {
    "fast": {
        "basic_wait": {"timeout": 2.0, "interval": 0.1},
        "element_wait": {"timeout": 5.0, "interval": 0.1},
        "resolve_element": {"timeout": 5.0, "interval": 0.05},
        "stable_wait": {"timeout": 5.0, "interval": 0.1},
        "disappear_wait": {"timeout": 15.0, "interval": 0.1},
        "wait_for_any": {"timeout": 5.0, "interval": 0.05},
        "retry": {"max_attempts": 2, "base_delay": 0.2, "max_delay": 5.0},
        "cache": {"ttl": 15.0},
    },
    "slow": {
        "basic_wait": {"timeout": 10.0, "interval": 0.5},
        "element_wait": {"timeout": 20.0, "interval": 0.3},
        "resolve_element": {"timeout": 20.0, "interval": 0.2},
        "stable_wait": {"timeout": 20.0, "interval": 0.3},
        "disappear_wait": {"timeout": 60.0, "interval": 0.5},
        "wait_for_any": {"timeout": 20.0, "interval": 0.2},
        "retry": {"max_attempts": 4, "base_delay": 1.0},
        "cache": {"ttl": 60.0},
    },
    "ci": {
        "basic_wait": {"timeout": 15.0, "interval": 0.5},
        "element_wait": {"timeout": 30.0, "interval": 0.5},
        "resolve_element": {"timeout": 30.0, "interval": 0.3},
        "stable_wait": {"timeout": 30.0, "interval": 0.5},
        "disappear_wait": {"timeout": 120.0, "interval": 1.0},
        "wait_for_any": {"timeout": 30.0, "interval": 0.3},
        "retry": {"max_attempts": 5, "base_delay": 1.0, "backoff_multiplier": 2.0},
        "cache": {"max_size": 100, "ttl": 60.0},
    },
}


def list_presets() -> Dict[str, Dict[str, Any]]:
    return {"default": {}, **PRESET_OVERRIDES}


def build_preset_values(preset: str) -> Dict[str, Any]:
    preset_key = (preset or "default").lower()
    values: Dict[str, Any] = {}
    values.update(deepcopy(TIMEOUT_FIELDS))
    values.update(deepcopy(RETRY_FIELDS))
    values["cache"] = deepcopy(CACHE_FIELDS)

    if preset_key == "default":
        return values

    overrides = PRESET_OVERRIDES.get(preset_key)
    if overrides is None:
        raise ValueError(f"Unknown timing preset: {preset}")

    for key, value in overrides.items():
        # "retry" fans out to every *_retry entry
        if key == "retry":
            for retry_key in RETRY_FIELDS:
                values[retry_key].update(value)
            continue
        values[key].update(value)

    return values
