# uiauto_adaptive/config.py
"""
@file config.py
@brief Centralized wait, retry and cache configuration.
"""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any, Dict, Generator, Optional

import yaml
from jsonschema import Draft202012Validator

from .exceptions import ConfigurationError
from .timings import (RETRY_FIELDS, TIMEOUT_FIELDS, build_preset_values,
                      list_presets)


@dataclass
class TimeoutSettings:
    """Timeout and polling interval for one kind of wait."""
    timeout: float
    interval: float

    def __post_init__(self) -> None:
        if self.timeout < 0:
            raise ConfigurationError("timeout", self.timeout, "must be >= 0")
        if self.interval <= 0:
            raise ConfigurationError("interval", self.interval, "must be > 0")

    def with_overrides(
        self,
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
    ) -> TimeoutSettings:
        """Create a new settings instance with overrides applied."""
        return TimeoutSettings(
            timeout=float(timeout) if timeout is not None else self.timeout,
            interval=float(interval) if interval is not None else self.interval,
        )


@dataclass
class RetrySettings:
    """Attempt budget and backoff curve for one kind of retried operation."""
    max_attempts: int
    base_delay: float
    backoff_multiplier: float
    max_delay: float

    def __post_init__(self) -> None:
        validate_retry_values(
            self.max_attempts, self.base_delay, self.backoff_multiplier, self.max_delay
        )

    def with_overrides(self, **values: Any) -> RetrySettings:
        merged = asdict(self)
        merged.update({k: v for k, v in values.items() if v is not None})
        return RetrySettings(
            max_attempts=int(merged["max_attempts"]),
            base_delay=float(merged["base_delay"]),
            backoff_multiplier=float(merged["backoff_multiplier"]),
            max_delay=float(merged["max_delay"]),
        )


@dataclass
class CacheSettings:
    """Capacity, time-to-live and on/off switch for the handle cache."""
    max_size: int
    ttl: float
    enabled: bool = True

    def __post_init__(self) -> None:
        if self.max_size < 1:
            raise ConfigurationError("max_size", self.max_size, "must be >= 1")
        if self.ttl <= 0:
            raise ConfigurationError("ttl", self.ttl, "must be > 0")

    def with_overrides(self, **values: Any) -> CacheSettings:
        merged = asdict(self)
        merged.update({k: v for k, v in values.items() if v is not None})
        return CacheSettings(
            max_size=int(merged["max_size"]),
            ttl=float(merged["ttl"]),
            enabled=bool(merged["enabled"]),
        )


def validate_retry_values(
    max_attempts: Any,
    base_delay: Any,
    backoff_multiplier: Any,
    max_delay: Any,
) -> None:
    """Raise ConfigurationError unless the retry parameters are coherent."""
    if not isinstance(max_attempts, int) or isinstance(max_attempts, bool) or max_attempts < 1:
        raise ConfigurationError("max_attempts", max_attempts, "must be an integer >= 1")
    if base_delay < 0:
        raise ConfigurationError("base_delay", base_delay, "must be >= 0")
    if backoff_multiplier < 1:
        raise ConfigurationError("backoff_multiplier", backoff_multiplier, "must be >= 1")
    if max_delay < base_delay:
        raise ConfigurationError("max_delay", max_delay, f"must be >= base_delay ({base_delay})")


class TimeConfig:
    """
    Wait, retry and cache configuration for the framework.

    Precedence, lowest first:
      process default (preset) -> per-thread run config -> override() block
    """

    _default_instance: Optional[TimeConfig] = None
    _default_preset: str = "default"
    _local = threading.local()
    _lock = threading.Lock()

    def __init__(self, preset: Optional[str] = None):
        preset_name = preset or self._default_preset
        try:
            values = build_preset_values(preset_name)
        except ValueError as e:
            raise ConfigurationError("preset", preset_name, str(e)) from e
        self.preset = preset_name
        self._apply_values(values)

    def _apply_values(self, values: Dict[str, Any]) -> None:
        for name in TIMEOUT_FIELDS:
            val = values[name]
            if isinstance(val, TimeoutSettings):
                setting = TimeoutSettings(val.timeout, val.interval)
            else:
                setting = TimeoutSettings(
                    timeout=float(val["timeout"]),
                    interval=float(val["interval"]),
                )
            setattr(self, name, setting)

        for name in RETRY_FIELDS:
            val = values[name]
            if isinstance(val, RetrySettings):
                val = asdict(val)
            setattr(self, name, RetrySettings(
                max_attempts=int(val["max_attempts"]),
                base_delay=float(val["base_delay"]),
                backoff_multiplier=float(val["backoff_multiplier"]),
                max_delay=float(val["max_delay"]),
            ))

        cache = values["cache"]
        if isinstance(cache, CacheSettings):
            cache = asdict(cache)
        self.cache = CacheSettings(
            max_size=int(cache["max_size"]),
            ttl=float(cache["ttl"]),
            enabled=bool(cache.get("enabled", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for name in TIMEOUT_FIELDS:
            data[name] = asdict(getattr(self, name))
        for name in RETRY_FIELDS:
            data[name] = asdict(getattr(self, name))
        data["cache"] = asdict(self.cache)
        return data

    def clone(self) -> TimeConfig:
        """Return a deep clone of this config."""
        clone = TimeConfig(self.preset)
        clone._apply_values(self.to_dict())
        return clone

    def get_retry_settings(self, operation: str) -> RetrySettings:
        mapping = {
            "find": "find_retry",
            "resolve": "find_retry",
            "interact": "interact_retry",
            "get_text": "text_retry",
            "text": "text_retry",
            "state": "state_retry",
        }
        name = mapping.get(operation, operation)
        if name not in RETRY_FIELDS:
            raise ConfigurationError("retry_operation", operation, "unknown retry operation")
        return getattr(self, name)

    @classmethod
    def build_from(
        cls,
        *,
        preset: str = "default",
        overrides: Optional[Dict[str, Any]] = None,
    ) -> TimeConfig:
        """Build a run-scope config snapshot."""
        cfg = cls(preset)
        if overrides:
            _apply_overrides(cfg, overrides)
        return cfg

    @classmethod
    def default(cls) -> TimeConfig:
        """Get the process default configuration (singleton)."""
        if cls._default_instance is None:
            with cls._lock:
                if cls._default_instance is None:
                    cls._default_instance = cls(cls._default_preset)
        return cls._default_instance

    @classmethod
    def install_run_config(cls, config: TimeConfig) -> None:
        """Install per-thread run configuration snapshot."""
        cls._local.run_config = config

    @classmethod
    def clear_run_config(cls) -> None:
        """Clear per-thread run configuration snapshot."""
        cls._local.run_config = None

    @classmethod
    def current(cls) -> TimeConfig:
        """Get the current effective configuration."""
        override = getattr(cls._local, "override", None)
        if override is not None:
            return override

        run_cfg = getattr(cls._local, "run_config", None)
        if run_cfg is not None:
            return run_cfg

        return cls.default()

    @classmethod
    def apply_preset(cls, preset: str) -> None:
        """Apply a preset to the current thread's run config."""
        cls.install_run_config(cls(preset))

    @classmethod
    def apply_overrides(cls, overrides: Dict[str, Any]) -> None:
        """Apply overrides to the current thread's run config."""
        config = cls.current().clone()
        _apply_overrides(config, overrides)
        cls.install_run_config(config)

    @classmethod
    @contextmanager
    def override(cls, **kwargs: Any) -> Generator[TimeConfig, None, None]:
        """Context manager for temporary configuration overrides."""
        previous = getattr(cls._local, "override", None)
        new_config = cls.current().clone()
        _apply_overrides(new_config, kwargs)

        cls._local.override = new_config
        try:
            yield new_config
        finally:
            cls._local.override = previous

    @classmethod
    def reset_to_defaults(cls) -> None:
        """Reset default and clear all thread-local config state."""
        with cls._lock:
            cls._default_preset = "default"
            cls._default_instance = cls(cls._default_preset)
        cls._local.override = None
        cls._local.run_config = None


def _apply_overrides(config: TimeConfig, overrides: Dict[str, Any]) -> None:
    for key, value in overrides.items():
        if key in TIMEOUT_FIELDS:
            base: Any = getattr(config, key)
            if isinstance(value, TimeoutSettings):
                setattr(config, key, TimeoutSettings(value.timeout, value.interval))
            elif isinstance(value, dict):
                setattr(config, key, base.with_overrides(
                    timeout=value.get("timeout"),
                    interval=value.get("interval"),
                ))
            else:
                raise ConfigurationError(key, value, "expected a mapping with timeout/interval")
        elif key in RETRY_FIELDS:
            base = getattr(config, key)
            if isinstance(value, RetrySettings):
                setattr(config, key, base.with_overrides(**asdict(value)))
            elif isinstance(value, dict):
                setattr(config, key, base.with_overrides(**value))
            else:
                raise ConfigurationError(key, value, "expected a mapping of retry settings")
        elif key == "cache":
            if isinstance(value, CacheSettings):
                value = asdict(value)
            if not isinstance(value, dict):
                raise ConfigurationError(key, value, "expected a mapping of cache settings")
            config.cache = config.cache.with_overrides(**value)
        else:
            raise ConfigurationError(key, value, "unknown configuration field")


_NUMBER = {"type": "number", "minimum": 0}

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "preset": {"type": "string", "enum": sorted(list_presets())},
        "timeouts": {
            "type": "object",
            "propertyNames": {"enum": sorted(TIMEOUT_FIELDS)},
            "additionalProperties": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "timeout": _NUMBER,
                    "interval": {"type": "number", "exclusiveMinimum": 0},
                },
            },
        },
        "retries": {
            "type": "object",
            "propertyNames": {"enum": sorted(RETRY_FIELDS)},
            "additionalProperties": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "max_attempts": {"type": "integer", "minimum": 1},
                    "base_delay": _NUMBER,
                    "backoff_multiplier": {"type": "number", "minimum": 1},
                    "max_delay": _NUMBER,
                },
            },
        },
        "cache": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "max_size": {"type": "integer", "minimum": 1},
                "ttl": {"type": "number", "exclusiveMinimum": 0},
                "enabled": {"type": "boolean"},
            },
        },
    },
}

_VALIDATOR = Draft202012Validator(CONFIG_SCHEMA)


def load_config(path: str) -> TimeConfig:
    """
    Load a TimeConfig from a YAML file.

    Layout:
        preset: ci
        timeouts:
          element_wait: {timeout: 15, interval: 0.2}
        retries:
          find_retry: {max_attempts: 5}
        cache: {max_size: 20, ttl: 10}
    """
    path = os.path.abspath(path)
    if not os.path.exists(path):
        raise ConfigurationError("path", path, "configuration file not found")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError("path", path, f"invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError("path", path, "configuration must be a mapping at root")

    errors = sorted(_VALIDATOR.iter_errors(data), key=lambda e: list(e.path))
    if errors:
        first = errors[0]
        where = ".".join(str(p) for p in first.path) or "<root>"
        raise ConfigurationError(where, None, first.message)

    overrides: Dict[str, Any] = {}
    overrides.update(data.get("timeouts") or {})
    overrides.update(data.get("retries") or {})
    if data.get("cache"):
        overrides["cache"] = data["cache"]

    return TimeConfig.build_from(preset=data.get("preset", "default"), overrides=overrides)


def available_presets() -> Dict[str, Dict[str, Any]]:
    return list_presets()
