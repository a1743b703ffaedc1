# uiauto_adaptive/timinglogger.py
"""
@file timinglogger.py
@brief Timing logger and observer hooks for wait/retry observability.
"""

from __future__ import annotations

import json
import os
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

TimingHook = Callable[[Dict[str, Any]], None]


class TimingLogger:
    """
    Thread-safe timing logger with console/file output and observer hooks.

    Output is produced only while enabled; hooks receive every event even when
    output is disabled. Nothing raised by a hook or by file output reaches the
    wait/retry loop that emitted the event.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._enabled = False
        self._console = True
        self._file_path: Optional[str] = None
        self._level = "INFO"
        self._format = "line"
        self._sample_retry_events = 1
        self._hooks: List[TimingHook] = []

    def configure(
        self,
        *,
        console: bool = True,
        file_path: Optional[str] = None,
        level: str = "INFO",
        format: str = "line",
        sample_retry_events: int = 1,
    ) -> None:
        """Configure logger settings."""
        fmt = (format or "line").lower()
        if fmt not in {"line", "jsonl"}:
            raise ValueError("TimingLogger format must be 'line' or 'jsonl'")

        with self._lock:
            self._console = bool(console)
            self._file_path = file_path
            self._level = level.upper()
            self._format = fmt
            self._sample_retry_events = max(1, int(sample_retry_events))

    def enable(self) -> None:
        """Enable logging."""
        with self._lock:
            self._enabled = True

    def disable(self) -> None:
        """Disable logging."""
        with self._lock:
            self._enabled = False

    def is_enabled(self) -> bool:
        """Return True if output is enabled or any hook is registered."""
        return self._enabled or bool(self._hooks)

    def add_hook(self, hook: TimingHook) -> Callable[[], None]:
        """Register an observer. Returns a function that removes it."""
        with self._lock:
            self._hooks.append(hook)

        def _remove() -> None:
            self.remove_hook(hook)

        return _remove

    def remove_hook(self, hook: TimingHook) -> None:
        with self._lock:
            if hook in self._hooks:
                self._hooks.remove(hook)

    def clear_hooks(self) -> None:
        with self._lock:
            self._hooks.clear()

    def should_log_retry_attempt(self, attempt: int) -> bool:
        """Sampling strategy for retry attempt logs to avoid log spam."""
        if attempt <= 1:
            return True
        return attempt % self._sample_retry_events == 0

    def log(
        self,
        *,
        event: str,
        description: Optional[str] = None,
        status: str = "info",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Emit a timing log event."""
        if not self.is_enabled():
            return

        event_obj: Dict[str, Any] = {
            "timestamp": time.strftime("%H:%M:%S"),
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": self._level,
            "event": event,
            "description": description,
            "status": status,
            "metadata": dict(metadata or {}),
        }

        with self._lock:
            hooks = list(self._hooks)
        for hook in hooks:
            try:
                hook(event_obj)
            except Exception:
                continue

        if not self._enabled:
            return

        line = self._format_output(event_obj)

        if self._console:
            print(line, flush=True)

        if self._file_path:
            self._write_file(line)

    def _format_output(self, event: Dict[str, Any]) -> str:
        if self._format == "jsonl":
            return json.dumps(event, ensure_ascii=False, separators=(",", ":"), default=str)
        return self._format_line(event)

    @staticmethod
    def _format_line(event: Dict[str, Any]) -> str:
        parts = [
            f"[{str(event.get('status', 'info')).lower()}]",
            "[timing]",
            f"time={event.get('timestamp')}",
            f"event={event.get('event')}",
        ]
        if event.get("description"):
            parts.append(f"description={event['description']}")
        for key, value in (event.get("metadata") or {}).items():
            parts.append(f"{key}={value}")
        return " ".join(parts)

    def _write_file(self, line: str) -> None:
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self._file_path)) or ".", exist_ok=True)
            with open(self._file_path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError:
            pass


TIMING_LOGGER = TimingLogger()
