# tests/test_timinglogger.py
"""
Tests for the timing logger and its hooks.
"""

import json

import pytest

from uiauto_adaptive.timinglogger import TimingLogger


class TestOutput:
    """Tests for console and file output."""

    def test_disabled_logger_prints_nothing(self, capsys):
        logger = TimingLogger()
        logger.log(event="wait_start", description="x")
        assert capsys.readouterr().out == ""
        assert logger.is_enabled() is False

    def test_line_format(self, capsys):
        logger = TimingLogger()
        logger.enable()
        logger.log(event="wait_success", description="ready", status="success", metadata={"attempts": 2})

        out = capsys.readouterr().out
        assert "[success] [timing]" in out
        assert "event=wait_success" in out
        assert "description=ready" in out
        assert "attempts=2" in out

    def test_jsonl_file(self, tmp_path, capsys):
        path = tmp_path / "logs" / "timing.jsonl"
        logger = TimingLogger()
        logger.configure(console=False, file_path=str(path), format="jsonl")
        logger.enable()

        logger.log(event="retry_wait", metadata={"attempt": 1, "sleep_s": 0.5})
        logger.log(event="retry_success", status="success")

        lines = path.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["event"] for line in lines] == ["retry_wait", "retry_success"]
        assert json.loads(lines[0])["metadata"]["sleep_s"] == 0.5
        assert capsys.readouterr().out == ""

    def test_invalid_format(self):
        with pytest.raises(ValueError):
            TimingLogger().configure(format="xml")


class TestHooks:
    """Tests for observer hooks."""

    def test_hooks_receive_events_while_output_disabled(self, capsys):
        logger = TimingLogger()
        received = []
        logger.add_hook(received.append)

        assert logger.is_enabled() is True
        logger.log(event="wait_start", description="x", metadata={"timeout_s": 1})

        assert received[0]["event"] == "wait_start"
        assert received[0]["metadata"] == {"timeout_s": 1}
        assert capsys.readouterr().out == ""

    def test_remover(self):
        logger = TimingLogger()
        received = []
        remove = logger.add_hook(received.append)
        remove()
        logger.log(event="wait_start")
        assert received == []

    def test_raising_hook_is_isolated(self):
        logger = TimingLogger()
        received = []

        def broken(event):
            raise RuntimeError("observer bug")

        logger.add_hook(broken)
        logger.add_hook(received.append)
        logger.log(event="wait_start")
        assert len(received) == 1


class TestSampling:
    """Tests for retry attempt sampling."""

    def test_every_attempt_by_default(self):
        logger = TimingLogger()
        assert all(logger.should_log_retry_attempt(n) for n in range(1, 6))

    def test_sampled(self):
        logger = TimingLogger()
        logger.configure(sample_retry_events=3)
        assert [n for n in range(1, 10) if logger.should_log_retry_attempt(n)] == [1, 3, 6, 9]
