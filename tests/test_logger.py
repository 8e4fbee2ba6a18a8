"""Tests for setup_logging() and JsonFormatter.

basicConfig is mocked because pytest's log capture already installs
root handlers, which would turn real basicConfig calls into no-ops.
"""

import json
import logging
import sys
from unittest.mock import patch

from hackmud_sync.logger import JsonFormatter, setup_logging


class TestSetupLogging:
    @patch("hackmud_sync.logger.logging.basicConfig")
    def test_cli_mode_logs_to_stderr(self, mock_basic):
        setup_logging(mode="cli")

        handlers = mock_basic.call_args[1]["handlers"]
        assert len(handlers) == 1
        assert handlers[0].stream is sys.stderr

    @patch("hackmud_sync.logger.logging.basicConfig")
    def test_cli_mode_adds_file_handler(self, mock_basic, tmp_path):
        setup_logging(mode="cli", log_file=str(tmp_path / "sync.log"))

        handlers = mock_basic.call_args[1]["handlers"]
        file_handlers = [
            h for h in handlers if isinstance(h, logging.FileHandler)
        ]
        assert len(file_handlers) == 1
        for h in file_handlers:
            h.close()

    @patch("hackmud_sync.logger.logging.basicConfig")
    def test_mcp_mode_never_uses_stdout(self, mock_basic, monkeypatch):
        monkeypatch.delenv("LOG_FILE", raising=False)
        setup_logging(mode="mcp")

        kwargs = mock_basic.call_args[1]
        assert kwargs["filename"] == "/tmp/hackmud-sync.log"
        assert "handlers" not in kwargs

    @patch("hackmud_sync.logger.logging.basicConfig")
    def test_mcp_mode_env_log_file(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_FILE", "/tmp/custom.log")
        setup_logging(mode="mcp")

        assert mock_basic.call_args[1]["filename"] == "/tmp/custom.log"

    @patch("hackmud_sync.logger.logging.basicConfig")
    def test_default_levels(self, mock_basic, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        setup_logging(mode="cli")
        assert mock_basic.call_args[1]["level"] == logging.INFO

        setup_logging(mode="mcp")
        assert mock_basic.call_args[1]["level"] == logging.WARNING

    @patch("hackmud_sync.logger.logging.basicConfig")
    def test_debug_beats_env(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")

        setup_logging(mode="cli")
        assert mock_basic.call_args[1]["level"] == logging.ERROR

        setup_logging(mode="cli", debug=True)
        assert mock_basic.call_args[1]["level"] == logging.DEBUG

    @patch("hackmud_sync.logger.logging.basicConfig")
    def test_json_format(self, mock_basic):
        setup_logging(mode="cli", debug_format="json")

        handlers = mock_basic.call_args[1]["handlers"]
        assert isinstance(handlers[0].formatter, JsonFormatter)

    @patch("hackmud_sync.logger.logging.basicConfig")
    def test_watchdog_silenced(self, _mock_basic, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging(mode="cli")

        assert logging.getLogger("watchdog").level == logging.WARNING


class TestJsonFormatter:
    def _record(self, **kwargs) -> logging.LogRecord:
        defaults = dict(
            name="hackmud_sync.sync",
            level=logging.INFO,
            pathname="engine.py",
            lineno=1,
            msg="Pushed %s",
            args=("foo.js",),
            exc_info=None,
        )
        defaults.update(kwargs)
        return logging.LogRecord(**defaults)

    def test_fields(self):
        data = json.loads(JsonFormatter().format(self._record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "hackmud_sync.sync"
        assert data["msg"] == "Pushed foo.js"
        assert "ts" in data

    def test_exception_single_line(self):
        try:
            raise ValueError("bad script")
        except ValueError:
            exc_info = sys.exc_info()

        output = JsonFormatter().format(self._record(exc_info=exc_info))

        assert "\n" not in output
        assert "bad script" in json.loads(output)["exc"]
