"""Logging setup for the CLI and the MCP server.

The CLI logs to stderr so stdout stays free for results.  The MCP server
logs to a file only, because its stdout is the JSON-RPC stream.
"""

import json
import logging
import os
import sys

DEFAULT_MCP_LOG_FILE = "/tmp/hackmud-sync.log"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that are noisy below WARNING
_QUIET_LOGGERS = ("watchdog", "asyncio")


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object per line.

    Keys are ``ts``, ``level``, ``logger`` and ``msg``, plus ``exc`` when
    the record carries exception info.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _make_formatter(debug_format: str, with_name: bool) -> logging.Formatter:
    if debug_format == "json":
        return JsonFormatter(datefmt=DATE_FORMAT)
    name = " %(name)s" if with_name else ""
    return logging.Formatter(
        f"[%(asctime)s] [%(levelname)s]{name} %(message)s",
        datefmt=DATE_FORMAT,
    )


def _resolve_level(mode: str, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    fallback = "WARNING" if mode == "mcp" else "INFO"
    name = os.getenv("LOG_LEVEL", fallback).upper()
    return getattr(logging, name, logging.INFO)


def setup_logging(
    mode: str = "cli",
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
) -> None:
    """Configure the root logger.

    Args:
        mode: ``"cli"`` (stderr, plus *log_file* if given) or ``"mcp"``
            (file only).
        debug: Force DEBUG, ignoring ``LOG_LEVEL``.
        log_file: Extra log file for the CLI; the only destination in MCP
            mode, where it falls back to ``LOG_FILE`` and then
            ``/tmp/hackmud-sync.log``.
        debug_format: ``"text"`` or ``"json"`` (CLI handlers only).

    ``LOG_LEVEL`` defaults to INFO for the CLI and WARNING for MCP.
    """
    level = _resolve_level(mode, debug)

    if mode == "mcp":
        logging.basicConfig(
            level=level,
            format="[%(asctime)s] [%(levelname)s] %(message)s",
            datefmt=DATE_FORMAT,
            filename=log_file or os.getenv("LOG_FILE", DEFAULT_MCP_LOG_FILE),
            filemode="a",
        )
    else:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(_make_formatter(debug_format, False))
        handlers: list[logging.Handler] = [stderr_handler]
        if log_file:
            file_handler = logging.FileHandler(log_file, mode="a")
            file_handler.setFormatter(_make_formatter(debug_format, True))
            handlers.append(file_handler)
        logging.basicConfig(level=level, handlers=handlers)

    if level != logging.DEBUG:
        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
