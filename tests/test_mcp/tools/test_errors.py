"""Tests for mcp/tools/errors.py: structured error responses."""

from pathlib import Path

import mcp.types as types
import pytest

from hackmud_sync.errors import (
    EmptyOutputError,
    HackmudSyncError,
    ScanError,
    TransformError,
    WriteError,
)
from hackmud_sync.mcp.tools.errors import (
    build_error_response,
    translate_sync_error,
)


def _text(result: types.CallToolResult) -> str:
    content = result.content[0]
    assert isinstance(content, types.TextContent)
    return content.text


def test_build_error_response_format():
    result = build_error_response("scan_error", "Cannot read", "Check it.")

    assert result.isError is True
    assert _text(result) == "Error (scan_error): Cannot read\n\nAction: Check it."


@pytest.mark.parametrize(
    "exc, error_type",
    [
        (ScanError(Path("/src"), PermissionError("denied")), "scan_error"),
        (WriteError(Path("/x.js"), OSError("disk full")), "write_error"),
        (TransformError("unexpected token"), "transform_error"),
        (EmptyOutputError(), "transform_error"),
        (HackmudSyncError("other"), "server_error"),
    ],
)
def test_translate_sync_error(exc, error_type):
    text = _text(translate_sync_error(exc))

    assert text.startswith(f"Error ({error_type}): {exc}")
    assert "Action:" in text


def test_empty_output_has_own_action():
    text = _text(translate_sync_error(EmptyOutputError()))

    assert "minified to nothing" in text
