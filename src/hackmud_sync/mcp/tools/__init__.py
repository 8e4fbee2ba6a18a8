"""MCP tool handlers for hackmud-sync operations."""

from .errors import build_error_response, translate_sync_error
from .registry import ToolRegistry, ToolSpec
from .scripts import SCRIPT_SPECS

ALL_SPECS: list[ToolSpec] = list(SCRIPT_SPECS)

__all__ = [
    "ALL_SPECS",
    "SCRIPT_SPECS",
    "ToolRegistry",
    "ToolSpec",
    "build_error_response",
    "translate_sync_error",
]
