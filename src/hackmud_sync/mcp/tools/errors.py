"""Error response builders for MCP tool handlers.

Structured error responses carry a corrective action so an agent can
recover without human intervention.
"""

import mcp.types as types

from ...errors import (
    EmptyOutputError,
    HackmudSyncError,
    ScanError,
    TransformError,
    WriteError,
)


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (scan_error, write_error, transform_error,
            validation_error, server_error)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("scan_error", "Cannot read src", "Check source_dir.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def translate_sync_error(exc: HackmudSyncError) -> types.CallToolResult:
    """Map an engine exception onto a structured error response."""
    match exc:
        case ScanError():
            return build_error_response(
                "scan_error",
                str(exc),
                "Check that source_dir and hackmud_dir exist and are readable.",
            )
        case WriteError():
            return build_error_response(
                "write_error",
                str(exc),
                "Check that the script exists and the target is writable, then retry.",
            )
        case EmptyOutputError():
            return build_error_response(
                "transform_error",
                str(exc),
                "The script minified to nothing; make sure it defines a function.",
            )
        case TransformError():
            return build_error_response(
                "transform_error",
                str(exc),
                "Fix the script source, then run script_test to verify.",
            )
        case _:
            return build_error_response(
                "server_error",
                str(exc),
                "Retry, or check the server log for details.",
            )
