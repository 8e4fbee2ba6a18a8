"""MCP tool handlers for script deployment.

Defines four tools:

- ``script_push`` -- push scripts from the source tree to users.
- ``script_pull`` -- copy a deployed script back into the source tree.
- ``script_test`` -- build every script without writing.
- ``macro_sync`` -- merge macros across all users.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types

from ...config import Config
from ...sync.engine import SyncEngine
from ...sync.macros import sync_macros
from ...sync.reporter import (
    format_macro_result,
    format_push_report,
    format_test_report,
    report_to_json,
)
from ...transform import ScriptTransformer
from .registry import ToolSpec

logger = logging.getLogger(__name__)

_NAME_LIST = {"type": "array", "items": {"type": "string"}}


def _engine(config: Config) -> SyncEngine:
    return SyncEngine(
        config.source_dir,
        config.hackmud_dir,
        ScriptTransformer(
            config.typescript_compiler, config.compiler_timeout
        ),
    )


def _string_list(args: dict[str, Any], key: str) -> list[str]:
    value = args.get(key) or []
    if not isinstance(value, list) or not all(
        isinstance(item, str) for item in value
    ):
        raise ValueError(f"'{key}' must be a list of strings")
    return value


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_push(
    config: Config, args: dict[str, Any]
) -> types.CallToolResult:
    users = _string_list(args, "users") or config.users
    scripts = _string_list(args, "scripts") or config.scripts
    report = await _engine(config).push_report(users, scripts)
    return types.CallToolResult(
        content=[
            types.TextContent(type="text", text=format_push_report(report))
        ],
        structuredContent=report_to_json(report),
        isError=bool(report.failed),
    )


async def _handle_pull(
    config: Config, args: dict[str, Any]
) -> types.CallToolResult:
    script = args.get("script")
    if not isinstance(script, str) or not script:
        raise ValueError("'script' is required (user.name)")
    dest = await _engine(config).pull(script)
    return types.CallToolResult(
        content=[
            types.TextContent(type="text", text=f"Pulled {script} to {dest}")
        ],
        structuredContent={"script": script, "path": str(dest)},
    )


async def _handle_test(
    config: Config, args: dict[str, Any]
) -> types.CallToolResult:
    failures = await _engine(config).test()
    return types.CallToolResult(
        content=[
            types.TextContent(type="text", text=format_test_report(failures))
        ],
        structuredContent={
            "failures": [failure.model_dump() for failure in failures]
        },
        isError=bool(failures),
    )


async def _handle_macro_sync(
    config: Config, args: dict[str, Any]
) -> types.CallToolResult:
    result = await sync_macros(config.hackmud_dir)
    return types.CallToolResult(
        content=[
            types.TextContent(type="text", text=format_macro_result(result))
        ],
        structuredContent=result.model_dump(),
    )


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


SCRIPT_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=types.Tool(
            name="script_push",
            description=(
                "Build scripts from the source tree and write them to "
                "users' script folders. Private scripts in a user folder "
                "override global scripts of the same name for that user."
            ),
            annotations=types.ToolAnnotations(
                readOnlyHint=False,
                destructiveHint=True,
                idempotentHint=True,
                openWorldHint=False,
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "users": {
                        **_NAME_LIST,
                        "description": "Users to push to (default: all)",
                    },
                    "scripts": {
                        **_NAME_LIST,
                        "description": "Script names to push (default: all)",
                    },
                },
                "required": [],
            },
        ),
        handler=_handle_push,
    ),
    ToolSpec(
        tool=types.Tool(
            name="script_pull",
            description=(
                "Copy a deployed script (user.name) back into the source "
                "tree as <user>/<name>.js."
            ),
            annotations=types.ToolAnnotations(
                readOnlyHint=False,
                destructiveHint=True,
                idempotentHint=True,
                openWorldHint=False,
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "script": {
                        "type": "string",
                        "description": "Script in user.name form",
                    },
                },
                "required": ["script"],
            },
        ),
        handler=_handle_pull,
    ),
    ToolSpec(
        tool=types.Tool(
            name="script_test",
            description=(
                "Build every script in the source tree without writing "
                "anything and report the ones that fail."
            ),
            annotations=types.ToolAnnotations(
                readOnlyHint=True,
                destructiveHint=False,
                idempotentHint=True,
                openWorldHint=False,
            ),
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        handler=_handle_test,
    ),
    ToolSpec(
        tool=types.Tool(
            name="macro_sync",
            description=(
                "Merge chat macros from every user (newest wins) and write "
                "the merged set to every user."
            ),
            annotations=types.ToolAnnotations(
                readOnlyHint=False,
                destructiveHint=True,
                idempotentHint=True,
                openWorldHint=False,
            ),
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        handler=_handle_macro_sync,
    ),
]
