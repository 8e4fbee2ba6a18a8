"""Tests for ToolSpec and ToolRegistry dispatch."""

import dataclasses

import mcp.types as types
import pytest

from hackmud_sync.config import Config
from hackmud_sync.errors import TransformError
from hackmud_sync.mcp.tools import ALL_SPECS
from hackmud_sync.mcp.tools.registry import ToolRegistry, ToolSpec

CONFIG = Config(source_dir="/src", hackmud_dir="/hackmud")


def _make_spec(name: str, handler=None) -> ToolSpec:
    if handler is None:

        async def handler(config, args):
            return types.CallToolResult(
                content=[types.TextContent(type="text", text=f"ok:{name}")]
            )

    return ToolSpec(
        tool=types.Tool(
            name=name,
            description=f"Test tool {name}",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        handler=handler,
    )


def _raising(exc: Exception):
    async def handler(config, args):
        raise exc

    return handler


def test_spec_is_frozen():
    spec = _make_spec("t")

    with pytest.raises(dataclasses.FrozenInstanceError):
        spec.handler = None


def test_all_specs_registered():
    registry = ToolRegistry(ALL_SPECS)

    assert registry.tool_count() == 4
    assert {tool.name for tool in registry.list_tools()} == {
        "script_push",
        "script_pull",
        "script_test",
        "macro_sync",
    }


async def test_dispatch_passes_config_and_args():
    seen = {}

    async def handler(config, args):
        seen["config"] = config
        seen["args"] = args
        return types.CallToolResult(content=[])

    registry = ToolRegistry([_make_spec("t", handler)])
    await registry.call_tool("t", None, CONFIG)

    assert seen == {"config": CONFIG, "args": {}}


async def test_unknown_tool():
    with pytest.raises(ValueError, match="Unknown tool"):
        await ToolRegistry([]).call_tool("nope", {}, CONFIG)


@pytest.mark.parametrize(
    "exc, prefix",
    [
        (TransformError("bad"), "Error (transform_error)"),
        (ValueError("bad arg"), "Error (validation_error)"),
        (RuntimeError("kaput"), "Error (server_error)"),
    ],
)
async def test_errors_translated(exc, prefix):
    registry = ToolRegistry([_make_spec("t", _raising(exc))])

    result = await registry.call_tool("t", {}, CONFIG)

    assert result.isError is True
    assert result.content[0].text.startswith(prefix)
