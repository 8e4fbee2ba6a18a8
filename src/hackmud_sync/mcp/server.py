"""MCP server for hackmud-sync using stdio transport.

Lets an agent push, pull and test the scripts it has just edited, and
merge chat macros, without leaving the MCP session.
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass

import mcp.server.stdio
import mcp.types as types
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..config import Config
from ..logger import setup_logging
from .lifespan import server_lifespan
from .tools import ALL_SPECS, ToolRegistry, build_error_response

logger = logging.getLogger(__name__)

SERVER_NAME = "hackmud-sync"

server = Server(SERVER_NAME)


@dataclass
class ServerState:
    """Objects bound for the lifetime of one stdio session."""

    config: Config | None = None
    registry: ToolRegistry | None = None


state = ServerState()


def get_config() -> Config:
    if state.config is None:
        raise RuntimeError("Server lifespan has not started; no config.")
    return state.config


def get_registry() -> ToolRegistry:
    if state.registry is None:
        raise RuntimeError("Tool registry has not been created.")
    return state.registry


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    return get_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Dispatch to the registry; unknown names become an error result."""
    try:
        return await get_registry().call_tool(
            name, arguments, get_config()
        )
    except ValueError as e:
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


async def main(config_overrides: dict | None = None) -> None:
    """Serve MCP requests on stdin/stdout until the client disconnects.

    Args:
        config_overrides: ``source_dir``, ``hackmud_dir`` and
            ``log_file`` values from the command line.
    """
    overrides = config_overrides or {}

    # stdout belongs to the JSON-RPC stream from here on
    setup_logging(mode="mcp", log_file=overrides.get("log_file"))

    state.registry = ToolRegistry(ALL_SPECS)
    logger.info("Registered %d tools", state.registry.tool_count())

    async with server_lifespan(config_overrides=overrides) as ctx:
        state.config = ctx["config"]
        options = InitializationOptions(
            server_name=SERVER_NAME,
            server_version=__version__,
            capabilities=server.get_capabilities(
                notification_options=NotificationOptions(),
                experimental_capabilities={},
            ),
        )
        try:
            async with mcp.server.stdio.stdio_server() as streams:
                await server.run(*streams, options)
        finally:
            state.config = None
            state.registry = None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hackmud-sync-mcp",
        description="Serve hackmud-sync operations to an MCP client over stdio",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Paths from .env, environment or .hackmud_sync/config.yml
  hackmud-sync-mcp

  # Explicit paths
  hackmud-sync-mcp --source-dir ~/scripts --hackmud-dir ~/.config/hackmud

stdout carries JSON-RPC; status messages go to stderr and logs to a file.
        """,
    )
    parser.add_argument(
        "--source-dir",
        help="Script source directory (overrides HACKMUD_SRC_DIR)",
    )
    parser.add_argument(
        "--hackmud-dir",
        help="hackmud data directory (overrides HACKMUD_DIR)",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path (default: LOG_FILE or /tmp/hackmud-sync.log)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"{SERVER_NAME} version {__version__}",
    )
    return parser


def run() -> None:
    """Console script entry point."""
    args = build_parser().parse_args()
    overrides = {
        key: value
        for key, value in (
            ("source_dir", args.source_dir),
            ("hackmud_dir", args.hackmud_dir),
            ("log_file", args.log_file),
        )
        if value
    }

    try:
        asyncio.run(main(overrides))
    except RuntimeError:
        # server_lifespan has already reported the cause on stderr
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    run()
