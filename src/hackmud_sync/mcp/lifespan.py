"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv

from ..config import load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import build_config, to_fallbacks
from ..core.async_utils import init_semaphore

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env file (so values are available for env var lookups and YAML interpolation)
    - Load YAML config file if present (as fallback values)
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > defaults
    - Initialise the file operation semaphore

    Args:
        config_overrides: Optional dict with values from CLI (source_dir, hackmud_dir)

    Yields:
        Dict with 'config' key containing the validated Config

    Raises:
        RuntimeError: If configuration is invalid.
    """
    logger.info("MCP server starting...")
    _stderr_print("hackmud-sync MCP server starting...")

    try:
        load_dotenv()

        sources = []
        config_files = discover_config_files()
        unified = build_config(load_hierarchical_config())
        if config_files:
            sources.append(f"config file: {config_files[0]}")

        overrides = config_overrides or {}
        config = load_config(
            source_dir=overrides.get("source_dir"),
            hackmud_dir=overrides.get("hackmud_dir"),
            yaml_fallbacks=to_fallbacks(unified),
        )

        if overrides.get("source_dir") or overrides.get("hackmud_dir"):
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        _stderr_print(f"  Source: {config.source_dir}")
        _stderr_print(f"  hackmud: {config.hackmud_dir}")
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print("  Ensure HACKMUD_SRC_DIR and HACKMUD_DIR are set.")
        raise RuntimeError(
            f"Configuration error: {e}. Ensure HACKMUD_SRC_DIR and HACKMUD_DIR are set."
        ) from e

    init_semaphore(config.max_parallel)
    _stderr_print("Server ready. Waiting for MCP client connection...")

    yield {"config": config}

    logger.info("MCP server shutting down")
    _stderr_print("hackmud-sync MCP server shutting down.")
