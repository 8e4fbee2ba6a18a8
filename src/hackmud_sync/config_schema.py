"""Unified configuration schema for hackmud_sync.

Defines Pydantic models for the YAML config structure with dedicated
sections for sync paths, the transform pipeline and logging, plus an
adapter that flattens them into fallbacks for ``load_config()``.

Usage:
    from hackmud_sync.config_schema import build_config, to_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = load_config(source_dir="src", yaml_fallbacks=to_fallbacks(unified))
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from .transform import DEFAULT_TS_COMPILER


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class SyncConfig(BaseModel):
    """Source and deployment locations and default filters.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    source_dir: str | None = Field(
        default=None, description="Directory holding script sources"
    )
    hackmud_dir: str | None = Field(
        default=None, description="hackmud data directory"
    )
    users: list[str] = Field(
        default_factory=list,
        description="Users to push to (empty means every user)",
    )
    scripts: list[str] = Field(
        default_factory=list,
        description="Scripts to push (empty means every script)",
    )
    settle_ms: int = Field(
        default=100,
        ge=0,
        le=10000,
        description="Quiet period before a watched change is pushed (ms)",
    )
    max_parallel: int = Field(
        default=16,
        ge=1,
        le=256,
        description="Maximum concurrent file operations (1-256)",
    )

    model_config = {"frozen": True}


class TransformConfig(BaseModel):
    """Script transformation settings."""

    typescript_compiler: str = Field(
        default=DEFAULT_TS_COMPILER,
        description="Command compiling TypeScript from stdin to stdout",
    )
    compiler_timeout: float = Field(
        default=30,
        gt=0,
        description="TypeScript compiler timeout in seconds",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    sync: SyncConfig = Field(default_factory=SyncConfig)
    transform: TransformConfig = Field(default_factory=TransformConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> load_config() fallbacks
# ---------------------------------------------------------------------------


def to_fallbacks(unified: UnifiedConfig) -> dict:
    """Flatten a ``UnifiedConfig`` into the ``yaml_fallbacks`` dict
    accepted by ``load_config()``.

    Unset (``None``) values and empty filter lists are omitted so that
    built-in defaults still apply.
    """
    flat = {
        **unified.sync.model_dump(),
        **unified.transform.model_dump(),
    }
    return {
        key: value
        for key, value in flat.items()
        if value is not None and value != []
    }
