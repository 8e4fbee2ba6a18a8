"""Runtime configuration for hackmud-sync.

Reads paths and tuning from CLI args, environment variables, .env files,
and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    HACKMUD_SRC_DIR: Script source directory (required)
    HACKMUD_DIR: hackmud data directory (required)
    HACKMUD_USERS: Comma separated users to push to (optional)
    HACKMUD_SCRIPTS: Comma separated scripts to push (optional)
    HACKMUD_SETTLE_MS: Watch settle window in ms (optional, default: 100)
    HACKMUD_MAX_PARALLEL: Max concurrent file operations (optional, default: 16)
    HACKMUD_TS_COMPILER: TypeScript compiler command (optional)
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .transform import DEFAULT_TS_COMPILER

logger = logging.getLogger(__name__)


@dataclass
class Config:
    source_dir: str
    hackmud_dir: str
    users: list[str] = field(default_factory=list)
    scripts: list[str] = field(default_factory=list)
    settle_ms: int = 100
    max_parallel: int = 16
    typescript_compiler: str = DEFAULT_TS_COMPILER
    compiler_timeout: float = 30
    debug: bool = False


def validate_config(config: Config, require_source: bool = True) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.
        require_source: Whether the source directory must exist.  Macro
            sync only needs the hackmud directory.

    Raises:
        ValueError: If a directory is missing or a number is out of range.
    """
    config.source_dir = config.source_dir.strip()
    config.hackmud_dir = config.hackmud_dir.strip()

    if require_source:
        if not config.source_dir:
            raise ValueError(
                "Source directory cannot be empty. Set HACKMUD_SRC_DIR "
                "or pass --source-dir."
            )
        if not Path(config.source_dir).expanduser().is_dir():
            raise ValueError(
                f"Source directory '{config.source_dir}' is not a directory"
            )
        config.source_dir = str(Path(config.source_dir).expanduser())

    if not config.hackmud_dir:
        raise ValueError(
            "hackmud directory cannot be empty. Set HACKMUD_DIR "
            "or pass --hackmud-dir."
        )
    config.hackmud_dir = str(Path(config.hackmud_dir).expanduser())

    if not (0 <= config.settle_ms <= 10000):
        raise ValueError(
            f"Invalid settle_ms {config.settle_ms}: must be between 0 and 10000"
        )
    if not (1 <= config.max_parallel <= 256):
        raise ValueError(
            f"Invalid max_parallel {config.max_parallel}: must be between 1 and 256"
        )


def _split_list(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def _int_env(key: str, low: int, high: int) -> int | None:
    raw = os.getenv(key)
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        ) from None
    if not (low <= value <= high):
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        )
    return value


def load_config(
    source_dir: str | None = None,
    hackmud_dir: str | None = None,
    users: list[str] | None = None,
    scripts: list[str] | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
    require_source: bool = True,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        source_dir: Override source directory.
        hackmud_dir: Override hackmud directory.
        users: Override user filter.
        scripts: Override script filter.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flattened values from the YAML config file, as
            produced by ``to_fallbacks()``.
        require_source: Passed through to ``validate_config()``.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a required directory is missing after checking all
            sources, or a value is invalid.
    """
    fb = yaml_fallbacks or {}

    final_source = (
        source_dir or os.getenv("HACKMUD_SRC_DIR") or fb.get("source_dir") or ""
    )
    final_hackmud = (
        hackmud_dir or os.getenv("HACKMUD_DIR") or fb.get("hackmud_dir") or ""
    )

    if users:
        final_users = list(users)
    elif os.getenv("HACKMUD_USERS"):
        final_users = _split_list(os.environ["HACKMUD_USERS"])
    else:
        final_users = list(fb.get("users", []))

    if scripts:
        final_scripts = list(scripts)
    elif os.getenv("HACKMUD_SCRIPTS"):
        final_scripts = _split_list(os.environ["HACKMUD_SCRIPTS"])
    else:
        final_scripts = list(fb.get("scripts", []))

    # --- Numeric fields: env > YAML > default ---

    settle_ms = _int_env("HACKMUD_SETTLE_MS", 0, 10000)
    if settle_ms is None:
        settle_ms = int(fb.get("settle_ms", 100))

    max_parallel = _int_env("HACKMUD_MAX_PARALLEL", 1, 256)
    if max_parallel is None:
        max_parallel = int(fb.get("max_parallel", 16))

    compiler = os.getenv("HACKMUD_TS_COMPILER") or fb.get(
        "typescript_compiler", DEFAULT_TS_COMPILER
    )

    config = Config(
        source_dir=final_source,
        hackmud_dir=final_hackmud,
        users=final_users,
        scripts=final_scripts,
        settle_ms=settle_ms,
        max_parallel=max_parallel,
        typescript_compiler=compiler,
        compiler_timeout=float(fb.get("compiler_timeout", 30)),
        debug=debug,
    )

    validate_config(config, require_source=require_source)

    return config
