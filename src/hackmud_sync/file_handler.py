"""File handler module: encoding-aware reads and persistent writes.

Provides the filesystem primitives the sync engine is built on.  The
"persistent" helpers create missing parent directories lazily: a write
that fails because its parent is missing creates the parents and retries
exactly once.  Any other failure, or a second failure, raises
``WriteError``.

All sync functions are plain blocking I/O; the async wrappers offload
them via ``run_sync()``.
"""

import shutil
from pathlib import Path

from charset_normalizer import from_bytes

from hackmud_sync.core.async_utils import run_sync
from hackmud_sync.errors import WriteError

# =============================================================================
# File Read
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file, preferring UTF-8.

    Content that decodes as strict UTF-8 is returned as such; only bytes
    that do not are handed to charset-normalizer for detection.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    try:
        return (raw.decode("utf-8"), "utf-8")
    except UnicodeDecodeError:
        result = from_bytes(raw).best()

    if result is None:
        return (raw.decode("utf-8", errors="replace"), "utf-8")
    return (str(result), result.encoding)


def read_text(path: Path) -> str:
    """Read a file's text content, discarding the detected encoding."""
    content, _ = read_file_with_encoding(path)
    return content


# =============================================================================
# Persistent Write / Copy
# =============================================================================


def _ensure_parent(path: Path, cause: OSError) -> None:
    # exist_ok tolerates a concurrent writer creating the same directory
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise WriteError(path, exc) from cause


def write_file_persist(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Write content to a file, creating missing parents on demand.

    Args:
        path: Path to the output file.
        content: String content to write.
        encoding: Encoding to use (default: utf-8).

    Returns:
        Number of bytes written.

    Raises:
        WriteError: If the write fails for any reason other than a
            missing parent, or fails again after creating it.
    """
    encoded = content.encode(encoding)
    try:
        path.write_bytes(encoded)
    except FileNotFoundError as exc:
        _ensure_parent(path, exc)
        try:
            path.write_bytes(encoded)
        except OSError as retry_exc:
            raise WriteError(path, retry_exc) from retry_exc
    except OSError as exc:
        raise WriteError(path, exc) from exc
    return len(encoded)


def copy_file_persist(src: Path, dest: Path) -> Path:
    """Copy *src* to *dest*, creating missing parents of *dest* on demand.

    Raises:
        WriteError: If *src* does not exist, or the copy fails for any
            reason other than a missing destination parent.
    """
    if not src.is_file():
        raise WriteError(
            dest, FileNotFoundError(f"No such file: {src}")
        )
    try:
        return Path(shutil.copyfile(src, dest))
    except FileNotFoundError as exc:
        _ensure_parent(dest, exc)
        try:
            return Path(shutil.copyfile(src, dest))
        except OSError as retry_exc:
            raise WriteError(dest, retry_exc) from retry_exc
    except OSError as exc:
        raise WriteError(dest, exc) from exc


# =============================================================================
# Async Wrappers
# =============================================================================


async def read_text_async(path: Path) -> str:
    """Async wrapper around ``read_text()``."""
    return await run_sync(read_text, path)


async def write_file_persist_async(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Async wrapper around ``write_file_persist()``."""
    return await run_sync(write_file_persist, path, content, encoding)


async def copy_file_persist_async(src: Path, dest: Path) -> Path:
    """Async wrapper around ``copy_file_persist()``."""
    return await run_sync(copy_file_persist, src, dest)
