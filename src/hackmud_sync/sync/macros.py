"""Merge and redistribute hackmud chat macros across users.

Each user has a ``<hackmud>/<user>.macros`` file of alternating lines::

    name
    body
    name
    body

A merge reads every macro file, keeps the most recently written body for
each name (the file's modification time stamps every macro it holds),
drops names that start with an uppercase letter, and writes the same
merged text back to every user with a ``<user>.key`` marker.

Ties on modification time keep the record read first; files are read in
sorted file-name order so the outcome does not depend on directory
enumeration order.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from hackmud_sync.core.async_utils import gather_settled, run_sync
from hackmud_sync.errors import ScanError
from hackmud_sync.file_handler import read_text, write_file_persist_async
from hackmud_sync.sync.models import MacroRecord, MacroSyncResult
from hackmud_sync.sync.resolver import KEY_EXTENSION

logger = logging.getLogger(__name__)

MACRO_EXTENSION = ".macros"


def parse_macros(content: str, timestamp: datetime) -> list[MacroRecord]:
    """Split macro file *content* into records stamped with *timestamp*.

    Lines are split on ``\\n`` only (a trailing ``\\r`` is dropped), so
    other line-break characters stay inside a body.  A trailing unpaired
    line is ignored.
    """
    lines = [line.removesuffix("\r") for line in content.split("\n")]
    if lines[-1] == "":
        lines.pop()
    return [
        MacroRecord(name=lines[i], body=lines[i + 1], timestamp=timestamp)
        for i in range(0, len(lines) - 1, 2)
    ]


def merge_macros(records: Iterable[MacroRecord]) -> dict[str, MacroRecord]:
    """Keep the newest record per name; earlier records win ties."""
    best: dict[str, MacroRecord] = {}
    for record in records:
        current = best.get(record.name)
        if current is None or record.timestamp > current.timestamp:
            best[record.name] = record
    return best


def is_shared_macro(name: str) -> bool:
    """Names starting with an uppercase letter are never redistributed."""
    return bool(name) and not name[0].isupper()


def render_macros(records: Iterable[MacroRecord]) -> str:
    """Render records as ``name\\nbody\\n`` blocks sorted by name."""
    return "".join(
        f"{record.name}\n{record.body}\n"
        for record in sorted(records, key=lambda r: r.name)
    )


def _read_macro_file(path: Path) -> list[MacroRecord]:
    timestamp = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    return parse_macros(read_text(path), timestamp)


def _scan_hackmud_dir(hackmud_dir: Path) -> tuple[list[Path], list[str]]:
    try:
        entries = sorted(hackmud_dir.iterdir())
    except OSError as exc:
        raise ScanError(hackmud_dir, exc) from exc

    macro_files: list[Path] = []
    users: list[str] = []
    for entry in entries:
        if not entry.is_file():
            continue
        if entry.suffix == MACRO_EXTENSION:
            macro_files.append(entry)
        elif entry.suffix == KEY_EXTENSION:
            users.append(entry.stem)
    return macro_files, users


async def sync_macros(hackmud_dir: Path | str) -> MacroSyncResult:
    """Merge every user's macros and write the result to every user.

    Returns:
        The number of macros written and the number of users whose macro
        file was written.

    Raises:
        ScanError: If *hackmud_dir* cannot be read.
    """
    hackmud_dir = Path(hackmud_dir)
    macro_files, users = await run_sync(_scan_hackmud_dir, hackmud_dir)

    records: list[MacroRecord] = []
    for path in macro_files:
        try:
            records.extend(await run_sync(_read_macro_file, path))
        except OSError as exc:
            logger.error("Skipping unreadable macro file %s: %s", path, exc)

    merged = [
        record
        for name, record in merge_macros(records).items()
        if is_shared_macro(name)
    ]
    macro_text = render_macros(merged)

    outcomes = await gather_settled(
        write_file_persist_async(
            hackmud_dir / f"{user}{MACRO_EXTENSION}", macro_text
        )
        for user in users
    )
    written = 0
    for user, outcome in zip(users, outcomes):
        if isinstance(outcome, BaseException):
            logger.error("Failed to write macros for %s: %s", user, outcome)
        else:
            written += 1

    logger.info("Synced %d macros to %d users", len(merged), written)
    return MacroSyncResult(merged_count=len(merged), user_count=written)
