"""Override resolution and user discovery.

Source tree layout::

    <source>/<name>.<ext>          global script, deployed to every user
    <source>/<user>/<name>.<ext>   private script, deployed to <user> only

A private script shadows the global script of the same logical name for
its owner.  The *skip map* records those shadows: ``skip_map[name]`` is
the set of users that must never receive the global ``name``.

Known users are discovered from ``<hackmud>/<user>.key`` identity
markers unless an explicit user filter is given.

Everything here is rebuilt from disk on every call; nothing is cached.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from hackmud_sync.core.async_utils import gather_settled, run_sync
from hackmud_sync.errors import ScanError
from hackmud_sync.sync.models import ScriptSource
from hackmud_sync.transform import SUPPORTED_EXTENSIONS

logger = logging.getLogger(__name__)

KEY_EXTENSION = ".key"

SkipMap = dict[str, set[str]]


@dataclass
class SourceTree:
    """Top level of a source directory.

    Attributes:
        user_dirs: Names of the user subdirectories.
        global_scripts: Global script candidates at the root.
    """

    user_dirs: list[str] = field(default_factory=list)
    global_scripts: list[ScriptSource] = field(default_factory=list)


def is_supported(path: Path) -> bool:
    """Return True if *path* has a supported script extension."""
    return path.suffix in SUPPORTED_EXTENSIONS


def _list_dir(path: Path) -> list[Path]:
    try:
        return sorted(path.iterdir())
    except OSError as exc:
        raise ScanError(path, exc) from exc


def scan_source_root(source_dir: Path) -> SourceTree:
    """Enumerate the top level of *source_dir* once.

    Raises:
        ScanError: If the source directory cannot be read.
    """
    tree = SourceTree()
    for entry in _list_dir(source_dir):
        if entry.is_dir():
            tree.user_dirs.append(entry.name)
        elif entry.is_file() and is_supported(entry):
            tree.global_scripts.append(
                ScriptSource(
                    name=entry.stem,
                    extension=entry.suffix,
                    path=entry,
                )
            )
    return tree


def scan_user_dir(source_dir: Path, user: str) -> list[ScriptSource]:
    """List the private scripts directly inside ``source_dir/user``.

    Raises:
        ScanError: If the directory cannot be read.
    """
    return [
        ScriptSource(
            owner=user,
            name=entry.stem,
            extension=entry.suffix,
            path=entry,
        )
        for entry in _list_dir(source_dir / user)
        if entry.is_file() and is_supported(entry)
    ]


def build_skip_map(private_scripts: Iterable[ScriptSource]) -> SkipMap:
    """Map each logical name to the users holding a private override."""
    skip_map: SkipMap = {}
    for script in private_scripts:
        skip_map.setdefault(script.name, set()).add(script.owner)
    return skip_map


@dataclass
class OverrideScan:
    """Result of scanning every user directory.

    Attributes:
        private: Private scripts found, grouped by owner.
        skip_map: Name -> users with a private override.
        unreadable: Users whose directory could not be read.  Their
            overrides are unknown, so they are withheld from global
            deployment as well.
    """

    private: dict[str, list[ScriptSource]] = field(default_factory=dict)
    skip_map: SkipMap = field(default_factory=dict)
    unreadable: set[str] = field(default_factory=set)


async def scan_overrides(
    source_dir: Path, user_dirs: Sequence[str]
) -> OverrideScan:
    """Scan *user_dirs* concurrently and build the skip map.

    Returns only after every directory scan has settled.  A directory
    that cannot be read is logged and contributes nothing.
    """
    results = await gather_settled(
        run_sync(scan_user_dir, source_dir, user) for user in user_dirs
    )

    scan = OverrideScan()
    for user, result in zip(user_dirs, results):
        if isinstance(result, ScanError):
            logger.error("Skipping user directory %s: %s", user, result)
            scan.unreadable.add(user)
            continue
        if isinstance(result, BaseException):
            raise result
        scan.private[user] = result

    scan.skip_map = build_skip_map(
        script for scripts in scan.private.values() for script in scripts
    )
    return scan


def list_users(hackmud_dir: Path) -> list[str]:
    """Return users with a ``<user>.key`` identity marker in *hackmud_dir*.

    Raises:
        ScanError: If the hackmud directory cannot be read.
    """
    return [
        entry.stem
        for entry in _list_dir(hackmud_dir)
        if entry.is_file() and entry.suffix == KEY_EXTENSION
    ]


async def resolve_users(
    hackmud_dir: Path, user_filter: Sequence[str]
) -> list[str]:
    """Return the effective user set.

    The explicit filter wins; otherwise users are rediscovered from the
    identity markers on every call.
    """
    if user_filter:
        return list(dict.fromkeys(user_filter))
    users = await run_sync(list_users, hackmud_dir)
    logger.debug("Discovered %d users in %s", len(users), hackmud_dir)
    return users


def global_targets(
    name: str,
    users: Iterable[str],
    skip_map: SkipMap,
    withheld: Iterable[str] = (),
) -> list[str]:
    """Users that should receive the global script *name*."""
    excluded = skip_map.get(name, set()) | set(withheld)
    return [user for user in users if user not in excluded]
