"""Push orchestration: deploy a source tree to per-user script folders.

A full push:

1. Enumerates the source root once.
2. Scans every selected user directory concurrently and builds the skip
   map from their private scripts.  This is a full barrier: no global
   script is deployed before every user directory has been scanned.
3. Resolves the effective user set (explicit filter, or ``.key``
   markers in the hackmud directory).
4. Transforms and writes every private script to its owner, and every
   global script to each effective user without an override.
5. Returns once every write has settled.

Error handling is per file: a failed transform or write is recorded in
that file's ``SyncInfo.error`` and never affects sibling files.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timezone
from pathlib import Path

from hackmud_sync.core.async_utils import gather_settled, run_sync
from hackmud_sync.errors import ScanError
from hackmud_sync.file_handler import (
    copy_file_persist_async,
    read_text_async,
    write_file_persist_async,
)
from hackmud_sync.sync.models import (
    PushReport,
    ScriptSource,
    SyncInfo,
    TestFailure,
)
from hackmud_sync.sync.resolver import (
    SkipMap,
    global_targets,
    resolve_users,
    scan_overrides,
    scan_source_root,
    scan_user_dir,
)
from hackmud_sync.transform import ScriptTransformer, Transformer, script_length

logger = logging.getLogger(__name__)

OnPush = Callable[[SyncInfo], None]


def describe_error(exc: BaseException) -> str:
    """Render an exception as a one-line error message."""
    return str(exc) or type(exc).__name__


def deploy_path(hackmud_dir: Path, user: str, name: str) -> Path:
    """Return ``<hackmud>/<user>/scripts/<name>.js``."""
    return hackmud_dir / user / "scripts" / f"{name}.js"


def is_selected(value: str, allowed: Sequence[str]) -> bool:
    """An empty filter selects everything."""
    return not allowed or value in allowed


class SyncEngine:
    """Deploy scripts from a source tree into a hackmud directory.

    Args:
        source_root: Directory holding global scripts and user folders.
        hackmud_dir: The hackmud data directory (``<user>.key`` markers
            and ``<user>/scripts/`` folders).
        transformer: ``(code, extension) -> str`` used to build each
            script.  Defaults to ``ScriptTransformer()``.
    """

    def __init__(
        self,
        source_root: Path,
        hackmud_dir: Path,
        transformer: Transformer | None = None,
    ) -> None:
        self.source_root = Path(source_root)
        self.hackmud_dir = Path(hackmud_dir)
        self.transformer = transformer or ScriptTransformer()

    # ------------------------------------------------------------------
    # Full push
    # ------------------------------------------------------------------

    async def push(
        self,
        users: Sequence[str] = (),
        scripts: Sequence[str] = (),
        on_push: OnPush | None = None,
    ) -> list[SyncInfo]:
        """Push every (or the selected) script to every (or the selected) user.

        Args:
            users: Only push to these users.  Empty means all users with
                an identity marker.
            scripts: Only push scripts with these logical names.  Empty
                means all scripts.
            on_push: Called with each file's ``SyncInfo`` as soon as that
                file's writes have settled.

        Returns:
            One ``SyncInfo`` per processed source file, in completion order.

        Raises:
            ScanError: If the source root, or the hackmud directory when
                users have to be discovered, cannot be read.
        """
        results: list[SyncInfo] = []
        tree = await run_sync(scan_source_root, self.source_root)

        user_dirs = [d for d in tree.user_dirs if is_selected(d, users)]
        overrides = await scan_overrides(self.source_root, user_dirs)

        private = [
            script
            for owned in overrides.private.values()
            for script in owned
            if is_selected(script.name, scripts)
        ]
        global_scripts = [
            script
            for script in tree.global_scripts
            if is_selected(script.name, scripts)
        ]
        # Overrides of scripts outside the filter never matter here.
        skip_map = {
            name: owners
            for name, owners in overrides.skip_map.items()
            if is_selected(name, scripts)
        }

        effective_users: list[str] = []
        if global_scripts:
            effective_users = await resolve_users(self.hackmud_dir, users)

        logger.info(
            "Pushing %d private and %d global scripts (%d users)",
            len(private),
            len(global_scripts),
            len(effective_users),
        )

        tasks = [
            self._emit(self.deploy_private(script), results, on_push)
            for script in private
        ]
        tasks.extend(
            self._emit(
                self.deploy_global(
                    script,
                    effective_users,
                    skip_map,
                    withheld=overrides.unreadable,
                ),
                results,
                on_push,
            )
            for script in global_scripts
        )
        for outcome in await gather_settled(tasks):
            if isinstance(outcome, BaseException):
                raise outcome
        return results

    async def push_report(
        self,
        users: Sequence[str] = (),
        scripts: Sequence[str] = (),
        on_push: OnPush | None = None,
    ) -> PushReport:
        """Run ``push()`` and wrap the results in a ``PushReport``."""
        started_at = datetime.now(timezone.utc).isoformat()
        results = await self.push(users, scripts, on_push)
        return PushReport(
            results=results,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )

    # ------------------------------------------------------------------
    # Per-file deployment
    # ------------------------------------------------------------------

    async def deploy_private(self, script: ScriptSource) -> SyncInfo:
        """Build a private script and write it to its owner only."""
        owner = script.owner
        code, error = await self.build(script)
        if code is None:
            return SyncInfo(file=script.display_path, error=error)

        min_length = script_length(code)
        try:
            await write_file_persist_async(
                deploy_path(self.hackmud_dir, owner, script.name), code
            )
        except Exception as exc:
            logger.error("Failed to deploy %s: %s", script.display_path, exc)
            return SyncInfo(
                file=script.display_path,
                min_length=min_length,
                error=describe_error(exc),
            )

        logger.debug("Deployed %s to %s", script.display_path, owner)
        return SyncInfo(
            file=script.display_path,
            users=[owner],
            min_length=min_length,
        )

    async def deploy_global(
        self,
        script: ScriptSource,
        users: Iterable[str],
        skip_map: SkipMap,
        withheld: Iterable[str] = (),
    ) -> SyncInfo:
        """Build a global script and write it to every non-overriding user.

        *skip_map* must be complete before this is called.
        """
        code, error = await self.build(script)
        if code is None:
            return SyncInfo(file=script.display_path, error=error)

        min_length = script_length(code)
        targets = global_targets(script.name, users, skip_map, withheld)
        outcomes = await gather_settled(
            write_file_persist_async(
                deploy_path(self.hackmud_dir, user, script.name), code
            )
            for user in targets
        )

        written: list[str] = []
        failures: list[str] = []
        for user, outcome in zip(targets, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    "Failed to deploy %s to %s: %s",
                    script.display_path,
                    user,
                    outcome,
                )
                failures.append(describe_error(outcome))
            else:
                written.append(user)

        logger.debug(
            "Deployed %s to %d users", script.display_path, len(written)
        )
        return SyncInfo(
            file=script.display_path,
            users=written,
            min_length=min_length,
            error="; ".join(failures) or None,
        )

    async def build(
        self, script: ScriptSource
    ) -> tuple[str | None, str | None]:
        """Read and transform *script*.

        Returns:
            ``(code, None)`` on success, ``(None, error)`` on failure.
        """
        try:
            source = await read_text_async(script.path)
            code = await run_sync(
                self.transformer, source, script.extension
            )
        except Exception as exc:
            logger.warning(
                "Failed to build %s: %s", script.display_path, exc
            )
            return None, describe_error(exc)

        if not code:
            logger.warning("%s produced no output", script.display_path)
            return None, "processed script was empty"
        return code, None

    @staticmethod
    async def _emit(
        deployment, results: list[SyncInfo], on_push: OnPush | None
    ) -> SyncInfo:
        info = await deployment
        results.append(info)
        if on_push is not None:
            try:
                on_push(info)
            except Exception:
                logger.exception("on_push callback failed for %s", info.file)
        return info

    # ------------------------------------------------------------------
    # Pull / test
    # ------------------------------------------------------------------

    async def pull(self, script: str) -> Path:
        """Copy a deployed script back into the source tree.

        Args:
            script: Script reference in ``user.name`` form.

        Returns:
            The source path that was written.

        Raises:
            ValueError: If *script* is not in ``user.name`` form or
                either part contains a path separator.
            WriteError: If the deployed script is missing or the copy
                fails.
        """
        user, sep, name = script.partition(".")
        if (
            not sep
            or not user
            or not name
            or "." in name
            or any(c in script for c in "/\\")
        ):
            raise ValueError(
                f"Invalid script reference '{script}': expected user.name"
            )

        dest = self.source_root / user / f"{name}.js"
        await copy_file_persist_async(
            deploy_path(self.hackmud_dir, user, name), dest
        )
        logger.info("Pulled %s to %s", script, dest)
        return dest

    async def test(self) -> list[TestFailure]:
        """Run the transformer over every source file without writing.

        Returns:
            One ``TestFailure`` per file the transformer rejected.
        """
        tree = await run_sync(scan_source_root, self.source_root)
        sources = list(tree.global_scripts)

        scans = await gather_settled(
            run_sync(scan_user_dir, self.source_root, user)
            for user in tree.user_dirs
        )
        for user, result in zip(tree.user_dirs, scans):
            if isinstance(result, ScanError):
                logger.error("Skipping user directory %s: %s", user, result)
                continue
            if isinstance(result, BaseException):
                raise result
            sources.extend(result)

        built = await gather_settled(
            self.build(script) for script in sources
        )
        failures: list[TestFailure] = []
        for script, outcome in zip(sources, built):
            if isinstance(outcome, BaseException):
                raise outcome
            _, error = outcome
            if error is not None:
                failures.append(
                    TestFailure(file=script.display_path, error=error)
                )
        logger.info(
            "Tested %d scripts, %d failed", len(sources), len(failures)
        )
        return failures


# ---------------------------------------------------------------------------
# Functional API
# ---------------------------------------------------------------------------


async def push(
    source_dir: Path | str,
    hackmud_dir: Path | str,
    users: Sequence[str] = (),
    scripts: Sequence[str] = (),
    on_push: OnPush | None = None,
    transformer: Transformer | None = None,
) -> list[SyncInfo]:
    """Push scripts from *source_dir* into *hackmud_dir*.

    See ``SyncEngine.push``.
    """
    engine = SyncEngine(Path(source_dir), Path(hackmud_dir), transformer)
    return await engine.push(users, scripts, on_push)


async def pull(
    source_dir: Path | str, hackmud_dir: Path | str, script: str
) -> Path:
    """Copy the deployed ``user.name`` script back to *source_dir*."""
    engine = SyncEngine(Path(source_dir), Path(hackmud_dir))
    return await engine.pull(script)


async def test_scripts(
    source_dir: Path | str, transformer: Transformer | None = None
) -> list[TestFailure]:
    """Validate every script in *source_dir*; see ``SyncEngine.test``."""
    engine = SyncEngine(Path(source_dir), Path(source_dir), transformer)
    return await engine.test()
