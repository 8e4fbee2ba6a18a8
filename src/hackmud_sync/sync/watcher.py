"""Incremental sync: watch the source tree and redeploy changed scripts.

Change notifications come from a ``watchdog`` observer thread and are
handed to the event loop with ``call_soon_threadsafe``.  Each path is
debounced: processing starts only after the file has been quiet for the
settle window, so half-written files are not deployed.

Only the two top levels are considered:

- ``<source>/<name>.<ext>``: a global script.  The skip map is rebuilt
  from every user directory for each event, then the script is deployed
  to every effective user without an override.
- ``<source>/<user>/<name>.<ext>``: a private script, deployed to the
  owning user only.

A failure while handling one event is logged and reported through the
callback; it never stops the watch loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from hackmud_sync.core.async_utils import run_sync
from hackmud_sync.sync.engine import (
    OnPush,
    SyncEngine,
    describe_error,
    is_selected,
)
from hackmud_sync.sync.models import ScriptSource, SyncInfo
from hackmud_sync.sync.resolver import (
    is_supported,
    resolve_users,
    scan_overrides,
    scan_source_root,
)
from hackmud_sync.transform import Transformer

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_MS = 100


class _ChangeHandler(FileSystemEventHandler):
    """Forward file changes from the observer thread to the event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop, notify) -> None:
        self._loop = loop
        self._notify = notify

    def _forward(self, path) -> None:
        self._loop.call_soon_threadsafe(self._notify, str(path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # editors that save via rename surface the new content here
        if not event.is_directory:
            self._forward(event.dest_path)


class ScriptWatcher:
    """Redeploy scripts as they change.

    Args:
        engine: Engine used to build and write scripts.
        users: Only deploy to these users (empty means all).
        scripts: Only deploy scripts with these names (empty means all).
        on_push: Called with the ``SyncInfo`` of every handled change.
        settle_ms: Quiet period before a changed file is processed.
    """

    def __init__(
        self,
        engine: SyncEngine,
        users: Sequence[str] = (),
        scripts: Sequence[str] = (),
        on_push: OnPush | None = None,
        settle_ms: int = DEFAULT_SETTLE_MS,
    ) -> None:
        self.engine = engine
        self.root = engine.source_root.resolve()
        self.users = list(users)
        self.scripts = list(scripts)
        self.on_push = on_push
        self.settle = settle_ms / 1000
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Event classification
    # ------------------------------------------------------------------

    def classify(self, path: Path | str) -> ScriptSource | None:
        """Map a changed path to the script it belongs to.

        Returns ``None`` for paths outside the two watched levels or
        without a supported extension.
        """
        path = Path(path)
        if not path.is_absolute():
            path = self.root / path
        try:
            relative = path.relative_to(self.root)
        except ValueError:
            return None

        if not is_supported(relative):
            return None

        parts = relative.parts
        if len(parts) == 1:
            return ScriptSource(
                name=relative.stem, extension=relative.suffix, path=path
            )
        if len(parts) == 2:
            return ScriptSource(
                owner=parts[0],
                name=relative.stem,
                extension=relative.suffix,
                path=path,
            )
        return None

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    async def handle_change(self, path: Path | str) -> SyncInfo | None:
        """Deploy the script at *path*.

        Returns:
            The resulting ``SyncInfo``, or ``None`` if the path is not a
            watched script or is excluded by the filters.
        """
        script = self.classify(path)
        if script is None or not is_selected(script.name, self.scripts):
            return None
        if not script.is_global and not is_selected(script.owner, self.users):
            return None

        try:
            if script.is_global:
                info = await self._deploy_global(script)
            else:
                info = await self.engine.deploy_private(script)
        except Exception as exc:
            logger.exception("Failed to handle change to %s", path)
            info = SyncInfo(
                file=script.display_path, error=describe_error(exc)
            )

        if info.success:
            logger.info(
                "Pushed %s to %s", info.file, ", ".join(info.users) or "nobody"
            )
        else:
            logger.warning("Failed %s: %s", info.file, info.error)

        if self.on_push is not None:
            try:
                self.on_push(info)
            except Exception:
                logger.exception("on_push callback failed for %s", info.file)
        return info

    async def _deploy_global(self, script: ScriptSource) -> SyncInfo:
        tree = await run_sync(scan_source_root, self.engine.source_root)
        overrides = await scan_overrides(
            self.engine.source_root, tree.user_dirs
        )
        users = await resolve_users(self.engine.hackmud_dir, self.users)
        return await self.engine.deploy_global(
            script,
            users,
            overrides.skip_map,
            withheld=overrides.unreadable,
        )

    def notify(self, path: str) -> None:
        """Schedule *path* for processing once it has settled.

        Must be called on the event loop thread.
        """
        loop = asyncio.get_running_loop()
        timer = self._timers.pop(path, None)
        if timer is not None:
            timer.cancel()
        self._timers[path] = loop.call_later(
            self.settle, self._start, path
        )

    def _start(self, path: str) -> None:
        self._timers.pop(path, None)
        task = asyncio.ensure_future(self.handle_change(path))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Watch the source tree until cancelled."""
        loop = asyncio.get_running_loop()
        observer = Observer()
        observer.schedule(
            _ChangeHandler(loop, self.notify),
            str(self.root),
            recursive=True,
        )
        observer.start()
        logger.info("Watching %s", self.root)
        try:
            await asyncio.Event().wait()
        finally:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
            observer.stop()
            await run_sync(observer.join, 10)


async def watch(
    source_dir: Path | str,
    hackmud_dir: Path | str,
    users: Sequence[str] = (),
    scripts: Sequence[str] = (),
    on_push: OnPush | None = None,
    transformer: Transformer | None = None,
    settle_ms: int = DEFAULT_SETTLE_MS,
) -> None:
    """Watch *source_dir* and push every changed script.  Never returns."""
    engine = SyncEngine(Path(source_dir), Path(hackmud_dir), transformer)
    watcher = ScriptWatcher(engine, users, scripts, on_push, settle_ms)
    await watcher.run()
