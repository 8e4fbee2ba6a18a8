"""Script sync engine.

Public API for deploying a tree of hackmud scripts into per-user script
folders and keeping shared macros consistent across users.

Architecture
------------
Global scripts live at the root of the source tree; a user folder holds
that user's private scripts, which shadow globals of the same name for
that user only.  The shadows are collected into a *skip map* that is
rebuilt from disk for every push (and every watched global change), so
there is no persisted state.

Modules:

- ``engine``    -- ``SyncEngine``: full push, pull, and test runs.
- ``watcher``   -- ``ScriptWatcher``: incremental push on file change.
- ``resolver``  -- source scanning, skip map, user discovery.
- ``macros``    -- macro merge and redistribution.
- ``models``    -- ``ScriptSource``, ``SyncInfo``, ``PushReport``,
  ``TestFailure``, ``MacroRecord``, ``MacroSyncResult``.
- ``reporter``  -- human-readable and JSON report formatting.

Usage example
-------------
::

    import asyncio
    from pathlib import Path
    from hackmud_sync.sync import SyncEngine, format_push_report

    engine = SyncEngine(Path("src"), Path.home() / ".config/hackmud")
    report = asyncio.run(engine.push_report())
    print(format_push_report(report))
"""

from .engine import SyncEngine, pull, push, test_scripts
from .macros import sync_macros
from .models import (
    MacroRecord,
    MacroSyncResult,
    PushReport,
    ScriptSource,
    SyncInfo,
    TestFailure,
)
from .reporter import (
    format_info_line,
    format_push_report,
    format_test_report,
    report_to_json,
)
from .watcher import ScriptWatcher, watch

__all__ = [
    "MacroRecord",
    "MacroSyncResult",
    "PushReport",
    "ScriptSource",
    "ScriptWatcher",
    "SyncEngine",
    "SyncInfo",
    "TestFailure",
    "format_info_line",
    "format_push_report",
    "format_test_report",
    "pull",
    "push",
    "report_to_json",
    "sync_macros",
    "test_scripts",
    "watch",
]
