"""Pydantic models for the sync engine.

Defines the data contracts shared by the push, watch, test and macro
code paths:

- ``ScriptSource``: one source file and its owner.
- ``SyncInfo``: outcome of processing one source file.
- ``PushReport``: aggregate of ``SyncInfo`` for a full push.
- ``TestFailure``: one failing file from a validation run.
- ``MacroRecord``: one named macro and the time it was last written.
- ``MacroSyncResult``: counts returned by a macro merge.

All models are frozen (immutable); a ``SyncInfo`` is only built once the
file's transform and writes have settled.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel


class ScriptSource(BaseModel):
    """A script source file.

    Attributes:
        owner: User id for a private script, ``None`` for a global one.
        name: Logical name (file name without extension).
        extension: ``.js`` or ``.ts``.
        path: Absolute path to the source file.
    """

    owner: str | None = None
    name: str
    extension: str
    path: Path

    model_config = {"frozen": True}

    @property
    def is_global(self) -> bool:
        return self.owner is None

    @property
    def display_path(self) -> str:
        """Path relative to the source root, as reported to callers."""
        file_name = f"{self.name}{self.extension}"
        if self.owner is None:
            return file_name
        return f"{self.owner}/{file_name}"


class SyncInfo(BaseModel):
    """Outcome of processing one source file.

    Attributes:
        file: Source path relative to the source root.
        users: Users the script was written to, in write order.
        min_length: Deployed character count (0 when nothing was written).
        error: Error message when transform or write failed.
    """

    file: str
    users: list[str] = []
    min_length: int = 0
    error: str | None = None

    model_config = {"frozen": True}

    @property
    def success(self) -> bool:
        return self.error is None


class PushReport(BaseModel):
    """Aggregate report for a full push.

    Attributes:
        results: Per-file outcomes in completion order.
        started_at: ISO 8601 timestamp when the push started.
        completed_at: ISO 8601 timestamp when every write had settled.
    """

    results: list[SyncInfo] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    @property
    def succeeded(self) -> list[SyncInfo]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[SyncInfo]:
        return [r for r in self.results if not r.success]

    @property
    def writes(self) -> int:
        """Total number of script files written."""
        return sum(len(r.users) for r in self.results)

    def summary(self) -> str:
        """Format a human-readable summary of the push.

        Returns:
            Multi-line summary string with counts.
        """
        lines = [
            "Push report",
            f"  Scripts:  {len(self.results)}",
            f"  Pushed:   {len(self.succeeded)}",
            f"  Failed:   {len(self.failed)}",
            f"  Writes:   {self.writes}",
        ]
        return "\n".join(lines)


class TestFailure(BaseModel):
    """A source file the transformer rejected.

    Attributes:
        file: Source path relative to the source root.
        error: Transformer error message.
    """

    __test__ = False

    file: str
    error: str

    model_config = {"frozen": True}


class MacroRecord(BaseModel):
    """A named macro and the modification time of the file it came from."""

    name: str
    body: str
    timestamp: datetime

    model_config = {"frozen": True}


class MacroSyncResult(BaseModel):
    """Counts returned by a macro merge.

    Attributes:
        merged_count: Macros written to every user's macro file.
        user_count: Users whose macro file was written.
    """

    merged_count: int
    user_count: int

    model_config = {"frozen": True}
