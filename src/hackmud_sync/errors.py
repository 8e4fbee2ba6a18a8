"""Exception hierarchy for the sync engine.

Per-file failures (``TransformError``, ``EmptyOutputError``,
``WriteError``) are captured into that file's ``SyncInfo.error`` and never
abort a batch.  ``ScanError`` is raised when a directory cannot be
enumerated.
"""


class HackmudSyncError(Exception):
    """Base class for all hackmud-sync errors."""


class TransformError(HackmudSyncError):
    """The transformer rejected a script (syntax or compiler failure)."""


class EmptyOutputError(TransformError):
    """The transformer produced no usable text."""

    def __init__(self, message: str = "processed script was empty"):
        super().__init__(message)


class WriteError(HackmudSyncError):
    """A filesystem write failed after the missing-parent retry.

    Attributes:
        path: Target path of the failed write.
    """

    def __init__(self, path, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to write {path}: {cause}")


class ScanError(HackmudSyncError):
    """A directory could not be enumerated."""

    def __init__(self, path, cause: OSError):
        self.path = path
        self.cause = cause
        super().__init__(f"Cannot read directory {path}: {cause}")
