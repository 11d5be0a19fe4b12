"""Exception types raised by undoai core operations."""

from __future__ import annotations


class UndoError(Exception):
    """Base class for undoai errors surfaced to callers."""


class StorageNotInitializedError(UndoError):
    """Raised when the snapshot storage root has not been created yet."""


class SnapshotNotFoundError(UndoError):
    """Raised for an unknown snapshot ID."""

    def __init__(self, snapshot_id: str):
        super().__init__(f"Snapshot not found: {snapshot_id}")
        self.snapshot_id = snapshot_id


class ProjectMismatchError(UndoError):
    """Raised when restoring a snapshot into a different project root."""

    def __init__(self, snapshot_root: str, current_root: str):
        super().__init__(f"Snapshot was created in different project: {snapshot_root}")
        self.snapshot_root = snapshot_root
        self.current_root = current_root


class NoMatchingFilesError(UndoError):
    """Raised when a restore filter selects no files."""


class BlobNotFoundError(UndoError):
    """Raised when a snapshot has no stored blob for a file."""


class PathCodecError(UndoError):
    """Raised when a path cannot be encoded or a name cannot be decoded."""


class AlreadyRunningError(UndoError):
    """Raised when another watcher already holds the instance lock."""

    def __init__(self, pid: int):
        super().__init__(f"undoai is already watching (PID: {pid})")
        self.pid = pid
