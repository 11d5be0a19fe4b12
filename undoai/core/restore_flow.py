"""Restore flow - picks which files of a snapshot to write back.

The default restore set is every captured file. A pattern filter narrows it
to files matching at least one glob (matched against the stored absolute
path); an interactive selector then narrows it further.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from ..utils.globs import match_any
from ..utils.log import log_debug
from .errors import NoMatchingFilesError, SnapshotNotFoundError, StorageNotInitializedError
from .snapshot_store import FileRestoreResult, SnapshotEntry, SnapshotStore


FileSelector = Callable[[list[str]], Sequence[str]]


@dataclass
class RestoreReport:
    """Per-file outcome of a restore."""
    snapshot_id: str
    results: list[FileRestoreResult] = field(default_factory=list)
    cancelled: bool = False

    @property
    def restored_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> list[FileRestoreResult]:
        return [r for r in self.results if not r.success]


def split_patterns(raw: str | None) -> list[str]:
    """Split a comma-separated pattern list, dropping blanks."""
    if not raw:
        return []
    return [p.strip() for p in raw.split(",") if p.strip()]


class RestoreFlow:
    """Restores whole or partial snapshots into the current project."""

    def __init__(self, store: SnapshotStore):
        self.store = store

    @property
    def project_root(self) -> Path:
        return self.store.project_root

    def available_snapshots(self) -> list[SnapshotEntry]:
        """Snapshots worth offering for restore (newest first, non-empty).

        Raises:
            StorageNotInitializedError: If nothing has ever been captured
        """
        if not self.store.is_initialized():
            raise StorageNotInitializedError("No snapshots found. Start watching with \"undoai watch\" first.")
        return [s for s in self.store.list_snapshots() if s.metadata.file_count > 0]

    def candidates(self, snapshot_id: str, patterns: Sequence[str] | None = None) -> list[str]:
        """Files of a snapshot that a restore would touch.

        Args:
            snapshot_id: Snapshot to restore from
            patterns: Optional globs; a file is kept if it matches any of them

        Raises:
            SnapshotNotFoundError: Unknown snapshot ID
            NoMatchingFilesError: Patterns given but nothing matched
        """
        metadata = self.store.get_snapshot_metadata(snapshot_id)
        if metadata is None:
            raise SnapshotNotFoundError(snapshot_id)

        files = list(metadata.changed_files)
        if patterns:
            files = [f for f in files if match_any(f, list(patterns))]
            if not files:
                raise NoMatchingFilesError("No files match the specified pattern")
            log_debug(f"Matched {len(files)} files from pattern")
        return files

    def restore(
        self,
        snapshot_id: str,
        patterns: Sequence[str] | None = None,
        select: FileSelector | None = None,
    ) -> RestoreReport:
        """Restore files from a snapshot.

        Args:
            snapshot_id: Snapshot to restore from
            patterns: Optional glob filter applied first
            select: Optional chooser applied to the filtered candidates;
                choosing nothing cancels the restore

        Returns:
            RestoreReport with one result per attempted file

        Raises:
            SnapshotNotFoundError: Unknown snapshot ID
            NoMatchingFilesError: Pattern filter matched nothing
            ProjectMismatchError: Snapshot was taken in another project root
        """
        files = self.candidates(snapshot_id, patterns)

        if select is not None:
            allowed = set(files)
            chosen = [f for f in select(files) if f in allowed]
            if not chosen:
                return RestoreReport(snapshot_id=snapshot_id, cancelled=True)
            files = chosen

        results = self.store.restore_files(snapshot_id, files)
        return RestoreReport(snapshot_id=snapshot_id, results=results)
