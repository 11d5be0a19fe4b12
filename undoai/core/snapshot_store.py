"""Snapshot storage for undoai.

Each snapshot is a directory holding one gzip blob per captured file plus a
``metadata.json`` record:

    <root>/snapshots/<snapshotId>/metadata.json
    <root>/snapshots/<snapshotId>/files/<encodedRelativePath>.gz
"""

from __future__ import annotations

import gzip
import json
import os
import shutil
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Literal

from ..utils.fs import atomic_write, dir_size, ensure_dir, is_regular_file
from ..utils.log import log_debug, log_warning
from . import path_codec
from .errors import (
    BlobNotFoundError,
    PathCodecError,
    ProjectMismatchError,
    SnapshotNotFoundError,
    StorageNotInitializedError,
)


SnapshotLabel = Literal["AI_BURST", "AUTO"]

LABEL_AI_BURST: SnapshotLabel = "AI_BURST"
LABEL_AUTO: SnapshotLabel = "AUTO"


def _now_ms() -> int:
    return int(time.time() * 1000)


def iso_from_millis(timestamp: int) -> str:
    """Format a millisecond epoch timestamp as ISO-8601 UTC (``...Z``)."""
    dt = datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{timestamp % 1000:03d}Z"


@dataclass
class SnapshotMetadata:
    """Metadata for a snapshot."""
    timestamp: int
    project_root: str
    changed_files: list[str] = field(default_factory=list)
    label: SnapshotLabel = LABEL_AI_BURST
    date: str = ""

    def __post_init__(self) -> None:
        if not self.date:
            self.date = iso_from_millis(self.timestamp)

    @property
    def file_count(self) -> int:
        return len(self.changed_files)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "timestamp": self.timestamp,
            "date": self.date,
            "projectRoot": self.project_root,
            "changedFiles": list(self.changed_files),
            "fileCount": self.file_count,
            "label": self.label,
        }

    @classmethod
    def from_dict(cls, data: dict) -> SnapshotMetadata:
        """Create from dictionary."""
        label = data.get("label")
        files = data.get("changedFiles", [])
        return cls(
            timestamp=int(data.get("timestamp", 0)),
            project_root=str(data.get("projectRoot", "")),
            changed_files=[str(f) for f in files] if isinstance(files, list) else [],
            label=label if label in (LABEL_AI_BURST, LABEL_AUTO) else LABEL_AUTO,
            date=str(data.get("date", "")),
        )


@dataclass
class SnapshotEntry:
    """A snapshot ID paired with its metadata."""
    id: str
    metadata: SnapshotMetadata


@dataclass
class FileRestoreResult:
    """Outcome of restoring one file."""
    path: str
    success: bool
    error: str | None = None


def format_bytes(num_bytes: int) -> str:
    """Format a byte count as a human-readable string."""
    if num_bytes <= 0:
        return "0 Bytes"

    units = ["Bytes", "KB", "MB", "GB", "TB"]
    value = float(num_bytes)
    idx = 0
    while value >= 1024 and idx < len(units) - 1:
        value /= 1024
        idx += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {units[idx]}"


class SnapshotStore:
    """Manages snapshot storage and retrieval."""

    METADATA_NAME = "metadata.json"
    FILES_DIR = "files"
    BLOB_SUFFIX = ".gz"

    def __init__(self, root_dir: Path | str, project_root: Path | str):
        """Initialize snapshot store.

        Args:
            root_dir: undoai root directory (snapshots live in ``root_dir/snapshots``)
            project_root: Project root the caller is working in
        """
        self.root_dir = Path(root_dir)
        self.project_root = Path(os.path.abspath(project_root))

    @property
    def snapshots_dir(self) -> Path:
        return self.root_dir / "snapshots"

    def init(self) -> None:
        """Create the storage directory structure."""
        ensure_dir(self.snapshots_dir)

    def is_initialized(self) -> bool:
        return self.root_dir.is_dir() and self.snapshots_dir.is_dir()

    def _require_initialized(self) -> None:
        if not self.is_initialized():
            raise StorageNotInitializedError(
                f"Snapshot storage not initialized: {self.snapshots_dir}"
            )

    def snapshot_dir(self, snapshot_id: str) -> Path:
        return self.snapshots_dir / snapshot_id

    def files_dir(self, snapshot_id: str) -> Path:
        return self.snapshot_dir(snapshot_id) / self.FILES_DIR

    def blob_path(self, file_path: Path | str, snapshot_id: str) -> Path:
        """Locate the blob that stores ``file_path`` inside a snapshot."""
        safe_name = path_codec.encode(file_path, self.project_root)
        return self.files_dir(snapshot_id) / (safe_name + self.BLOB_SUFFIX)

    def _allocate(self, now_ms: int) -> tuple[str, int]:
        """Claim a fresh snapshot directory.

        The ID is the capture time in milliseconds; if that directory is
        already taken the timestamp moves forward one millisecond at a time.
        """
        timestamp = now_ms
        while True:
            snapshot_id = str(timestamp)
            try:
                self.snapshot_dir(snapshot_id).mkdir()
            except FileExistsError:
                timestamp += 1
                continue
            self.files_dir(snapshot_id).mkdir()
            return snapshot_id, timestamp

    def create_snapshot(
        self,
        batch: Iterable[str | Path],
        label: SnapshotLabel = LABEL_AI_BURST,
    ) -> str:
        """Capture the files in ``batch`` into a new snapshot.

        Files that no longer exist, or that fail to read, compress or write,
        are skipped. Only captured files are listed in the metadata.

        Args:
            batch: Absolute paths of changed files
            label: Classification tag stored with the snapshot

        Returns:
            The new snapshot ID
        """
        self._require_initialized()

        snapshot_id, timestamp = self._allocate(_now_ms())
        captured: list[str] = []
        skipped = 0

        for entry in batch:
            file_path = str(entry)
            if not is_regular_file(file_path):
                log_debug(f"Skipping vanished file: {file_path}")
                skipped += 1
                continue
            try:
                self._capture_file(file_path, snapshot_id)
            except (OSError, PathCodecError) as e:
                log_warning(f"Failed to copy file {file_path}: {e}")
                skipped += 1
                continue
            captured.append(file_path)

        metadata = SnapshotMetadata(
            timestamp=timestamp,
            project_root=str(self.project_root),
            changed_files=captured,
            label=label,
        )
        self.save_metadata(snapshot_id, metadata)

        if skipped:
            log_warning(f"Skipped {skipped} file(s) while creating snapshot {snapshot_id}")

        return snapshot_id

    def _capture_file(self, file_path: str, snapshot_id: str) -> None:
        blob = self.blob_path(file_path, snapshot_id)
        with open(file_path, "rb") as f:
            content = f.read()
        atomic_write(blob, gzip.compress(content), mode="wb")

    def save_metadata(self, snapshot_id: str, metadata: SnapshotMetadata) -> None:
        path = self.snapshot_dir(snapshot_id) / self.METADATA_NAME
        atomic_write(path, json.dumps(metadata.to_dict(), indent=2), mode="w")

    def restore_file(self, file_path: Path | str, snapshot_id: str) -> None:
        """Restore one file from a snapshot, overwriting the working copy.

        Args:
            file_path: Absolute path recorded in the snapshot
            snapshot_id: Snapshot to read from

        Raises:
            BlobNotFoundError: If the snapshot holds no blob for the file
        """
        blob = self.blob_path(file_path, snapshot_id)
        if not blob.is_file():
            raise BlobNotFoundError(f"Snapshot file not found: {blob.name}")

        with open(blob, "rb") as f:
            content = gzip.decompress(f.read())

        # atomic_write creates missing parent directories
        atomic_write(file_path, content, mode="wb")

    def _check_restorable(self, snapshot_id: str) -> SnapshotMetadata:
        self._require_initialized()
        metadata = self.get_snapshot_metadata(snapshot_id)
        if metadata is None:
            raise SnapshotNotFoundError(snapshot_id)
        if os.path.abspath(metadata.project_root) != str(self.project_root):
            raise ProjectMismatchError(metadata.project_root, str(self.project_root))
        return metadata

    def restore_files(self, snapshot_id: str, files: Iterable[str] | None = None) -> list[FileRestoreResult]:
        """Restore a set of files from a snapshot, one at a time.

        Args:
            snapshot_id: Snapshot to restore from
            files: Paths to restore (defaults to every captured file)

        Returns:
            One result per requested file, in order

        Raises:
            SnapshotNotFoundError: Unknown snapshot ID
            ProjectMismatchError: Snapshot belongs to another project root
        """
        metadata = self._check_restorable(snapshot_id)
        targets = list(files) if files is not None else list(metadata.changed_files)

        results: list[FileRestoreResult] = []
        for file_path in targets:
            try:
                self.restore_file(file_path, snapshot_id)
            except (OSError, EOFError, gzip.BadGzipFile, BlobNotFoundError, PathCodecError) as e:
                log_warning(f"Failed to restore file {file_path}: {e}")
                results.append(FileRestoreResult(path=file_path, success=False, error=str(e)))
                continue
            results.append(FileRestoreResult(path=file_path, success=True))
        return results

    def restore_snapshot(self, snapshot_id: str) -> int:
        """Restore every file in a snapshot.

        Returns:
            Number of files restored
        """
        return sum(1 for r in self.restore_files(snapshot_id) if r.success)

    def snapshot_ids(self) -> list[str]:
        """List snapshot IDs, newest first."""
        if not self.snapshots_dir.is_dir():
            return []

        ids = [
            entry.name
            for entry in self.snapshots_dir.iterdir()
            if entry.is_dir() and entry.name.isdigit()
        ]
        ids.sort(key=int, reverse=True)
        return ids

    def list_snapshots(self) -> list[SnapshotEntry]:
        """List all snapshots.

        Returns:
            Snapshots with readable metadata, newest first
        """
        snapshots = []
        for snapshot_id in self.snapshot_ids():
            metadata = self.get_snapshot_metadata(snapshot_id)
            if metadata is not None:
                snapshots.append(SnapshotEntry(id=snapshot_id, metadata=metadata))
        return snapshots

    def snapshot_count(self) -> int:
        return len(self.snapshot_ids())

    def get_snapshot_metadata(self, snapshot_id: str) -> SnapshotMetadata | None:
        """Get metadata for a specific snapshot.

        Args:
            snapshot_id: Snapshot ID

        Returns:
            SnapshotMetadata or None if missing or unreadable
        """
        metadata_path = self.snapshot_dir(snapshot_id) / self.METADATA_NAME
        if not metadata_path.is_file():
            return None

        try:
            with open(metadata_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            log_warning(f"Failed to read metadata for snapshot {snapshot_id}: {e}")
            return None
        if not isinstance(data, dict):
            log_warning(f"Failed to read metadata for snapshot {snapshot_id}")
            return None
        try:
            return SnapshotMetadata.from_dict(data)
        except (TypeError, ValueError) as e:
            log_warning(f"Invalid metadata for snapshot {snapshot_id}: {e}")
            return None

    def get_snapshot(self, snapshot_id: str) -> SnapshotEntry | None:
        metadata = self.get_snapshot_metadata(snapshot_id)
        if metadata is None:
            return None
        return SnapshotEntry(id=snapshot_id, metadata=metadata)

    def delete_snapshot(self, snapshot_id: str) -> bool:
        """Delete a snapshot.

        Returns:
            True if a snapshot directory was removed
        """
        snapshot_dir = self.snapshot_dir(snapshot_id)
        if not snapshot_dir.is_dir():
            return False
        shutil.rmtree(snapshot_dir)
        return True

    def prune(self, keep: int = 50) -> int:
        """Delete old snapshots, keeping the most recent.

        Args:
            keep: Number of snapshots to keep

        Returns:
            Number of snapshots deleted
        """
        ids = self.snapshot_ids()
        if len(ids) <= keep:
            return 0

        deleted = 0
        for snapshot_id in ids[keep:]:
            if self.delete_snapshot(snapshot_id):
                deleted += 1
        return deleted

    def total_storage_size(self) -> int:
        """Total bytes used by all snapshot containers."""
        if not self.snapshots_dir.is_dir():
            return 0
        return dir_size(self.snapshots_dir)
