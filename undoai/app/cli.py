"""undoai CLI.

Principles:
- 100% local: snapshots never leave this machine.
- Minimal muscle memory: `undoai watch`, `undoai restore`, `undoai stop`.
- Stdlib-only interactive UI.
"""

from __future__ import annotations

import argparse
import os
import sys
import time
from pathlib import Path
from typing import Sequence

from .. import __version__
from ..config import ConfigLoader, UndoConfig
from ..core.errors import NoMatchingFilesError, UndoError
from ..core.instance_lock import InstanceLock
from ..core.restore_flow import RestoreFlow, split_patterns
from ..core.session import WatchSession
from ..core.snapshot_store import LABEL_AI_BURST, SnapshotEntry, SnapshotStore, format_bytes
from ..utils.env import get_project_root, get_undoai_dir


DEFAULT_LIST_LIMIT = 20
PREVIEW_LIMIT = 10


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="undoai",
        description="Free, local undo button for AI coding",
    )
    parser.add_argument(
        "--version",
        "-v",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output",
    )

    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("watch", help="Start watching for file changes")

    restore = subparsers.add_parser("restore", help="Restore files from a snapshot")
    restore.add_argument(
        "-i",
        "--interactive",
        action="store_true",
        help="Select specific files to restore",
    )
    restore.add_argument(
        "-f",
        "--files",
        help="Restore specific files (comma-separated patterns)",
    )
    restore.add_argument(
        "-p",
        "--pattern",
        help="Restore files matching glob pattern",
    )
    restore.add_argument(
        "--snapshot",
        help="Snapshot ID to restore (skips the snapshot picker)",
    )
    restore.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Do not ask for confirmation",
    )

    subparsers.add_parser("list", help="List recent snapshots")
    subparsers.add_parser("status", help="Show undoai status")
    subparsers.add_parser("stop", help="Stop watching daemon")

    return parser


def main(args: list[str] | None = None) -> int:
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.debug:
        os.environ["UNDOAI_DEBUG"] = "1"

    if not parsed.command:
        parser.print_help()
        return 1

    project_root = get_project_root()
    config = ConfigLoader(project_root=project_root).config
    root_dir = _storage_root(config)
    store = SnapshotStore(root_dir, project_root)
    lock = InstanceLock(root_dir / "daemon.pid")

    try:
        if parsed.command == "watch":
            return cmd_watch(store, lock, config)
        if parsed.command == "restore":
            return cmd_restore(parsed, store)
        if parsed.command == "list":
            return cmd_list(store)
        if parsed.command == "status":
            return cmd_status(store, lock)
        if parsed.command == "stop":
            return cmd_stop(lock)
    except UndoError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


def cmd_watch(store: SnapshotStore, lock: InstanceLock, config: UndoConfig) -> int:
    if lock.is_running():
        print("Error: undoai is already watching", file=sys.stderr)
        print('Use "undoai stop" to stop watching', file=sys.stderr)
        return 1

    session = WatchSession(store.project_root, store, config, lock)
    session.start()

    print("undoai is now watching")
    print(f"  Project: {store.project_root}")
    print(f"  Storage: {store.root_dir}")
    print("  100% local - your code never leaves this machine")
    print()
    print("Smart detection enabled:")
    print(f"  - >={config.burst.burst_size} files changed = snapshot")
    print("  - Important files (.env, package.json, etc) = snapshot")
    print("  - High velocity changes = snapshot")
    print()
    print("Watching for file changes... (Press Ctrl+C to stop)")

    healthy = session.run_forever()
    print("Stopped watching.")
    return 0 if healthy else 1


def cmd_restore(args: argparse.Namespace, store: SnapshotStore) -> int:
    flow = RestoreFlow(store)
    snapshots = flow.available_snapshots()
    if not snapshots:
        print("Error: No snapshots available", file=sys.stderr)
        print('Start watching with "undoai watch" to create snapshots')
        return 1

    if args.snapshot:
        entry = store.get_snapshot(args.snapshot)
        if entry is None:
            print(f"Error: Snapshot not found: {args.snapshot}", file=sys.stderr)
            return 1
    else:
        entry = select_snapshot(snapshots)
        if entry is None:
            print("Restore cancelled")
            return 0

    patterns = split_patterns(args.files) + split_patterns(args.pattern)
    try:
        files = flow.candidates(entry.id, patterns)
    except NoMatchingFilesError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if patterns:
        print(f"Matched {len(files)} files from pattern")

    if args.interactive:
        files = select_files(files, store.project_root)
        if not files:
            print("No files selected")
            return 0

    _print_preview(files, store.project_root)

    if not args.yes and not _confirm("Continue with restore? [Y/n] ", default=True):
        print("Restore cancelled")
        return 0

    chosen = list(files)
    report = flow.restore(entry.id, patterns, select=lambda _candidates: chosen)

    for failure in report.failed:
        print(f"Failed to restore {_rel(failure.path, store.project_root)}: {failure.error}", file=sys.stderr)

    count = report.restored_count
    print()
    print(f"Restored {count} file{'s' if count != 1 else ''}")
    print(f"From: {format_relative_time(entry.metadata.timestamp)}")
    return 0


def cmd_list(store: SnapshotStore) -> int:
    snapshots = store.list_snapshots()
    if not snapshots:
        print("No snapshots found.")
        return 0

    shown = snapshots[:DEFAULT_LIST_LIMIT]

    print("#   ID              When           Files  Label")
    for idx, entry in enumerate(shown, 1):
        meta = entry.metadata
        when = format_relative_time(meta.timestamp)
        print(f"{idx:<3} {entry.id:<15} {when:<14} {meta.file_count:<6} {_label(meta.label)}")

    if len(snapshots) > DEFAULT_LIST_LIMIT:
        print(f"\nShowing last {DEFAULT_LIST_LIMIT} of {len(snapshots)} snapshots.")

    return 0


def cmd_status(store: SnapshotStore, lock: InstanceLock) -> int:
    print("undoai Status")
    print()

    if lock.is_running():
        print(f"Running (PID: {lock.read_pid()})")
    else:
        print("Not running")
    print()

    if store.is_initialized():
        print("Storage:")
        print(f"   Location: {store.root_dir}")
        print(f"   Snapshots: {store.snapshot_count()}")
        print(f"   Size: {format_bytes(store.total_storage_size())}")
    else:
        print("Storage: Not initialized")
        print('   Run "undoai watch" to initialize')

    print()
    print("Commands:")
    print("   undoai watch    - Start watching")
    print("   undoai restore  - Restore snapshot")
    print("   undoai stop     - Stop watching")
    print("   undoai status   - Show this status")
    return 0


def cmd_stop(lock: InstanceLock) -> int:
    if not lock.is_running():
        print("Error: undoai is not running", file=sys.stderr)
        print('Use "undoai watch" to start watching')
        return 1

    if lock.terminate():
        print("undoai stopped")
        return 0

    print("Error: Failed to stop undoai", file=sys.stderr)
    return 1


def select_snapshot(snapshots: list[SnapshotEntry]) -> SnapshotEntry | None:
    """Prompt for a snapshot; returns None when the user cancels."""
    while True:
        print("\nAvailable snapshots (enter number, or 'q' to cancel):")
        for idx, entry in enumerate(snapshots, 1):
            meta = entry.metadata
            when = format_relative_time(meta.timestamp)
            plural = "s" if meta.file_count != 1 else ""
            print(f"  {idx:>2}. [{when}]  {meta.file_count} file{plural}  {_label(meta.label)}")

        raw = input("> ").strip()
        if raw.lower() in {"q", "quit", "exit", "cancel"}:
            return None
        if raw.isdigit() and 1 <= int(raw) <= len(snapshots):
            return snapshots[int(raw) - 1]
        print("Invalid number.")


def select_files(files: list[str], project_root: Path) -> list[str]:
    """Prompt for a subset of files (e.g. ``1,3,5-7`` or ``all``)."""
    print("\nSelect files to restore:")
    for idx, path in enumerate(files, 1):
        print(f"  {idx:>2}. {_rel(path, project_root)}")

    raw = input("Files (e.g. 1,3,5-7 or 'all'; empty to cancel): ").strip().lower()
    if not raw:
        return []
    if raw == "all":
        return list(files)
    return [files[i] for i in parse_index_list(raw, len(files))]


def parse_index_list(raw: str, limit: int) -> list[int]:
    """Parse ``1,3,5-7`` into zero-based indexes below ``limit``, ignoring junk."""
    picked: list[int] = []
    for token in raw.split(","):
        token = token.strip()
        if not token:
            continue
        start_s, sep, end_s = token.partition("-")
        if not start_s.isdigit() or (sep and not end_s.isdigit()):
            continue
        start = int(start_s)
        end = int(end_s) if sep else start
        for n in range(start, end + 1):
            if 1 <= n <= limit and (n - 1) not in picked:
                picked.append(n - 1)
    return picked


def format_relative_time(timestamp_ms: int, now_ms: int | None = None) -> str:
    now = now_ms if now_ms is not None else int(time.time() * 1000)
    seconds = max(0, (now - timestamp_ms) // 1000)
    minutes = seconds // 60
    hours = minutes // 60
    days = hours // 24

    if days > 0:
        return f"{days} day{'s' if days > 1 else ''} ago"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if minutes > 0:
        return f"{minutes} min{'s' if minutes > 1 else ''} ago"
    return "just now"


def _print_preview(files: Sequence[str], project_root: Path) -> None:
    print()
    print(f"Preview: {len(files)} file{'s' if len(files) != 1 else ''} will be restored")
    for path in files[:PREVIEW_LIMIT]:
        print(f"  {_rel(path, project_root)}")
    if len(files) > PREVIEW_LIMIT:
        print(f"  ... and {len(files) - PREVIEW_LIMIT} more")
    print()
    print("Warning: current changes to these files will be overwritten")


def _confirm(prompt: str, default: bool) -> bool:
    raw = input(prompt).strip().lower()
    if not raw:
        return default
    return raw in {"y", "yes"}


def _label(label: str) -> str:
    return "AI" if label == LABEL_AI_BURST else "Auto"


def _rel(path: str, project_root: Path) -> str:
    try:
        return os.path.relpath(path, project_root)
    except ValueError:
        return path


def _storage_root(config: UndoConfig) -> Path:
    if config.storage_dir:
        return Path(config.storage_dir).expanduser()
    return get_undoai_dir()


if __name__ == "__main__":
    sys.exit(main())
