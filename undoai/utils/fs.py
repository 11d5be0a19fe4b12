"""File system utilities for undoai.

Replacement writes that never leave a torn file, plus tolerant readers used
by the config loader and the snapshot store.
"""

from __future__ import annotations

import json
import os
import stat
import tempfile
from pathlib import Path
from typing import Any


def _umask_file_mode() -> int:
    # The umask can only be read by setting it
    mask = os.umask(0)
    os.umask(mask)
    return 0o666 & ~mask


# Permission bits open() would give a brand new file
NEW_FILE_MODE = _umask_file_mode()


def atomic_write(file_path: Path | str, content: str | bytes, mode: str = "w") -> None:
    """Replace a file's content in one step.

    Content goes to a sibling temp file that is renamed over the target, so
    readers see either the old or the new file. The result looks like an
    in-place overwrite: an existing target keeps its permission bits, a new
    one gets the umask default, and a symlink is written through rather
    than replaced.

    Args:
        file_path: Target file path (missing parent directories are created)
        content: Content to write
        mode: 'w' for text, 'wb' for bytes
    """
    path = Path(file_path)
    if path.is_symlink():
        path = Path(os.path.realpath(path))
    path.parent.mkdir(parents=True, exist_ok=True)

    current = safe_stat(path)
    perms = stat.S_IMODE(current.st_mode) if current is not None else NEW_FILE_MODE

    # Same directory so os.replace stays a rename
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, mode) as f:
            f.write(content)
        os.chmod(tmp_path, perms)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def ensure_dir(dir_path: Path | str) -> Path:
    """Create a directory (and parents) if needed and return it."""
    path = Path(dir_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def is_regular_file(file_path: Path | str) -> bool:
    """Check that a path exists and is a regular file (not a directory)."""
    try:
        return Path(file_path).is_file()
    except OSError:
        return False


def safe_json_load(file_path: Path | str, default: Any = None) -> Any:
    """Load a JSON file, or return ``default`` ({} if None) when it is unreadable."""
    try:
        with open(file_path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError, UnicodeDecodeError):
        return default if default is not None else {}


def safe_stat(file_path: Path | str) -> os.stat_result | None:
    """stat() that returns None instead of raising."""
    try:
        return Path(file_path).stat()
    except OSError:
        return None


def dir_size(dir_path: Path | str) -> int:
    """Sum the byte size of every file below a directory.

    Files that disappear mid-walk are skipped.
    """
    total = 0
    for root, _, files in os.walk(dir_path):
        for name in files:
            st = safe_stat(Path(root) / name)
            if st is not None:
                total += st.st_size
    return total
