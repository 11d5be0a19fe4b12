"""Single-instance lock for the watcher.

The lock is a PID file; it counts as held while the recorded process is
alive. Stale files left by a crashed watcher are cleaned up on inspection.
"""

from __future__ import annotations

import os
import signal
from pathlib import Path

from ..utils.fs import atomic_write
from ..utils.log import log_debug
from .errors import AlreadyRunningError


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists, owned by someone else
        return True
    except OSError:
        return False
    return True


class InstanceLock:
    """PID-file lock guarding against two watchers running at once."""

    def __init__(self, pid_path: Path | str):
        self.pid_path = Path(pid_path)

    def read_pid(self) -> int | None:
        """Return the PID recorded in the lock file, if any."""
        try:
            raw = self.pid_path.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    def is_running(self) -> bool:
        """Check whether a live process holds the lock.

        Removes the PID file when its process is gone.
        """
        if not self.pid_path.exists():
            return False

        pid = self.read_pid()
        if pid is not None and _pid_alive(pid):
            return True

        log_debug(f"Removing stale PID file {self.pid_path}")
        self._cleanup()
        return False

    def acquire(self, pid: int | None = None) -> None:
        """Take the lock for ``pid`` (defaults to the current process).

        Raises:
            AlreadyRunningError: If another live process holds the lock
        """
        own_pid = pid if pid is not None else os.getpid()
        if self.is_running():
            holder = self.read_pid()
            if holder is not None and holder != own_pid:
                raise AlreadyRunningError(holder)
        atomic_write(self.pid_path, str(own_pid), mode="w")

    def release(self, pid: int | None = None) -> None:
        """Drop the lock if it is held by ``pid`` (defaults to the current process)."""
        own_pid = pid if pid is not None else os.getpid()
        if self.read_pid() == own_pid:
            self._cleanup()

    def terminate(self) -> bool:
        """Send SIGTERM to the process holding the lock.

        Returns:
            True if a running watcher was signalled
        """
        pid = self.read_pid()
        if pid is None:
            return False

        try:
            os.kill(pid, signal.SIGTERM)
        except OSError:
            self._cleanup()
            return False

        self._cleanup()
        return True

    def _cleanup(self) -> None:
        try:
            self.pid_path.unlink()
        except FileNotFoundError:
            pass
