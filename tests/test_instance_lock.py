"""Tests for the single-instance lock."""

import os
import signal

import pytest

from undoai.core import instance_lock as instance_lock_module
from undoai.core.errors import AlreadyRunningError
from undoai.core.instance_lock import InstanceLock


DEAD_PID = 2**31 - 2


@pytest.fixture
def lock(tmp_path):
    return InstanceLock(tmp_path / "daemon.pid")


class TestInstanceLock:
    def test_not_running_without_file(self, lock):
        assert not lock.is_running()
        assert lock.read_pid() is None

    def test_acquire_writes_pid(self, lock):
        lock.acquire()

        assert lock.pid_path.read_text() == str(os.getpid())
        assert lock.is_running()

    def test_reacquire_by_same_process(self, lock):
        lock.acquire()
        lock.acquire()

        assert lock.read_pid() == os.getpid()

    def test_live_holder_blocks_acquire(self, lock):
        lock.acquire(pid=os.getppid())

        with pytest.raises(AlreadyRunningError) as exc:
            lock.acquire()
        assert exc.value.pid == os.getppid()

    def test_stale_pid_is_cleaned_up(self, lock):
        lock.pid_path.write_text(str(DEAD_PID))

        assert not lock.is_running()
        assert not lock.pid_path.exists()

        lock.acquire()
        assert lock.read_pid() == os.getpid()

    def test_garbage_pid_file(self, lock):
        lock.pid_path.write_text("not a pid")

        assert not lock.is_running()
        assert not lock.pid_path.exists()

    def test_release_only_own_lock(self, lock):
        lock.acquire(pid=os.getppid())
        lock.release()

        assert lock.read_pid() == os.getppid()

        lock.release(pid=os.getppid())
        assert not lock.pid_path.exists()

    def test_terminate_signals_holder(self, lock, monkeypatch):
        sent = []
        monkeypatch.setattr(instance_lock_module.os, "kill", lambda pid, sig: sent.append((pid, sig)))
        lock.pid_path.write_text("4242")

        assert lock.terminate()
        assert sent == [(4242, signal.SIGTERM)]
        assert not lock.pid_path.exists()

    def test_terminate_without_holder(self, lock):
        assert not lock.terminate()

    def test_terminate_dead_holder(self, lock):
        lock.pid_path.write_text(str(DEAD_PID))

        assert not lock.terminate()
        assert not lock.pid_path.exists()
