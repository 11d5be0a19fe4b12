"""Tests for the watch session."""

import os

import pytest

from undoai.config.types import UndoConfig
from undoai.core.aggregator import ChangeAggregator
from undoai.core.classifier import (
    REASON_BELOW_THRESHOLD,
    REASON_BURST_SIZE,
    REASON_HIGH_VELOCITY,
    REASON_IMPORTANT_FILE,
)
from undoai.core.errors import AlreadyRunningError
from undoai.core.instance_lock import InstanceLock
from undoai.core.session import WatchSession
from undoai.core.snapshot_store import SnapshotStore

from .test_aggregator import FakeObserver, FakeTimers


class FakeClock:
    def __init__(self, start: float = 10_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeAggregator:
    def __init__(self, watch_path, on_flush, config, ignore_dirs=()):
        self.watch_path = watch_path
        self.on_flush = on_flush
        self.config = config
        self.ignore_dirs = list(ignore_dirs)
        self.started = False
        self.stopped = False

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def is_alive(self):
        return self.started and not self.stopped


@pytest.fixture
def temp_project(tmp_path):
    project = tmp_path / "project"
    project.mkdir()
    for name in ("a.py", "b.py", "c.py", "package.json"):
        (project / name).write_text(f"# {name}")
    return project


@pytest.fixture
def store(tmp_path, temp_project):
    return SnapshotStore(tmp_path / ".undoai", temp_project)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def lock(tmp_path):
    return InstanceLock(tmp_path / ".undoai" / "daemon.pid")


@pytest.fixture
def session(temp_project, store, clock, lock):
    s = WatchSession(temp_project, store, UndoConfig(), lock, aggregator_factory=FakeAggregator, clock=clock)
    s.start()
    yield s
    s.stop()


def _paths(project, *names):
    return frozenset(str(project / n) for n in names)


class TestLifecycle:
    def test_start_initializes_storage_and_watcher(self, session, store):
        assert store.is_initialized()
        assert session.aggregator.started
        assert session.active

    def test_no_baseline_snapshot_on_start(self, session, store):
        """The first snapshot waits for the first qualifying batch."""
        assert store.list_snapshots() == []

    def test_lock_held_while_running(self, session, lock):
        assert lock.read_pid() == os.getpid()
        assert lock.is_running()

    def test_stop_releases_lock_and_stops_watcher(self, session, lock):
        session.stop()

        assert session.aggregator.stopped
        assert not session.active
        assert lock.read_pid() is None

    def test_second_watcher_refused(self, temp_project, store, lock):
        lock.acquire(pid=os.getppid())
        second = WatchSession(temp_project, store, lock=lock, aggregator_factory=FakeAggregator)

        with pytest.raises(AlreadyRunningError):
            second.start()
        assert not second.aggregator.started

    def test_storage_root_is_not_watched(self, session, store):
        assert session.aggregator.ignore_dirs == [store.root_dir]

    def test_failed_start_releases_lock(self, temp_project, store, lock):
        class Broken(FakeAggregator):
            def start(self):
                raise OSError("no watches left")

        s = WatchSession(temp_project, store, lock=lock, aggregator_factory=Broken)

        with pytest.raises(OSError):
            s.start()
        assert lock.read_pid() is None


class TestHandleBatch:
    def test_burst_creates_ai_snapshot(self, session, store, temp_project, clock):
        clock.advance(5_000)
        outcome = session.handle_batch(_paths(temp_project, "a.py", "b.py", "c.py"))

        assert outcome.decision.reason == REASON_BURST_SIZE
        assert outcome.snapshot_id is not None
        meta = store.get_snapshot_metadata(outcome.snapshot_id)
        assert meta.label == "AI_BURST"
        assert meta.file_count == 3
        assert meta.changed_files == sorted(_paths(temp_project, "a.py", "b.py", "c.py"))

    def test_important_file_alone(self, session, temp_project, clock):
        clock.advance(5_000)
        outcome = session.handle_batch(_paths(temp_project, "package.json"))

        assert outcome.decision.reason == REASON_IMPORTANT_FILE
        assert outcome.snapshot_id is not None

    def test_single_plain_file_only_reported(self, session, store, temp_project, clock):
        clock.advance(5_000)
        outcome = session.handle_batch(_paths(temp_project, "a.py"))

        assert not outcome.decision.should_snapshot
        assert outcome.decision.reason == REASON_BELOW_THRESHOLD
        assert outcome.snapshot_id is None
        assert store.list_snapshots() == []

    def test_velocity_measured_between_flushes(self, session, store, temp_project, clock):
        clock.advance(5_000)
        session.handle_batch(_paths(temp_project, "a.py"))

        clock.advance(500)
        fast = session.handle_batch(_paths(temp_project, "a.py", "b.py"))
        assert fast.decision.reason == REASON_HIGH_VELOCITY
        assert fast.snapshot_id is not None

        clock.advance(1_500)
        slow = session.handle_batch(_paths(temp_project, "a.py", "b.py"))
        assert not slow.decision.should_snapshot

    def test_first_batch_measured_from_start(self, session, temp_project, clock):
        clock.advance(300)
        outcome = session.handle_batch(_paths(temp_project, "a.py", "b.py"))

        assert outcome.decision.reason == REASON_HIGH_VELOCITY

    def test_storage_failure_is_reported_not_raised(self, session, temp_project, clock, monkeypatch):
        def fail(batch, label):
            raise OSError("disk full")

        monkeypatch.setattr(session.store, "create_snapshot", fail)
        outcome = session.handle_batch(_paths(temp_project, "a.py", "b.py", "c.py"))

        assert outcome.decision.should_snapshot
        assert outcome.snapshot_id is None
        assert session.last_outcome is outcome


class TestPipeline:
    def test_raw_events_to_snapshot(self, temp_project, store, clock):
        """Raw events flow through debounce and classification into a snapshot."""
        timers = FakeTimers()
        observer = FakeObserver()

        def factory(path, on_flush, config, ignore_dirs=()):
            return ChangeAggregator(
                path,
                on_flush,
                config,
                timer_factory=timers,
                observer_factory=lambda: observer,
                ignore_dirs=ignore_dirs,
            )

        s = WatchSession(temp_project, store, clock=clock, aggregator_factory=factory)
        s.start()
        try:
            for name in ("a.py", "b.py", "c.py", "a.py"):
                s.aggregator.on_raw_event(str(temp_project / name), "modified")
            clock.advance(2_000)
            timers.last.fire()
        finally:
            s.stop()

        snapshots = store.list_snapshots()
        assert len(snapshots) == 1
        assert snapshots[0].metadata.file_count == 3

    def test_storage_inside_project_does_not_retrigger(self, temp_project, clock):
        """Writing a snapshot into a watched tree does not cause another snapshot."""
        store = SnapshotStore(temp_project / ".undoai", temp_project)
        timers = FakeTimers()
        observer = FakeObserver()

        def factory(path, on_flush, config, ignore_dirs=()):
            return ChangeAggregator(
                path,
                on_flush,
                config,
                timer_factory=timers,
                observer_factory=lambda: observer,
                ignore_dirs=ignore_dirs,
            )

        s = WatchSession(temp_project, store, clock=clock, aggregator_factory=factory)
        s.start()
        try:
            for name in ("a.py", "b.py", "c.py"):
                s.aggregator.on_raw_event(str(temp_project / name), "modified")
            clock.advance(2_000)
            timers.last.fire()

            written = list(store.snapshots_dir.rglob("*"))
            assert len(written) >= 3
            for path in written:
                s.aggregator.on_raw_event(str(path), "added")

            assert s.aggregator.pending_count() == 0
        finally:
            s.stop()

        assert len(store.list_snapshots()) == 1

    def test_run_forever_ends_when_watcher_dies(self, temp_project, store, clock, lock):
        observer = FakeObserver()

        def factory(path, on_flush, config, ignore_dirs=()):
            return ChangeAggregator(
                path, on_flush, config, observer_factory=lambda: observer, ignore_dirs=ignore_dirs
            )

        s = WatchSession(temp_project, store, lock=lock, clock=clock, aggregator_factory=factory)
        s.start()
        observer.crashed = True

        assert s.run_forever(poll_interval=0.01) is False
        assert not s.active
        assert lock.read_pid() is None
