"""Watch session - wires the change aggregator to the snapshot store.

Each flushed batch is classified; qualifying batches become AI_BURST
snapshots. No baseline snapshot is taken on startup: the first snapshot is
the first batch that qualifies.
"""

from __future__ import annotations

import signal
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from ..config.types import UndoConfig
from ..utils.log import log_debug, log_error, log_info
from .aggregator import ChangeAggregator
from .classifier import BurstDecision, ImportantFileMatcher, classify
from .errors import UndoError
from .instance_lock import InstanceLock
from .snapshot_store import LABEL_AI_BURST, SnapshotStore


# Called as factory(project_root, on_flush, watch_config, ignore_dirs=[...])
AggregatorFactory = Callable[..., Any]


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(frozen=True)
class BatchOutcome:
    """What the session did with one flushed batch."""
    decision: BurstDecision
    file_count: int
    snapshot_id: str | None = None


class WatchSession:
    """Runs the capture pipeline for one project directory."""

    def __init__(
        self,
        project_root: Path | str,
        store: SnapshotStore,
        config: UndoConfig | None = None,
        lock: InstanceLock | None = None,
        *,
        aggregator_factory: AggregatorFactory | None = None,
        clock: Callable[[], float] | None = None,
    ):
        """Initialize the session.

        Args:
            project_root: Directory to watch
            store: Snapshot store for the same project root
            config: Watch and burst settings
            lock: Single-instance lock, taken on start and released on stop
            aggregator_factory: Builds the change aggregator
            clock: Millisecond clock used to measure time between batches
        """
        self.project_root = Path(project_root)
        self.store = store
        self.config = config or UndoConfig()
        self.lock = lock
        self._clock = clock or _monotonic_ms
        self._is_important = ImportantFileMatcher(self.project_root, self.config.burst.important_patterns)

        factory = aggregator_factory or ChangeAggregator
        # Snapshot writes under the storage root must not look like project changes
        self.aggregator = factory(
            self.project_root,
            self.handle_batch,
            self.config.watch,
            ignore_dirs=[self.store.root_dir],
        )

        self._last_flush_ms: float | None = None
        self._active = False
        self._stop_event = threading.Event()
        self.last_outcome: BatchOutcome | None = None

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        """Take the instance lock, prepare storage and start watching.

        Raises:
            AlreadyRunningError: If another watcher holds the lock
        """
        if self._active:
            return

        if self.lock is not None:
            self.lock.acquire()

        try:
            self.store.init()
            if self.store.snapshot_count() == 0:
                log_info("No snapshots yet; the first one is taken on the first qualifying change")

            self._last_flush_ms = self._clock()
            self._stop_event.clear()
            self.aggregator.start()
        except BaseException:
            if self.lock is not None:
                self.lock.release()
            raise

        self._active = True

    def stop(self) -> None:
        """Stop watching. Pending changes are dropped; a running capture finishes."""
        if not self._active:
            return
        self._active = False
        try:
            self.aggregator.stop()
        finally:
            if self.lock is not None:
                self.lock.release()
            self._stop_event.set()

    def handle_batch(self, batch: frozenset) -> BatchOutcome:
        """Classify one flushed batch and snapshot it if it qualifies."""
        now = self._clock()
        elapsed = None if self._last_flush_ms is None else now - self._last_flush_ms
        self._last_flush_ms = now

        decision = classify(batch, self._is_important, elapsed, self.config.burst)
        file_count = len(batch)

        if not decision.should_snapshot:
            log_info(f"{file_count} file(s) changed ({decision.reason})")
            outcome = BatchOutcome(decision=decision, file_count=file_count)
            self.last_outcome = outcome
            return outcome

        snapshot_id: str | None = None
        try:
            snapshot_id = self.store.create_snapshot(sorted(batch), LABEL_AI_BURST)
        except (UndoError, OSError) as e:
            log_error(f"Failed to create snapshot: {e}")
        else:
            log_info(f"Snapshot saved ({file_count} files changed)")
            log_info(f"Reason: {decision.reason}")
            log_debug(f"Snapshot ID: {snapshot_id}")

        outcome = BatchOutcome(decision=decision, file_count=file_count, snapshot_id=snapshot_id)
        self.last_outcome = outcome
        return outcome

    def run_forever(self, poll_interval: float = 0.5) -> bool:
        """Start (if needed) and block until SIGINT/SIGTERM, then stop.

        Returns:
            False if watching ended because the file watcher died
        """
        self.start()

        previous: Any = None
        in_main = threading.current_thread() is threading.main_thread()
        if in_main:
            previous = signal.signal(signal.SIGTERM, lambda *_: self._stop_event.set())

        healthy = True
        try:
            while not self._stop_event.wait(poll_interval):
                if not self.aggregator.is_alive():
                    log_error("File watcher is no longer running; stopping")
                    healthy = False
                    break
        except KeyboardInterrupt:
            log_debug("Interrupted")
        finally:
            if in_main and previous is not None:
                signal.signal(signal.SIGTERM, previous)
            self.stop()
        return healthy
