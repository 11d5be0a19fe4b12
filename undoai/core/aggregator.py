"""Change event aggregation.

Collects raw filesystem events for a watched directory into a pending set of
unique paths and hands the set to a flush callback once no event has arrived
for the debounce delay. Every event restarts the delay, so a long burst is
flushed once, after it pauses.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any, Callable, Iterable, Literal, Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler, FileSystemMovedEvent
from watchdog.observers import Observer

from ..config.types import WatchConfig
from ..utils.log import log_debug, log_error


ChangeKind = Literal["added", "modified", "removed"]
ChangeBatch = frozenset


class TimerLike(Protocol):
    def start(self) -> None: ...
    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerLike]
FlushCallback = Callable[[frozenset], None]
ErrorSink = Callable[[BaseException], None]


def _default_timer(interval: float, fn: Callable[[], None]) -> TimerLike:
    timer = threading.Timer(interval, fn)
    timer.daemon = True
    return timer


def _default_error_sink(error: BaseException) -> None:
    log_error(f"Watcher error: {error}")


def _is_within(path: str, directory: str) -> bool:
    return path == directory or path.startswith(directory.rstrip(os.sep) + os.sep)


class _EventBridge(FileSystemEventHandler):
    """Forwards watchdog file events to the aggregator."""

    def __init__(self, aggregator: ChangeAggregator):
        super().__init__()
        self.aggregator = aggregator

    def _forward(self, path: Any, kind: ChangeKind) -> None:
        try:
            self.aggregator.on_raw_event(os.fsdecode(path), kind)
        except Exception as e:
            self.aggregator.report_error(e)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path, "added")

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path, "modified")

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path, "removed")

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        # A rename counts as a removal of the old path and an addition of the new one
        self._forward(event.src_path, "removed")
        if isinstance(event, FileSystemMovedEvent):
            self._forward(event.dest_path, "added")


class ChangeAggregator:
    """Debounces raw filesystem events into change batches."""

    def __init__(
        self,
        watch_path: Path | str,
        on_flush: FlushCallback,
        config: WatchConfig | None = None,
        *,
        on_error: ErrorSink | None = None,
        timer_factory: TimerFactory | None = None,
        observer_factory: Callable[[], Any] | None = None,
        ignore_dirs: Iterable[Path | str] = (),
    ):
        """Initialize the aggregator.

        Args:
            watch_path: Directory to watch (recursively)
            on_flush: Called once per quiet period with the pending paths
            config: Debounce delay and ignore patterns
            on_error: Receives event-source and callback errors
            timer_factory: Builds the quiet-period timer (threading.Timer by default)
            observer_factory: Builds the event source (watchdog Observer by default)
            ignore_dirs: Directories whose contents never count as changes
        """
        self.watch_path = Path(os.path.abspath(watch_path))
        self.config = config or WatchConfig()
        self._on_flush = on_flush
        self._on_error = on_error or _default_error_sink
        self._timer_factory = timer_factory or _default_timer
        self._observer_factory = observer_factory or Observer
        self._ignore_dirs = [os.path.abspath(d) for d in ignore_dirs]

        self._lock = threading.Lock()
        # Held while the flush callback runs; raw events never take it
        self._flush_lock = threading.RLock()
        self._pending: set[str] = set()
        self._timer: TimerLike | None = None
        self._generation = 0
        self._running = False
        self._observer: Any = None
        self._source_failed = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Begin receiving filesystem events for the watched directory."""
        if self._running:
            raise RuntimeError("Aggregator already started")

        observer = self._observer_factory()
        observer.schedule(_EventBridge(self), str(self.watch_path), recursive=True)
        with self._lock:
            self._running = True
        try:
            observer.start()
        except Exception:
            with self._lock:
                self._running = False
            raise
        self._observer = observer
        self._source_failed = False
        log_debug(f"Watching {self.watch_path}")

    def stop(self) -> None:
        """Stop watching and drop any pending, unflushed changes.

        Waits for a flush that is already running to finish.
        """
        with self._lock:
            self._running = False
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            dropped = len(self._pending)
            self._pending.clear()

        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            if observer is not threading.current_thread():
                observer.join()

        with self._flush_lock:
            pass

        if dropped:
            log_debug(f"Dropped {dropped} unflushed change(s) on stop")

    def is_ignored(self, path: str) -> bool:
        abs_path = os.path.abspath(path)
        rel = os.path.relpath(abs_path, self.watch_path)
        if rel in (os.curdir, os.pardir) or rel.startswith(os.pardir + os.sep):
            return True
        if any(_is_within(abs_path, d) for d in self._ignore_dirs):
            return True
        return self.config.should_ignore(rel.replace(os.sep, "/"))

    def is_alive(self) -> bool:
        """Check that the event source is still delivering events.

        A source that died while the aggregator runs (e.g. the inotify
        watch limit was hit) is reported to the error sink once.
        """
        observer = self._observer
        if not self._running or observer is None:
            return False
        if observer.is_alive():
            return True
        if not self._source_failed:
            self._source_failed = True
            self.report_error(RuntimeError("File watcher stopped unexpectedly"))
        return False

    def on_raw_event(self, path: str, kind: ChangeKind = "modified") -> None:
        """Record a raw event and restart the quiet-period timer.

        All event kinds are aggregated the same way.
        """
        if not self._running or self.is_ignored(path):
            return

        log_debug(f"[{kind}] {path}")
        with self._lock:
            if not self._running:
                return
            self._pending.add(os.path.abspath(path))
            self._generation += 1
            generation = self._generation
            if self._timer is not None:
                self._timer.cancel()
            self._timer = self._timer_factory(
                self.config.debounce_seconds,
                lambda: self._on_quiet(generation),
            )
            self._timer.start()

    def _on_quiet(self, generation: int) -> None:
        with self._flush_lock:
            with self._lock:
                # A newer event or stop() has superseded this timer
                if not self._running or generation != self._generation:
                    return
                self._timer = None
                if not self._pending:
                    return
                batch = frozenset(self._pending)
                self._pending = set()

            try:
                self._on_flush(batch)
            except Exception as e:
                self.report_error(e)

    def report_error(self, error: BaseException) -> None:
        try:
            self._on_error(error)
        except Exception as e:
            log_error(f"Error sink failed: {e}")

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def clear(self) -> None:
        """Drop pending changes without flushing."""
        with self._lock:
            self._pending.clear()
