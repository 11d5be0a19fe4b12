"""Core modules for undoai."""

from .aggregator import ChangeAggregator
from .classifier import BurstDecision, ImportantFileMatcher, classify
from .instance_lock import InstanceLock
from .restore_flow import RestoreFlow, RestoreReport
from .session import BatchOutcome, WatchSession
from .snapshot_store import SnapshotEntry, SnapshotMetadata, SnapshotStore

__all__ = [
    "BatchOutcome",
    "BurstDecision",
    "ChangeAggregator",
    "ImportantFileMatcher",
    "InstanceLock",
    "RestoreFlow",
    "RestoreReport",
    "SnapshotEntry",
    "SnapshotMetadata",
    "SnapshotStore",
    "WatchSession",
    "classify",
]
