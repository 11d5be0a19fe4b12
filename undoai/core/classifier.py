"""Burst classification.

Decides whether a flushed change batch is worth a snapshot. Checks run in
order and the first match wins: burst size, important file, high velocity.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Collection

from ..config.types import BurstConfig
from ..utils.globs import match_any


REASON_BURST_SIZE = "burst size"
REASON_IMPORTANT_FILE = "important file"
REASON_HIGH_VELOCITY = "high velocity"
REASON_BELOW_THRESHOLD = "below threshold"


@dataclass(frozen=True)
class BurstDecision:
    should_snapshot: bool
    reason: str


class ImportantFileMatcher:
    """Predicate for files that warrant a snapshot on their own.

    Patterns are matched against the path relative to the project root.
    """

    def __init__(self, project_root: Path | str, patterns: list[str]):
        self.project_root = os.path.abspath(project_root)
        self.patterns = list(patterns)

    def __call__(self, path: str) -> bool:
        rel = os.path.relpath(os.path.abspath(path), self.project_root)
        if rel.startswith(os.pardir):
            return False
        return match_any(rel, self.patterns)


def classify(
    batch: Collection[str],
    is_important: Callable[[str], bool],
    ms_since_prior_batch: float | None,
    config: BurstConfig | None = None,
) -> BurstDecision:
    """Decide whether a change batch should be snapshotted.

    Args:
        batch: Unique changed paths from one flush
        is_important: Predicate for files that always deserve a snapshot
        ms_since_prior_batch: Milliseconds since the previous flush (None if unknown)
        config: Thresholds (defaults to BurstConfig())

    Returns:
        BurstDecision with the verdict and the reason
    """
    cfg = config or BurstConfig()
    size = len(batch)

    if size >= cfg.burst_size:
        return BurstDecision(True, REASON_BURST_SIZE)

    if any(is_important(path) for path in batch):
        return BurstDecision(True, REASON_IMPORTANT_FILE)

    if (
        ms_since_prior_batch is not None
        and size >= cfg.velocity_min_files
        and ms_since_prior_batch < cfg.velocity_window_ms
    ):
        return BurstDecision(True, REASON_HIGH_VELOCITY)

    return BurstDecision(False, REASON_BELOW_THRESHOLD)
