"""Configuration management for undoai."""

from .types import (
    BurstConfig,
    UndoConfig,
    WatchConfig,
)
from .loader import ConfigLoader

__all__ = [
    "BurstConfig",
    "UndoConfig",
    "WatchConfig",
    "ConfigLoader",
]
