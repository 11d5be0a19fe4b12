"""Logging helpers for undoai.

All diagnostics go to stderr with an ``[undoai]`` prefix; stdout is kept
for command output.
"""

from __future__ import annotations

import sys

from .env import is_debug_mode


PREFIX = "[undoai]"


def _emit(level: str, message: str) -> None:
    tag = f"{PREFIX} {level}: " if level else f"{PREFIX} "
    print(f"{tag}{message}", file=sys.stderr)


def log_debug(message: str) -> None:
    """Log debug message to stderr.
    
    Only outputs if UNDOAI_DEBUG is set.
    """
    if is_debug_mode():
        _emit("debug", message)


def log_info(message: str) -> None:
    _emit("", message)


def log_warning(message: str) -> None:
    _emit("warning", message)


def log_error(message: str) -> None:
    _emit("error", message)
