"""Environment utilities for undoai."""

from __future__ import annotations

import os
from pathlib import Path


def is_debug_mode() -> bool:
    """Check if debug mode is enabled.
    
    Returns:
        True if UNDOAI_DEBUG is set to a truthy value
    """
    val = os.environ.get("UNDOAI_DEBUG", "").lower()
    return val in ("1", "true", "yes", "on")


def get_home_dir() -> Path:
    """Get user home directory.
    
    Returns:
        Path to home directory
    """
    return Path.home()


def get_undoai_dir() -> Path:
    """Get the undoai root directory (~/.undoai unless UNDOAI_HOME is set).
    
    Returns:
        Path holding snapshots, config.json and daemon.pid
    """
    val = os.environ.get("UNDOAI_HOME")
    if isinstance(val, str) and val.strip():
        return Path(val.strip()).expanduser()
    return get_home_dir() / ".undoai"


def get_project_root() -> Path:
    """Resolve the project root for CLI commands.

    UNDOAI_PROJECT_ROOT wins over the current working directory.
    """
    val = os.environ.get("UNDOAI_PROJECT_ROOT")
    if isinstance(val, str) and val.strip():
        return Path(val.strip()).expanduser().resolve()
    return Path.cwd().resolve()
