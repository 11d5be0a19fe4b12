"""Utility modules for undoai."""

from .fs import atomic_write, dir_size, ensure_dir, is_regular_file, safe_json_load, safe_stat
from .env import get_home_dir, get_project_root, get_undoai_dir, is_debug_mode
from .globs import match, match_any, match_component
from .log import log_debug, log_error, log_info, log_warning

__all__ = [
    "atomic_write",
    "dir_size",
    "ensure_dir",
    "is_regular_file",
    "safe_json_load",
    "safe_stat",
    "get_home_dir",
    "get_project_root",
    "get_undoai_dir",
    "is_debug_mode",
    "match",
    "match_any",
    "match_component",
    "log_debug",
    "log_error",
    "log_info",
    "log_warning",
]
