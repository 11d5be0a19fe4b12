"""Glob matching for undoai.

Patterns are fnmatch-style; a leading ``**/`` also matches at the top level
and a trailing ``/**`` matches anything below a directory.
"""

from __future__ import annotations

import fnmatch


def _normalize(path: str) -> str:
    return path.replace("\\", "/")


def match(path: str, pattern: str) -> bool:
    """Check whether ``path`` matches ``pattern``.

    Args:
        path: Path to test (relative or absolute, any separator)
        pattern: Glob pattern

    Returns:
        True if the path matches
    """
    path = _normalize(path)
    pattern = _normalize(pattern)

    if fnmatch.fnmatchcase(path, pattern):
        return True

    # "**/x" also matches "x" at the root
    if pattern.startswith("**/") and match(path, pattern[3:]):
        return True

    # "dir/**" also matches "dir" itself
    if pattern.endswith("/**") and fnmatch.fnmatchcase(path, pattern[:-3]):
        return True

    if "/**/" in pattern:
        head, tail = pattern.split("/**/", 1)
        if match(path, f"{head}/{tail}"):
            return True

    return False


def match_any(path: str, patterns: list[str]) -> bool:
    """Check whether ``path`` matches at least one pattern."""
    return any(match(path, p) for p in patterns)


def match_component(path: str, pattern: str) -> bool:
    """Match the pattern against the whole path or any single component."""
    path = _normalize(path)
    if match(path, pattern):
        return True
    return any(fnmatch.fnmatchcase(part, pattern) for part in path.split("/") if part)
