"""Flat storage names for project-relative paths.

``src/auth.ts`` is stored as ``src__auth.ts``. Inside a segment ``%`` is
written as ``%25`` and ``_`` as ``%5F``, so the ``__`` marker only ever
appears between segments and every name decodes to exactly one path.
"""

from __future__ import annotations

import os
from pathlib import Path, PurePath

from .errors import PathCodecError


MARKER = "__"

_ESCAPES = (("%", "%25"), ("_", "%5F"))


def _escape_segment(segment: str) -> str:
    for raw, escaped in _ESCAPES:
        segment = segment.replace(raw, escaped)
    return segment


def _unescape_segment(segment: str) -> str:
    for raw, escaped in reversed(_ESCAPES):
        segment = segment.replace(escaped, raw)
    return segment


def relative_parts(path: Path | str, project_root: Path | str) -> tuple[str, ...]:
    """Split ``path`` into its components relative to ``project_root``.

    Raises:
        PathCodecError: If the path is not below the project root
    """
    abs_path = Path(os.path.abspath(path))
    abs_root = Path(os.path.abspath(project_root))
    try:
        rel = abs_path.relative_to(abs_root)
    except ValueError as e:
        raise PathCodecError(f"{path} is outside project root {project_root}") from e
    if not rel.parts:
        raise PathCodecError(f"{path} is the project root itself")
    return rel.parts


def encode(path: Path | str, project_root: Path | str) -> str:
    """Map an absolute path below ``project_root`` to a flat storage name.

    Args:
        path: File path (absolute, or relative to the cwd)
        project_root: Watched project directory

    Returns:
        Storage-safe name without directory separators
    """
    return MARKER.join(_escape_segment(part) for part in relative_parts(path, project_root))


def decode(safe_name: str) -> str:
    """Map a storage name back to the project-relative path it came from."""
    if not safe_name:
        raise PathCodecError("Empty storage name")
    segments = safe_name.split(MARKER)
    if any(not seg for seg in segments):
        raise PathCodecError(f"Malformed storage name: {safe_name}")
    return str(PurePath(*(_unescape_segment(seg) for seg in segments)))
