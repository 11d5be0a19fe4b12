"""Configuration schemas for undoai.

Defines dataclasses for all configuration structures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..utils.globs import match_component


DEFAULT_IGNORE_PATTERNS = [
    "node_modules",
    ".git",
    "dist",
    "build",
    "_tmp_*",
    "*.tmp",
    "pnpm-lock.yaml.*",  # pnpm temp lock files
    "package.json.*",    # npm/pnpm temp package files
]

DEFAULT_IMPORTANT_PATTERNS = [
    ".env",
    ".env.*",
    "package.json",
    "package-lock.json",
    "pnpm-lock.yaml",
    "yarn.lock",
    "tsconfig.json",
    "jsconfig.json",
    "**/*.prisma",
    "**/schema.prisma",
    "**/migrations/**",
    "Dockerfile",
    "docker-compose.yml",
    "docker-compose.*.yml",
    ".github/workflows/**",
    ".gitlab-ci.yml",
    "Jenkinsfile",
]


def _str_list(val: Any, default: list[str]) -> list[str]:
    if isinstance(val, list) and all(isinstance(v, str) for v in val):
        return list(val)
    return list(default)


def _int(val: Any, default: int) -> int:
    if isinstance(val, bool):
        return default
    if isinstance(val, int) and val >= 0:
        return val
    return default


@dataclass
class WatchConfig:
    """Debounce and ignore settings for the change aggregator."""
    debounce_ms: int = 2000
    ignore_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS))
    additional_ignores: list[str] = field(default_factory=list)
    
    @classmethod
    def from_dict(cls, data: dict) -> WatchConfig:
        """Create WatchConfig from dictionary."""
        return cls(
            debounce_ms=_int(data.get("debounceMs"), 2000),
            ignore_patterns=_str_list(data.get("ignorePatterns"), DEFAULT_IGNORE_PATTERNS),
            additional_ignores=_str_list(data.get("additionalIgnores"), []),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "debounceMs": self.debounce_ms,
            "ignorePatterns": list(self.ignore_patterns),
            "additionalIgnores": list(self.additional_ignores),
        }

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0
    
    def should_ignore(self, path: str) -> bool:
        """Check if a path should be ignored.
        
        Args:
            path: Path relative to the watched root
            
        Returns:
            True if path should be ignored
        """
        return any(
            match_component(path, pattern)
            for pattern in self.ignore_patterns + self.additional_ignores
        )


@dataclass
class BurstConfig:
    """Thresholds for deciding whether a change batch deserves a snapshot."""
    burst_size: int = 3
    velocity_min_files: int = 2
    velocity_window_ms: int = 1000
    important_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_IMPORTANT_PATTERNS))
    
    @classmethod
    def from_dict(cls, data: dict) -> BurstConfig:
        """Create BurstConfig from dictionary."""
        return cls(
            burst_size=_int(data.get("burstSize"), 3),
            velocity_min_files=_int(data.get("velocityMinFiles"), 2),
            velocity_window_ms=_int(data.get("velocityWindowMs"), 1000),
            important_patterns=_str_list(data.get("importantPatterns"), DEFAULT_IMPORTANT_PATTERNS),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "burstSize": self.burst_size,
            "velocityMinFiles": self.velocity_min_files,
            "velocityWindowMs": self.velocity_window_ms,
            "importantPatterns": list(self.important_patterns),
        }


@dataclass
class UndoConfig:
    """Main undoai configuration."""
    watch: WatchConfig = field(default_factory=WatchConfig)
    burst: BurstConfig = field(default_factory=BurstConfig)
    storage_dir: str | None = None
    
    @classmethod
    def from_dict(cls, data: dict) -> UndoConfig:
        """Create UndoConfig from dictionary."""
        watch_data = data.get("watch", {})
        burst_data = data.get("burst", {})
        storage_data = data.get("storage", {})

        storage_dir = storage_data.get("dir") if isinstance(storage_data, dict) else None

        return cls(
            watch=WatchConfig.from_dict(watch_data if isinstance(watch_data, dict) else {}),
            burst=BurstConfig.from_dict(burst_data if isinstance(burst_data, dict) else {}),
            storage_dir=storage_dir if isinstance(storage_dir, str) and storage_dir.strip() else None,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "watch": self.watch.to_dict(),
            "burst": self.burst.to_dict(),
        }
        if self.storage_dir:
            data["storage"] = {"dir": self.storage_dir}
        return data
