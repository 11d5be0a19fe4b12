"""Configuration loader for undoai.

Handles loading and merging configuration from multiple sources.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ..utils.env import get_undoai_dir
from ..utils.fs import atomic_write, safe_json_load
from .types import UndoConfig


PROJECT_CONFIG_NAME = ".undoai.json"


class ConfigLoader:
    """Loads and manages undoai configuration."""
    
    def __init__(self, project_root: Path | None = None):
        """Initialize config loader.
        
        Args:
            project_root: Project root directory (for project-local config)
        """
        self.project_root = project_root
        self._config: UndoConfig | None = None
    
    @property
    def config(self) -> UndoConfig:
        """Get loaded configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    @staticmethod
    def global_config_path() -> Path:
        return get_undoai_dir() / "config.json"

    def project_config_path(self) -> Path | None:
        if self.project_root is None:
            return None
        return Path(self.project_root) / PROJECT_CONFIG_NAME
    
    def load(self) -> UndoConfig:
        """Load configuration from all sources.
        
        Priority (highest to lowest):
        1. Project-local config (<project>/.undoai.json)
        2. Global config (~/.undoai/config.json)
        3. Default values
        
        Returns:
            Merged UndoConfig
        """
        merged: dict[str, Any] = {}
        
        global_path = self.global_config_path()
        if global_path.exists():
            global_data = safe_json_load(global_path, {})
            if isinstance(global_data, dict):
                merged = self._deep_merge(merged, global_data)
        
        project_path = self.project_config_path()
        if project_path is not None and project_path.exists():
            project_data = safe_json_load(project_path, {})
            if isinstance(project_data, dict):
                merged = self._deep_merge(merged, project_data)

        return UndoConfig.from_dict(merged)
    
    def reload(self) -> UndoConfig:
        """Force reload configuration."""
        self._config = None
        return self.config
    
    def save_config(self, config: UndoConfig, scope: str = "global") -> Path:
        """Save configuration to file.
        
        Args:
            config: Configuration to save
            scope: "project" or "global"
            
        Returns:
            Path where config was saved
        """
        if scope == "global":
            config_path = self.global_config_path()
        else:
            project_path = self.project_config_path()
            if project_path is None:
                raise ValueError("No project root set for project-scope config")
            config_path = project_path
        
        atomic_write(config_path, json.dumps(config.to_dict(), indent=2), mode="w")
        return config_path
    
    @staticmethod
    def _deep_merge(base: dict, override: dict) -> dict:
        """Deep merge two dictionaries.
        
        Args:
            base: Base dictionary
            override: Dictionary to merge (takes precedence)
            
        Returns:
            Merged dictionary
        """
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = ConfigLoader._deep_merge(result[key], value)
            else:
                result[key] = value
        return result
