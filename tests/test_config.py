"""Tests for configuration loading and glob matching."""

import json

import pytest

from undoai.config import BurstConfig, ConfigLoader, UndoConfig, WatchConfig
from undoai.utils.globs import match, match_any, match_component


@pytest.fixture
def project(tmp_path):
    p = tmp_path / "project"
    p.mkdir()
    return p


class TestConfigLoader:
    def test_defaults(self, project):
        config = ConfigLoader(project_root=project).config

        assert config.watch.debounce_ms == 2000
        assert config.burst.burst_size == 3
        assert config.burst.velocity_window_ms == 1000
        assert "package.json" in config.burst.important_patterns
        assert ".git" in config.watch.ignore_patterns
        assert config.storage_dir is None

    def test_global_then_project_precedence(self, tmp_path, project):
        global_dir = tmp_path / ".undoai"
        global_dir.mkdir()
        (global_dir / "config.json").write_text(
            json.dumps({"watch": {"debounceMs": 500}, "burst": {"burstSize": 4}})
        )
        (project / ".undoai.json").write_text(json.dumps({"burst": {"burstSize": 6}}))

        config = ConfigLoader(project_root=project).config

        assert config.watch.debounce_ms == 500
        assert config.burst.burst_size == 6
        assert config.burst.velocity_min_files == 2

    def test_invalid_json_falls_back_to_defaults(self, project):
        (project / ".undoai.json").write_text("{broken")

        config = ConfigLoader(project_root=project).config

        assert config == UndoConfig()

    def test_bad_values_ignored(self, project):
        (project / ".undoai.json").write_text(
            json.dumps({"watch": {"debounceMs": "fast", "ignorePatterns": "nope"}, "burst": {"burstSize": -1}})
        )

        config = ConfigLoader(project_root=project).config

        assert config.watch.debounce_ms == 2000
        assert config.watch.ignore_patterns == WatchConfig().ignore_patterns
        assert config.burst.burst_size == 3

    def test_save_and_reload(self, project):
        loader = ConfigLoader(project_root=project)
        custom = UndoConfig(watch=WatchConfig(debounce_ms=750), storage_dir="/tmp/snaps")

        path = loader.save_config(custom, scope="project")
        assert path == project / ".undoai.json"

        reloaded = loader.reload()
        assert reloaded.watch.debounce_ms == 750
        assert reloaded.storage_dir == "/tmp/snaps"

    def test_project_scope_needs_root(self):
        with pytest.raises(ValueError):
            ConfigLoader().save_config(UndoConfig(), scope="project")

    def test_to_dict_round_trip(self):
        config = UndoConfig(burst=BurstConfig(burst_size=9, important_patterns=["*.lock"]))

        assert UndoConfig.from_dict(config.to_dict()) == config


class TestWatchConfig:
    def test_should_ignore(self):
        config = WatchConfig()

        assert config.should_ignore(".git/HEAD")
        assert config.should_ignore("web/node_modules/react/index.js")
        assert not config.should_ignore("src/main.py")

    def test_debounce_seconds(self):
        assert WatchConfig(debounce_ms=1500).debounce_seconds == pytest.approx(1.5)


class TestGlobs:
    @pytest.mark.parametrize(
        "path, pattern",
        [
            ("package.json", "package.json"),
            ("db/migrations/001.sql", "**/migrations/**"),
            ("migrations/001.sql", "**/migrations/**"),
            ("schema.prisma", "**/*.prisma"),
            (".github/workflows/ci.yml", ".github/workflows/**"),
            ("a/b/c.txt", "a/**/c.txt"),
            ("a/c.txt", "a/**/c.txt"),
            ("/abs/project/src/x.py", "*.py"),
            ("src\\win\\path.py", "src/*/path.py"),
        ],
    )
    def test_match(self, path, pattern):
        assert match(path, pattern)

    @pytest.mark.parametrize(
        "path, pattern",
        [
            ("web/package.json", "package.json"),
            ("README.md", "*.py"),
            ("docs/migrations.md", "**/migrations/**"),
        ],
    )
    def test_no_match(self, path, pattern):
        assert not match(path, pattern)

    def test_match_any(self):
        assert match_any("a.ts", ["*.py", "*.ts"])
        assert not match_any("a.rs", ["*.py", "*.ts"])

    def test_match_component(self):
        assert match_component("deep/node_modules/x.js", "node_modules")
        assert not match_component("deep/node_modules_x/x.js", "node_modules")
