from __future__ import annotations

import pytest


@pytest.fixture(autouse=True)
def _isolate_home(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Prevent developer machine `~/.undoai` state from influencing tests."""

    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("UNDOAI_HOME", str(tmp_path / ".undoai"))
    monkeypatch.delenv("UNDOAI_DEBUG", raising=False)
    monkeypatch.delenv("UNDOAI_PROJECT_ROOT", raising=False)
