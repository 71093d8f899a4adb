# tests/conftest.py
from __future__ import annotations

import pytest

from sigmapairs import runtime


@pytest.fixture(autouse=True)
def isolated_workspace(tmp_path, monkeypatch):
    """Every test gets its own workspace and a fresh runtime (default settings)."""
    monkeypatch.setenv("SIGMAPAIRS_HOME", str(tmp_path / "ws"))
    runtime.reset()
    yield tmp_path / "ws"
    runtime.reset()
