"""Shared pytest fixtures for the cursor2md test suite."""
from __future__ import annotations

import sys
from pathlib import Path

import pytest


ROOT_DIR = Path(__file__).resolve().parent.parent
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))


@pytest.fixture(scope="session")
def workspace_root() -> Path:
    """Return the repository root for locating sources and scripts."""
    return ROOT_DIR


@pytest.fixture()
def output_dir(tmp_path: Path) -> Path:
    """Provide a not-yet-created Markdown output directory."""
    return tmp_path / "markdown_output"


@pytest.fixture(autouse=True)
def _no_default_store(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Point the default store path somewhere empty so tests never read a real Cursor profile."""
    monkeypatch.setenv("CURSOR_STATE_DB", str(tmp_path / "missing" / "state.vscdb"))
