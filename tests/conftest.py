from __future__ import annotations

import os
import time
from pathlib import Path

import pytest

MB = 1024**2


@pytest.fixture(autouse=True)
def isolated_home(monkeypatch, tmp_path_factory) -> Path:
    """Keep ~/.kosmos writes out of the real home and out of scanned trees."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Rich reads COLUMNS when not attached to a terminal; keep long paths on one line."""
    monkeypatch.setenv("COLUMNS", "300")


@pytest.fixture
def make_file():
    """Create a sparse file of the given size, optionally with an mtime *age_days* in the past."""

    def _make(path: Path, size: int, age_days: float | None = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as f:
            f.truncate(size)
        if age_days is not None:
            ts = time.time() - age_days * 86400
            os.utime(path, (ts, ts))
        return path

    return _make
