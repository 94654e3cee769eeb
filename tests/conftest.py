"""Shared test fixtures.

Every test gets an isolated configuration: ``WORKSPACES_CONFIG`` points at
a file inside the test's temp directory (absent unless the test writes it),
``WORKSPACES_*`` variables from the outer environment are dropped and the
settings cache is cleared before and after.

The metadata store is a real SQLite file with all migrations applied -- no
Docker or ZFS required.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest

from workspaces.lifecycle.settings import _get_settings_cached
from workspaces.lifecycle.store.sql import SqlStore


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point configuration at the temp directory and reset the settings cache."""
    for key in list(os.environ):
        if key.startswith("WORKSPACES_"):
            monkeypatch.delenv(key)
    config = tmp_path / "workspaces.toml"
    monkeypatch.setenv("WORKSPACES_CONFIG", str(config))
    monkeypatch.setenv("WORKSPACES_DATABASE_PATH", str(tmp_path / "workspaces.db"))
    _get_settings_cached.cache_clear()
    yield config
    _get_settings_cached.cache_clear()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "workspaces.db"


@pytest.fixture
def store(db_path: Path) -> Iterator[SqlStore]:
    """SQLite store with the schema at the newest version."""
    s = SqlStore.open(db_path)
    yield s
    s.close()
