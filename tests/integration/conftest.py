"""Integration test fixtures.

Provides a fully wired AppState over an in-memory SQLite store, and an
environment for running the shell as a subprocess against a temporary
database file.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import aiosqlite
import pytest

from kvcatalog.config import Settings
from kvcatalog.state import AppState
from kvcatalog.store import SqliteStore

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
async def app_state() -> AppState:
    async with aiosqlite.connect(":memory:") as db:
        store = SqliteStore(db)
        await store.init_db()
        yield AppState.build(Settings(), store)


@pytest.fixture()
def subprocess_env(tmp_path: Path) -> dict[str, str]:
    env = os.environ.copy()
    env["KVCATALOG__STORE__BACKEND"] = "sqlite"
    env["KVCATALOG__STORE__DB_PATH"] = str(tmp_path / "catalog.db")
    return env
