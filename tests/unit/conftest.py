"""Unit-specific fixtures (no I/O beyond in-memory SQLite)."""

from __future__ import annotations

import aiosqlite
import pytest

from kvcatalog.engine import BookEngine, BorrowerEngine, ReferenceIndex
from kvcatalog.store import SqliteStore


@pytest.fixture()
async def store():
    """In-memory SQLite store for unit tests."""
    async with aiosqlite.connect(":memory:") as db:
        s = SqliteStore(db)
        await s.init_db()
        yield s


@pytest.fixture()
def books(store: SqliteStore) -> BookEngine:
    return BookEngine(store)


@pytest.fixture()
def borrowers(store: SqliteStore) -> BorrowerEngine:
    return BorrowerEngine(store)


@pytest.fixture()
def assert_refcounted():
    """Check that a value is listed iff its member set is non-empty."""

    async def check(index: ReferenceIndex, candidates: set[str]) -> None:
        listed = set(await index.values())
        assert listed <= candidates, f"stray values in {index.values_key}: {listed - candidates}"
        for value in candidates:
            has_members = bool(await index.members(value))
            assert (value in listed) == has_members, f"{index.values_key}: {value!r}"

    return check
