"""SQLite emulation of the key-value primitives.

Hash-maps, sets, sorted sets and lists each get one table keyed by the
logical store key, so the catalog sees the same layout it would see in Redis.

All operations catch ``aiosqlite.Error`` internally and degrade to the
conservative answers documented on ``StoreProtocol``: existence checks report
"exists", writes and deletions report failure, reads come back empty.
Errors are logged with ``exc_info=True`` so they remain observable on stderr.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiosqlite
import structlog

if TYPE_CHECKING:
    from collections.abc import Iterable

log = structlog.get_logger()

_CREATE_HASHES_TABLE = """
CREATE TABLE IF NOT EXISTS hashes (
    key    TEXT NOT NULL,
    field  TEXT NOT NULL,
    value  TEXT NOT NULL,
    PRIMARY KEY (key, field)
)
"""

_CREATE_SETS_TABLE = """
CREATE TABLE IF NOT EXISTS sets (
    key     TEXT NOT NULL,
    member  TEXT NOT NULL,
    PRIMARY KEY (key, member)
)
"""

_CREATE_SORTED_SETS_TABLE = """
CREATE TABLE IF NOT EXISTS sorted_sets (
    key     TEXT NOT NULL,
    member  TEXT NOT NULL,
    score   INTEGER NOT NULL DEFAULT 1,
    PRIMARY KEY (key, member)
)
"""

_CREATE_SEQUENCES_TABLE = """
CREATE TABLE IF NOT EXISTS sequences (
    id     INTEGER PRIMARY KEY AUTOINCREMENT,
    key    TEXT NOT NULL,
    value  TEXT NOT NULL
)
"""

_CREATE_SEQUENCES_INDEX = "CREATE INDEX IF NOT EXISTS idx_sequences_key ON sequences(key, id)"

_TABLES = ("hashes", "sets", "sorted_sets", "sequences")


class SqliteStore:
    """SQLite-backed store implementing StoreProtocol."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create tables and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_HASHES_TABLE)
        await self._db.execute(_CREATE_SETS_TABLE)
        await self._db.execute(_CREATE_SORTED_SETS_TABLE)
        await self._db.execute(_CREATE_SEQUENCES_TABLE)
        await self._db.execute(_CREATE_SEQUENCES_INDEX)
        await self._db.commit()

    async def close(self) -> None:
        await self._db.close()

    async def _write(self, op: str, key: str, statements: Iterable[tuple[str, tuple]]) -> bool:
        """Run write statements in one commit. ``False`` on failure.

        A failed batch is rolled back so none of it reaches a later commit.
        """
        try:
            for sql, params in statements:
                await self._db.execute(sql, params)
            await self._db.commit()
            return True
        except aiosqlite.Error:
            log.warning("store_error", op=op, key=key, exc_info=True)
            await self._rollback(op, key)
            return False

    async def _rollback(self, op: str, key: str) -> None:
        try:
            await self._db.rollback()
        except aiosqlite.Error:
            log.error("store_rollback_failed", op=op, key=key, exc_info=True)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def object_exists(self, key: str) -> bool:
        try:
            cursor = await self._db.execute("SELECT 1 FROM hashes WHERE key = ? LIMIT 1", (key,))
            return await cursor.fetchone() is not None
        except aiosqlite.Error:
            log.warning("store_error", op="object_exists", key=key, exc_info=True)
            return True

    async def store_object(
        self, key: str, fields: dict[str, str], change_existing: bool = False
    ) -> bool:
        if not change_existing and await self.object_exists(key):
            return False
        return await self._write(
            "store_object",
            key,
            (
                ("INSERT OR REPLACE INTO hashes (key, field, value) VALUES (?, ?, ?)", (key, f, v))
                for f, v in fields.items()
            ),
        )

    async def remove_object(self, key: str) -> bool:
        return await self._write(
            "remove_object",
            key,
            ((f"DELETE FROM {table} WHERE key = ?", (key,)) for table in _TABLES),
        )

    async def get_field(self, key: str, field: str) -> str | None:
        try:
            cursor = await self._db.execute(
                "SELECT value FROM hashes WHERE key = ? AND field = ?", (key, field)
            )
            row = await cursor.fetchone()
            return None if row is None else row[0]
        except aiosqlite.Error:
            log.warning("store_error", op="get_field", key=key, field=field, exc_info=True)
            return None

    async def get_fields(self, key: str) -> dict[str, str]:
        try:
            cursor = await self._db.execute("SELECT field, value FROM hashes WHERE key = ?", (key,))
            return {field: value for field, value in await cursor.fetchall()}
        except aiosqlite.Error:
            log.warning("store_error", op="get_fields", key=key, exc_info=True)
            return {}

    async def set_field(
        self, key: str, field: str, value: str, change_existing: bool = False
    ) -> bool:
        verb = "INSERT OR REPLACE" if change_existing else "INSERT OR IGNORE"
        try:
            cursor = await self._db.execute(
                f"{verb} INTO hashes (key, field, value) VALUES (?, ?, ?)", (key, field, value)
            )
            await self._db.commit()
            return cursor.rowcount == 1
        except aiosqlite.Error:
            log.warning("store_error", op="set_field", key=key, field=field, exc_info=True)
            await self._rollback("set_field", key)
            return False

    async def remove_field(self, key: str, field: str) -> bool:
        return await self._write(
            "remove_field",
            key,
            [("DELETE FROM hashes WHERE key = ? AND field = ?", (key, field))],
        )

    # ------------------------------------------------------------------
    # Sequences
    # ------------------------------------------------------------------

    async def append_to_sequence(self, key: str, value: str) -> bool:
        return await self._write(
            "append_to_sequence",
            key,
            [("INSERT INTO sequences (key, value) VALUES (?, ?)", (key, value))],
        )

    async def read_sequence(self, key: str) -> list[str]:
        try:
            cursor = await self._db.execute(
                "SELECT value FROM sequences WHERE key = ? ORDER BY id", (key,)
            )
            return [row[0] for row in await cursor.fetchall()]
        except aiosqlite.Error:
            log.warning("store_error", op="read_sequence", key=key, exc_info=True)
            return []

    # ------------------------------------------------------------------
    # Sets
    # ------------------------------------------------------------------

    async def add_to_set(self, key: str, value: str) -> bool:
        return await self._write(
            "add_to_set",
            key,
            [("INSERT OR IGNORE INTO sets (key, member) VALUES (?, ?)", (key, value))],
        )

    async def remove_from_set(self, key: str, value: str) -> bool:
        return await self._write(
            "remove_from_set",
            key,
            [("DELETE FROM sets WHERE key = ? AND member = ?", (key, value))],
        )

    async def set_members(self, key: str) -> set[str]:
        try:
            cursor = await self._db.execute("SELECT member FROM sets WHERE key = ?", (key,))
            return {row[0] for row in await cursor.fetchall()}
        except aiosqlite.Error:
            log.warning("store_error", op="set_members", key=key, exc_info=True)
            return set()

    async def set_size(self, key: str) -> int | None:
        try:
            cursor = await self._db.execute("SELECT COUNT(*) FROM sets WHERE key = ?", (key,))
            row = await cursor.fetchone()
            return 0 if row is None else row[0]
        except aiosqlite.Error:
            log.warning("store_error", op="set_size", key=key, exc_info=True)
            return None

    # ------------------------------------------------------------------
    # Sorted indexes
    # ------------------------------------------------------------------

    async def add_to_sorted_index(self, key: str, value: str) -> bool:
        return await self._write(
            "add_to_sorted_index",
            key,
            [("INSERT OR IGNORE INTO sorted_sets (key, member) VALUES (?, ?)", (key, value))],
        )

    async def remove_from_sorted_index(self, key: str, value: str) -> bool:
        return await self._write(
            "remove_from_sorted_index",
            key,
            [("DELETE FROM sorted_sets WHERE key = ? AND member = ?", (key, value))],
        )

    async def sorted_index_values(self, key: str) -> list[str]:
        try:
            # BINARY collation compares UTF-8 bytes, matching ZRANGEBYLEX.
            cursor = await self._db.execute(
                "SELECT member FROM sorted_sets WHERE key = ? ORDER BY score, member", (key,)
            )
            return [row[0] for row in await cursor.fetchall()]
        except aiosqlite.Error:
            log.warning("store_error", op="sorted_index_values", key=key, exc_info=True)
            return []
