"""Redis-backed store.

Every call catches ``RedisError`` and degrades the same way the SQLite
backend does; see ``StoreProtocol`` for the conservative answer per method.
"""

from __future__ import annotations

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

log = structlog.get_logger()

# All sorted-index members share one score so ZRANGEBYLEX yields lexical order.
_SCORE = 1


class RedisStore:
    """Redis implementation of StoreProtocol."""

    def __init__(self, client: Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisStore:
        return cls(Redis.from_url(url, decode_responses=True))

    async def ping(self) -> None:
        """Raise if the server is unreachable. Used once at startup."""
        await self._client.ping()

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def object_exists(self, key: str) -> bool:
        try:
            return await self._client.exists(key) > 0
        except RedisError:
            log.warning("store_error", op="object_exists", key=key, exc_info=True)
            return True

    async def store_object(
        self, key: str, fields: dict[str, str], change_existing: bool = False
    ) -> bool:
        if not change_existing and await self.object_exists(key):
            return False
        try:
            await self._client.hset(key, mapping=fields)
            return True
        except RedisError:
            log.warning("store_error", op="store_object", key=key, exc_info=True)
            return False

    async def remove_object(self, key: str) -> bool:
        try:
            await self._client.delete(key)
            return True
        except RedisError:
            log.warning("store_error", op="remove_object", key=key, exc_info=True)
            return False

    async def get_field(self, key: str, field: str) -> str | None:
        try:
            return await self._client.hget(key, field)
        except RedisError:
            log.warning("store_error", op="get_field", key=key, field=field, exc_info=True)
            return None

    async def get_fields(self, key: str) -> dict[str, str]:
        try:
            return await self._client.hgetall(key)
        except RedisError:
            log.warning("store_error", op="get_fields", key=key, exc_info=True)
            return {}

    async def set_field(
        self, key: str, field: str, value: str, change_existing: bool = False
    ) -> bool:
        try:
            if change_existing:
                await self._client.hset(key, field, value)
                return True
            return bool(await self._client.hsetnx(key, field, value))
        except RedisError:
            log.warning("store_error", op="set_field", key=key, field=field, exc_info=True)
            return False

    async def remove_field(self, key: str, field: str) -> bool:
        try:
            await self._client.hdel(key, field)
            return True
        except RedisError:
            log.warning("store_error", op="remove_field", key=key, field=field, exc_info=True)
            return False

    # ------------------------------------------------------------------
    # Sequences
    # ------------------------------------------------------------------

    async def append_to_sequence(self, key: str, value: str) -> bool:
        try:
            await self._client.rpush(key, value)
            return True
        except RedisError:
            log.warning("store_error", op="append_to_sequence", key=key, exc_info=True)
            return False

    async def read_sequence(self, key: str) -> list[str]:
        try:
            return await self._client.lrange(key, 0, -1)
        except RedisError:
            log.warning("store_error", op="read_sequence", key=key, exc_info=True)
            return []

    # ------------------------------------------------------------------
    # Sets
    # ------------------------------------------------------------------

    async def add_to_set(self, key: str, value: str) -> bool:
        try:
            await self._client.sadd(key, value)
            return True
        except RedisError:
            log.warning("store_error", op="add_to_set", key=key, exc_info=True)
            return False

    async def remove_from_set(self, key: str, value: str) -> bool:
        try:
            await self._client.srem(key, value)
            return True
        except RedisError:
            log.warning("store_error", op="remove_from_set", key=key, exc_info=True)
            return False

    async def set_members(self, key: str) -> set[str]:
        try:
            return set(await self._client.smembers(key))
        except RedisError:
            log.warning("store_error", op="set_members", key=key, exc_info=True)
            return set()

    async def set_size(self, key: str) -> int | None:
        try:
            return await self._client.scard(key)
        except RedisError:
            log.warning("store_error", op="set_size", key=key, exc_info=True)
            return None

    # ------------------------------------------------------------------
    # Sorted indexes
    # ------------------------------------------------------------------

    async def add_to_sorted_index(self, key: str, value: str) -> bool:
        try:
            await self._client.zadd(key, {value: _SCORE})
            return True
        except RedisError:
            log.warning("store_error", op="add_to_sorted_index", key=key, exc_info=True)
            return False

    async def remove_from_sorted_index(self, key: str, value: str) -> bool:
        try:
            await self._client.zrem(key, value)
            return True
        except RedisError:
            log.warning("store_error", op="remove_from_sorted_index", key=key, exc_info=True)
            return False

    async def sorted_index_values(self, key: str) -> list[str]:
        try:
            return await self._client.zrangebylex(key, "-", "+")
        except RedisError:
            log.warning("store_error", op="sorted_index_values", key=key, exc_info=True)
            return []
