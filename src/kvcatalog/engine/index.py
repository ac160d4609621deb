"""Reference-counted secondary indexes.

A secondary index is a sorted index of distinct values plus, per value, a
set of the primary keys carrying it. A value is listed in the sorted index
exactly while its set is non-empty; releasing the last member removes it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Callable

    from kvcatalog.store import StoreProtocol

log = structlog.get_logger()


class ReferenceIndex:
    """One secondary index, e.g. book names -> isbns."""

    def __init__(
        self,
        store: StoreProtocol,
        values_key: str,
        members_key: Callable[[str], str],
    ) -> None:
        self._store = store
        self.values_key = values_key
        self.members_key = members_key

    async def add(self, value: str, member: str) -> bool:
        """Record that ``member`` carries ``value``. Idempotent."""
        added = await self._store.add_to_set(self.members_key(value), member)
        listed = await self._store.add_to_sorted_index(self.values_key, value)
        return added and listed

    async def release(self, value: str, member: str) -> bool:
        """Drop ``member`` from ``value``'s set and retire ``value`` when unused.

        An unknown set size keeps the value listed: an orphan entry is
        recoverable, a hidden live value is not.
        """
        removed = await self._store.remove_from_set(self.members_key(value), member)
        remaining = await self._store.set_size(self.members_key(value))
        if remaining is None:
            log.warning("index_refcount_unknown", index=self.values_key, value=value)
            return False
        if remaining == 0:
            return removed and await self._store.remove_from_sorted_index(self.values_key, value)
        return removed

    async def values(self) -> list[str]:
        return await self._store.sorted_index_values(self.values_key)

    async def members(self, value: str) -> list[str]:
        """Members carrying ``value``, sorted for stable output."""
        return sorted(await self._store.set_members(self.members_key(value)))
