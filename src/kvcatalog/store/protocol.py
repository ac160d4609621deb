"""The primitive operations the catalog needs from a key-value store.

Implementations never raise for transport failures. Each method logs the
error and returns the conservative answer documented on it, so a flaky store
cannot create duplicate records or silently drop index entries.
"""

from __future__ import annotations

from typing import Protocol


class StoreProtocol(Protocol):
    # ------------------------------------------------------------------
    # Records (hash-maps)
    # ------------------------------------------------------------------

    async def object_exists(self, key: str) -> bool:
        """``True`` if a record lives at ``key``. Assumes it exists on error."""
        ...

    async def store_object(
        self, key: str, fields: dict[str, str], change_existing: bool = False
    ) -> bool:
        """Write ``fields`` at ``key``; refuse if present unless ``change_existing``."""
        ...

    async def remove_object(self, key: str) -> bool:
        """Delete ``key`` of any type. ``False`` only on transport error."""
        ...

    async def get_field(self, key: str, field: str) -> str | None: ...

    async def get_fields(self, key: str) -> dict[str, str]: ...

    async def set_field(
        self, key: str, field: str, value: str, change_existing: bool = False
    ) -> bool:
        """Write one field; refuse to overwrite it unless ``change_existing``."""
        ...

    async def remove_field(self, key: str, field: str) -> bool: ...

    # ------------------------------------------------------------------
    # Sequences (lists)
    # ------------------------------------------------------------------

    async def append_to_sequence(self, key: str, value: str) -> bool: ...

    async def read_sequence(self, key: str) -> list[str]: ...

    # ------------------------------------------------------------------
    # Sets
    # ------------------------------------------------------------------

    async def add_to_set(self, key: str, value: str) -> bool: ...

    async def remove_from_set(self, key: str, value: str) -> bool: ...

    async def set_members(self, key: str) -> set[str]: ...

    async def set_size(self, key: str) -> int | None:
        """Cardinality of the set, or ``None`` when it cannot be determined."""
        ...

    # ------------------------------------------------------------------
    # Sorted indexes (sorted sets, lexical order)
    # ------------------------------------------------------------------

    async def add_to_sorted_index(self, key: str, value: str) -> bool: ...

    async def remove_from_sorted_index(self, key: str, value: str) -> bool: ...

    async def sorted_index_values(self, key: str) -> list[str]: ...

    async def close(self) -> None: ...
