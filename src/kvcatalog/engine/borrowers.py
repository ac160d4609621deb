"""Borrower operations and the borrower name index."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from kvcatalog import keys
from kvcatalog.engine.index import ReferenceIndex
from kvcatalog.errors import CommandResult, ErrorCode, Ok, fail

if TYPE_CHECKING:
    from kvcatalog.models.records import Borrower
    from kvcatalog.store import StoreProtocol

log = structlog.get_logger()


class BorrowerEngine:
    def __init__(self, store: StoreProtocol) -> None:
        self._store = store
        self.names = ReferenceIndex(store, keys.BORROWER_NAMES, keys.usernames)

    async def add(self, borrower: Borrower) -> CommandResult:
        if not await self._store.store_object(keys.borrower(borrower.username), borrower.pairs()):
            return fail(
                ErrorCode.DUPLICATE_KEY,
                "Adding borrower failed! "
                "Make sure a borrower with this username doesn't already exist.",
            )
        await self.names.add(borrower.name, borrower.username)

        log.info("borrower_added", username=borrower.username)
        return Ok("Borrower added successfully!")

    async def remove(self, username: str) -> CommandResult:
        """Return every book the borrower holds, then delete the borrower.

        ``borrowed-by-<username>`` loses each entry as that book is returned
        and is only deleted once all returns succeeded. On a partial failure
        the record and the unreturned entries stay, so rerunning the command
        picks up where this one stopped.
        """
        record_key = keys.borrower(username)
        borrowed_key = keys.borrowed_by(username)
        record = await self._store.get_fields(record_key)
        borrowed = await self._store.get_fields(borrowed_key)
        if not record and not borrowed:
            return fail(ErrorCode.NOT_FOUND, f"Borrower with username {username} does not exist.")

        unreturned = []
        for isbn in borrowed:
            returned = True
            # A stale entry must not return somebody else's checkout.
            if await self._store.get_field(keys.BORROWING, isbn) == username:
                returned = await self._store.remove_field(keys.BORROWING, isbn)
            if returned:
                returned = await self._store.remove_field(borrowed_key, isbn)
            if not returned:
                unreturned.append(isbn)

        if unreturned:
            log.warning("borrower_remove_incomplete", username=username, unreturned=unreturned)
            return fail(
                ErrorCode.STORE_UNAVAILABLE,
                f"Removing borrower failed! {len(unreturned)} book(s) could not be returned; "
                "run the command again to retry.",
            )

        success = await self._store.remove_object(borrowed_key)
        if "name" in record:
            success = await self.names.release(record["name"], username) and success
        success = await self._store.remove_object(record_key) and success
        if not success:
            return fail(ErrorCode.STORE_UNAVAILABLE, "Removing borrower failed!")

        log.info("borrower_removed", username=username, returned=len(borrowed))
        return Ok("Borrower removed successfully!")

    async def edit(self, borrower: Borrower) -> CommandResult:
        """Replace name and phone of an existing username."""
        record_key = keys.borrower(borrower.username)
        if not await self._store.object_exists(record_key):
            return fail(
                ErrorCode.NOT_FOUND, f"Borrower with username {borrower.username} does not exist."
            )

        old_name = await self._store.get_field(record_key, "name")
        if old_name is not None:
            await self.names.release(old_name, borrower.username)

        if not await self._store.store_object(record_key, borrower.pairs(), change_existing=True):
            return fail(ErrorCode.STORE_UNAVAILABLE, "Editing borrower failed!")
        await self.names.add(borrower.name, borrower.username)

        log.info("borrower_edited", username=borrower.username)
        return Ok("Borrower edited successfully!")

    async def borrowed_by(self, username: str) -> CommandResult:
        borrowed = await self._store.get_fields(keys.borrowed_by(username))
        if not borrowed:
            return Ok(f"No books found for the borrower with username {username}.")
        names = [borrowed[isbn] for isbn in sorted(borrowed)]
        return Ok(f"Books checked out by {username}: {', '.join(names)}")

    async def search(self, kind: str, query: str) -> CommandResult:
        if kind == "name":
            rows = await self._render_many(await self.names.members(query))
            return Ok("\n".join(rows) if rows else f"No usernames found for name {query}.")
        if kind == "username":
            row = await self._render(query)
            return Ok(row if row is not None else f"User with username {query} not found.")
        return fail(
            ErrorCode.INVALID_ARGUMENT,
            "Invalid search type entered. Please use 'name' or 'username'.",
        )

    async def list_all(self) -> CommandResult:
        """Every borrower, ordered by name."""
        rows = []
        for name in await self.names.values():
            rows += await self._render_many(await self.names.members(name))
        return Ok("\n".join(rows) if rows else "No borrowers found.")

    async def _render(self, username: str) -> str | None:
        record = await self._store.get_fields(keys.borrower(username))
        if not record:
            return None
        name = record.get("name", "")
        phone = record.get("phone", "")
        return f"{name}, {record.get('username', username)}, {phone}"

    async def _render_many(self, usernames: list[str]) -> list[str]:
        rows = []
        for username in usernames:
            row = await self._render(username)
            if row is None:
                log.warning("index_orphan", username=username)
                continue
            rows.append(row)
        return rows
