"""Book operations and the indexes derived from book records.

A book occupies several physical keys: the record hash, its authors list,
membership in the name/author/page-count indexes, the isbn index and, while
checked out, one entry in each borrowing map. The store gives no atomicity
across them, so every operation below is an ordered sequence of primitive
calls. A multi-step operation that fails midway is not rolled back (checkout
excepted). It reports STORE_UNAVAILABLE and leaves the book record in place
until its references are gone, so rerunning the command finishes the job.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from kvcatalog import keys
from kvcatalog.engine.index import ReferenceIndex
from kvcatalog.errors import CommandResult, ErrorCode, Ok, fail

if TYPE_CHECKING:
    from kvcatalog.models.records import Book
    from kvcatalog.store import StoreProtocol

log = structlog.get_logger()

_NO_BOOKS = "No books found."


class BookEngine:
    def __init__(self, store: StoreProtocol) -> None:
        self._store = store
        self.names = ReferenceIndex(store, keys.BOOK_NAMES, keys.books_named)
        self.authors = ReferenceIndex(store, keys.AUTHORS, keys.books_by)
        self.page_counts = ReferenceIndex(store, keys.PAGE_COUNTS, keys.books_with_pages)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add(self, book: Book) -> CommandResult:
        # store_object refuses to overwrite: the only duplicate-isbn guard.
        if not await self._store.store_object(keys.book(book.isbn), book.pairs()):
            return fail(
                ErrorCode.DUPLICATE_KEY,
                "Adding book failed! Make sure a book with this isbn doesn't already exist.",
            )

        isbn = book.isbn
        authors_key = keys.authors_of(isbn)
        success = True
        for author in book.authors:
            success = await self._store.append_to_sequence(authors_key, author) and success
        success = await self._add_references(isbn, book.name, book.pages, book.authors) and success
        success = await self._store.add_to_sorted_index(keys.ISBNS, isbn) and success
        if not success:
            log.warning("book_add_incomplete", isbn=isbn)
            return fail(
                ErrorCode.STORE_UNAVAILABLE,
                f"Book with ISBN {isbn} was stored but not fully indexed! "
                "Edit the book with the same values to repair it.",
            )

        log.info("book_added", isbn=isbn)
        return Ok("Book added successfully!")

    async def remove(self, isbn: str) -> CommandResult:
        # Snapshot everything the indexes need before deleting anything.
        record = await self._store.get_fields(keys.book(isbn))
        if "name" not in record or "pages" not in record:
            return fail(ErrorCode.NOT_FOUND, f"Book with ISBN {isbn} not found.")
        authors = await self._store.read_sequence(keys.authors_of(isbn))

        # The record is the only way back to these references, so it stays
        # until every release went through.
        if not await self._release_references(isbn, record["name"], record["pages"], authors):
            log.warning("book_remove_incomplete", isbn=isbn, step="release")
            return fail(
                ErrorCode.STORE_UNAVAILABLE,
                f"Removing book with ISBN {isbn} failed! Run the command again to retry.",
            )

        success = True
        borrower = await self._store.get_field(keys.BORROWING, isbn)
        if borrower is not None:
            success = await self._store.remove_field(keys.borrowed_by(borrower), isbn)
            success = await self._store.remove_field(keys.BORROWING, isbn) and success
        success = await self._store.remove_from_sorted_index(keys.ISBNS, isbn) and success
        success = await self._store.remove_object(keys.authors_of(isbn)) and success
        if not success:
            log.warning("book_remove_incomplete", isbn=isbn, step="cleanup")
            return fail(
                ErrorCode.STORE_UNAVAILABLE,
                f"Removing book with ISBN {isbn} failed! Run the command again to retry.",
            )
        if not await self._store.remove_object(keys.book(isbn)):
            return fail(ErrorCode.STORE_UNAVAILABLE, f"Removing book with ISBN {isbn} failed!")

        log.info("book_removed", isbn=isbn, was_borrowed=borrower is not None)
        return Ok("Book removed successfully!")

    async def edit(self, book: Book) -> CommandResult:
        """Replace name, authors and page count of an existing isbn.

        Old references are released before the record is overwritten; if that
        fails nothing is changed. Rerunning the same edit repairs any index
        step that failed after the overwrite.
        """
        isbn = book.isbn
        if not await self._store.object_exists(keys.book(isbn)):
            return fail(ErrorCode.NOT_FOUND, f"Book with ISBN {isbn} does not exist.")

        record = await self._store.get_fields(keys.book(isbn))
        old_authors = await self._store.read_sequence(keys.authors_of(isbn))
        if "name" in record and "pages" in record:
            released = await self._release_references(
                isbn, record["name"], record["pages"], old_authors
            )
            if not released:
                log.warning("book_edit_incomplete", isbn=isbn, step="release")
                return fail(ErrorCode.STORE_UNAVAILABLE, f"Editing book with ISBN {isbn} failed!")

        if not await self._store.store_object(keys.book(isbn), book.pairs(), change_existing=True):
            return fail(ErrorCode.STORE_UNAVAILABLE, f"Editing book with ISBN {isbn} failed!")

        authors_key = keys.authors_of(isbn)
        success = await self._store.remove_object(authors_key)
        if success:
            for author in book.authors:
                success = await self._store.append_to_sequence(authors_key, author) and success
        success = await self._add_references(isbn, book.name, book.pages, book.authors) and success
        success = await self._store.add_to_sorted_index(keys.ISBNS, isbn) and success

        # Keep the borrower-facing copy of the name current.
        borrower = await self._store.get_field(keys.BORROWING, isbn)
        if borrower is not None:
            success = await self._store.set_field(
                keys.borrowed_by(borrower), isbn, book.name, change_existing=True
            ) and success

        if not success:
            log.warning("book_edit_incomplete", isbn=isbn, step="reindex")
            return fail(
                ErrorCode.STORE_UNAVAILABLE,
                f"Book with ISBN {isbn} was saved but not fully indexed! "
                "Run the same edit again to repair it.",
            )

        log.info("book_edited", isbn=isbn)
        return Ok("Book edited successfully!")

    async def checkout(self, isbn: str, username: str) -> CommandResult:
        book_exists = await self._store.object_exists(keys.book(isbn))
        borrower_exists = await self._store.object_exists(keys.borrower(username))
        name = await self._store.get_field(keys.book(isbn), "name") if book_exists else None
        if not borrower_exists or name is None:
            return fail(
                ErrorCode.NOT_FOUND,
                "There was a problem checking out the book. "
                "Make sure the book and the borrower both exist.",
            )

        # set_field refuses to overwrite, so a borrowed book stays with its borrower.
        if not await self._store.set_field(keys.BORROWING, isbn, username):
            if await self._store.get_field(keys.BORROWING, isbn) is None:
                return fail(
                    ErrorCode.STORE_UNAVAILABLE,
                    f"Checking out the book with ISBN {isbn} failed! Nothing was checked out.",
                )
            return fail(
                ErrorCode.ALREADY_CHECKED_OUT,
                "There was a problem checking out the book. "
                "Make sure the book isn't already checked out.",
            )

        if not await self._store.set_field(keys.borrowed_by(username), isbn, name):
            await self._store.remove_field(keys.BORROWING, isbn)
            log.warning("checkout_compensated", isbn=isbn, username=username)
            return fail(
                ErrorCode.STORE_UNAVAILABLE,
                f"Checking out the book with ISBN {isbn} failed! Nothing was checked out.",
            )

        log.info("book_checked_out", isbn=isbn, username=username)
        return Ok(f"Book with ISBN {isbn} has been checked out to {username}.")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def search(self, kind: str, query: str) -> CommandResult:
        match kind:
            case "name":
                rows = await self._render_many(await self.names.members(query))
                return Ok("\n".join(rows) if rows else f"No books with name {query} were found.")
            case "author":
                rows = await self._render_many(await self.authors.members(query))
                return Ok("\n".join(rows) if rows else f"No books by author {query} were found.")
            case "isbn":
                row = None
                if await self._store.object_exists(keys.book(query)):
                    row = await self._render(query)
                return Ok(row if row is not None else f"Book with isbn {query} not found.")
            case _:
                return fail(
                    ErrorCode.INVALID_ARGUMENT,
                    "Invalid search type, please use 'name', 'author', or 'isbn'.",
                )

    async def list_sorted(self, sort_key: str) -> CommandResult:
        match sort_key:
            case "name":
                rows = []
                for name in await self.names.values():
                    rows += await self._render_many(await self.names.members(name))
                return Ok("\n".join(rows) if rows else _NO_BOOKS)
            case "author":
                return Ok(await self._render_groups(self.authors, "Author") or _NO_BOOKS)
            case "page count":
                return Ok(await self._render_groups(self.page_counts, "Page count") or _NO_BOOKS)
            case "isbn":
                rows = await self._render_many(await self._store.sorted_index_values(keys.ISBNS))
                return Ok("\n".join(rows) if rows else _NO_BOOKS)
            case _:
                return fail(
                    ErrorCode.INVALID_ARGUMENT,
                    "Invalid sort type, please use 'name', 'author', 'page count', or 'isbn'.",
                )

    async def borrower_of(self, isbn: str) -> CommandResult:
        borrower = await self._store.get_field(keys.BORROWING, isbn)
        if borrower is None:
            return Ok(f"The borrower for the book with ISBN {isbn} cannot be found.")
        return Ok(f"{borrower} is the borrower of the book with ISBN {isbn}.")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _add_references(self, isbn: str, name: str, pages: str, authors: list[str]) -> bool:
        success = await self.names.add(name, isbn)
        success = await self.page_counts.add(pages, isbn) and success
        for author in authors:
            success = await self.authors.add(author, isbn) and success
        return success

    async def _release_references(
        self, isbn: str, name: str, pages: str, authors: list[str]
    ) -> bool:
        success = await self.names.release(name, isbn)
        success = await self.page_counts.release(pages, isbn) and success
        for author in authors:
            success = await self.authors.release(author, isbn) and success
        return success

    async def _render(self, isbn: str) -> str | None:
        """One display row, or ``None`` if the record has vanished."""
        record = await self._store.get_fields(keys.book(isbn))
        if not record:
            log.warning("index_orphan", isbn=isbn)
            return None
        authors = await self._store.read_sequence(keys.authors_of(isbn))
        author_text = ", ".join(authors) if authors else "No authors"
        name = record.get("name", "")
        pages = record.get("pages", "")
        return f"{name}, {record.get('isbn', isbn)}, {author_text}, {pages}"

    async def _render_many(self, isbns: list[str]) -> list[str]:
        rows = []
        for isbn in isbns:
            row = await self._render(isbn)
            if row is not None:
                rows.append(row)
        return rows

    async def _render_groups(self, index: ReferenceIndex, heading: str) -> str:
        groups = []
        for value in await index.values():
            rows = await self._render_many(await index.members(value))
            groups.append("\n".join([f"{heading}: {value}", *rows]))
        return "\n\n".join(groups)
