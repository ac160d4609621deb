"""Key naming scheme shared by every backend.

These names are the persisted layout; changing any of them orphans data that
already lives in a store.
"""

from __future__ import annotations

BORROWING = "borrowing"
BOOK_NAMES = "book-names"
AUTHORS = "authors"
PAGE_COUNTS = "page-counts"
ISBNS = "isbns"
BORROWER_NAMES = "borrower-names"


def book(isbn: str) -> str:
    return f"book-{isbn}"


def authors_of(isbn: str) -> str:
    return f"authors-{isbn}"


def borrower(username: str) -> str:
    return f"borrower-{username}"


def borrowed_by(username: str) -> str:
    return f"borrowed-by-{username}"


def books_named(name: str) -> str:
    return f"books-named-{name}"


def books_by(author: str) -> str:
    return f"books-by-{author}"


def books_with_pages(pages: str) -> str:
    return f"books-with-{pages}-pages"


def usernames(name: str) -> str:
    return f"usernames-{name}"
