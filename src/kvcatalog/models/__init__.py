from __future__ import annotations

from kvcatalog.models.records import Book, Borrower

__all__ = [
    "Book",
    "Borrower",
]
