"""Book and borrower records.

Positional command arguments are turned into these models once, at the
dispatcher boundary. The engines only ever see typed records.
"""

from __future__ import annotations

from pydantic import BaseModel, field_validator


class Book(BaseModel):
    """A book and its ordered authors.

    Authors are stored apart from the record, under ``authors-<isbn>``.
    """

    name: str
    isbn: str
    pages: str  # stored as text; only ever compared lexically
    authors: list[str] = []

    @field_validator("name", "isbn", "pages")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("authors")
    @classmethod
    def strip_authors(cls, v: list[str]) -> list[str]:
        return [author.strip() for author in v]

    @classmethod
    def from_args(cls, args: list[str]) -> Book:
        """Build from ``[name, author1..authorN, isbn, pages]``.

        Authors fill the open middle, so the isbn and page count are always
        the last two tokens.
        """
        if len(args) < 3:
            raise ValueError(f"expected name, authors, isbn and pages; got {len(args)} values")
        return cls(name=args[0], authors=args[1:-2], isbn=args[-2], pages=args[-1])

    @classmethod
    def from_edit_args(cls, args: list[str]) -> Book:
        """Build from ``[isbn, name, author1..authorN, pages]``."""
        if len(args) < 3:
            raise ValueError(f"expected isbn, name, authors and pages; got {len(args)} values")
        return cls.from_args([*args[1:-1], args[0], args[-1]])

    def pairs(self) -> dict[str, str]:
        """Field/value pairs of the primary record."""
        return {"name": self.name, "isbn": self.isbn, "pages": self.pages}


class Borrower(BaseModel):
    """A borrower, identified by username."""

    name: str
    username: str
    phone: str

    @field_validator("name", "username", "phone")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @classmethod
    def from_args(cls, args: list[str]) -> Borrower:
        """Build from ``[name, username, phone]``."""
        if len(args) != 3:
            raise ValueError(f"expected name, username and phone; got {len(args)} values")
        name, username, phone = args
        return cls(name=name, username=username, phone=phone)

    @classmethod
    def from_edit_args(cls, args: list[str]) -> Borrower:
        """Build from ``[username, name, phone]``."""
        if len(args) != 3:
            raise ValueError(f"expected username, name and phone; got {len(args)} values")
        username, name, phone = args
        return cls(name=name, username=username, phone=phone)

    def pairs(self) -> dict[str, str]:
        return {"name": self.name, "username": self.username, "phone": self.phone}
