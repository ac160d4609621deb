"""Command parsing and routing.

A command line is two words naming the command followed by comma-separated
arguments::

    add book Dune, Frank Herbert, 111, 412
    list books page count

Arguments are validated for count and turned into typed records here, so the
engines never see raw token lists.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from kvcatalog.errors import CommandResult, ErrorCode, fail
from kvcatalog.models.records import Book, Borrower

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from kvcatalog.engine import BookEngine, BorrowerEngine

INVALID_INPUT = "Please provide a valid input."


@dataclass(frozen=True)
class ParsedCommand:
    name: str
    args: list[str]


@dataclass(frozen=True)
class Command:
    min_args: int
    max_args: int | None  # None: open-ended (book authors)
    usage: str
    handler: Callable[[list[str]], Awaitable[CommandResult]]

    def accepts(self, count: int) -> bool:
        return count >= self.min_args and (self.max_args is None or count <= self.max_args)


def parse_line(line: str) -> ParsedCommand | None:
    """Split a line into a two-word command and its arguments.

    Returns ``None`` for blank lines.
    """
    words = line.strip().split(maxsplit=2)
    if not words:
        return None
    name = " ".join(words[:2])
    rest = words[2] if len(words) > 2 else ""
    args = [token.strip() for token in rest.split(",")] if rest.strip() else []
    return ParsedCommand(name=name, args=args)


class Dispatcher:
    def __init__(self, books: BookEngine, borrowers: BorrowerEngine) -> None:
        self.books = books
        self.borrowers = borrowers
        self.commands: dict[str, Command] = {
            "add book": Command(
                3, None, "add book <name>, <author>..., <isbn>, <pages>",
                lambda args: books.add(Book.from_args(args)),
            ),
            "rm book": Command(
                1, 1, "rm book <isbn>",
                lambda args: books.remove(args[0]),
            ),
            "edit book": Command(
                3, None, "edit book <isbn>, <new name>, <new author>..., <new pages>",
                lambda args: books.edit(Book.from_edit_args(args)),
            ),
            "search books": Command(
                2, 2, "search books <name|author|isbn>, <query>",
                lambda args: books.search(args[0], args[1]),
            ),
            "list books": Command(
                1, 1, "list books <name|author|page count|isbn>",
                lambda args: books.list_sorted(args[0]),
            ),
            "checkout book": Command(
                2, 2, "checkout book <isbn>, <username>",
                lambda args: books.checkout(args[0], args[1]),
            ),
            "borrower of": Command(
                1, 1, "borrower of <isbn>",
                lambda args: books.borrower_of(args[0]),
            ),
            "add borrower": Command(
                3, 3, "add borrower <name>, <username>, <phone>",
                lambda args: borrowers.add(Borrower.from_args(args)),
            ),
            "rm borrower": Command(
                1, 1, "rm borrower <username>",
                lambda args: borrowers.remove(args[0]),
            ),
            "edit borrower": Command(
                3, 3, "edit borrower <username>, <new name>, <new phone>",
                lambda args: borrowers.edit(Borrower.from_edit_args(args)),
            ),
            "borrowed by": Command(
                1, 1, "borrowed by <username>",
                lambda args: borrowers.borrowed_by(args[0]),
            ),
            "search borrowers": Command(
                2, 2, "search borrowers <name|username>, <query>",
                lambda args: borrowers.search(args[0], args[1]),
            ),
            "list borrowers": Command(
                0, 0, "list borrowers",
                lambda args: borrowers.list_all(),
            ),
        }  # fmt: skip

    def usage(self) -> str:
        return "\n".join(command.usage for command in self.commands.values())

    async def dispatch(self, name: str, args: list[str]) -> CommandResult:
        """Run one command. Never raises; malformed input is an INVALID_ARGUMENT."""
        command = self.commands.get(name)
        if command is None:
            return fail(ErrorCode.INVALID_ARGUMENT, INVALID_INPUT)
        if not command.accepts(len(args)):
            return fail(ErrorCode.INVALID_ARGUMENT, f"{INVALID_INPUT} Usage: {command.usage}")
        try:
            return await command.handler(args)
        except ValueError as exc:  # includes pydantic.ValidationError
            return fail(ErrorCode.INVALID_ARGUMENT, f"{INVALID_INPUT} {exc}")

    async def dispatch_line(self, line: str) -> CommandResult | None:
        parsed = parse_line(line)
        if parsed is None:
            return None
        return await self.dispatch(parsed.name, parsed.args)
