"""Error taxonomy and the result type returned by every catalog operation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


class ErrorCode(StrEnum):
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    DUPLICATE_KEY = "DUPLICATE_KEY"
    NOT_FOUND = "NOT_FOUND"
    ALREADY_CHECKED_OUT = "ALREADY_CHECKED_OUT"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"


class CatalogError(Exception):
    """A failed command, carrying the operator-facing message."""

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CatalogError):
            return NotImplemented
        return self.code == other.code and self.message == other.message

    def __hash__(self) -> int:
        return hash((self.code, self.message))

    def __repr__(self) -> str:
        return f"CatalogError({self.code!s}, {self.message!r})"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E


type Result[T, E] = Ok[T] | Err[E]

# Every engine operation and the dispatcher return this.
type CommandResult = Result[str, CatalogError]


def fail(code: ErrorCode, message: str) -> Err[CatalogError]:
    return Err(CatalogError(code, message))


def render(result: CommandResult) -> str:
    """Collapse a result into the line printed to the operator."""
    match result:
        case Ok(value):
            return value
        case Err(error):
            return error.message
