from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from kvcatalog.dispatcher import Dispatcher
from kvcatalog.engine import BookEngine, BorrowerEngine

if TYPE_CHECKING:
    from kvcatalog.config import Settings
    from kvcatalog.store import StoreProtocol


@dataclass
class AppState:
    """Everything a running shell needs, wired around one store handle."""

    settings: Settings
    store: StoreProtocol
    books: BookEngine
    borrowers: BorrowerEngine
    dispatcher: Dispatcher

    @classmethod
    def build(cls, settings: Settings, store: StoreProtocol) -> AppState:
        books = BookEngine(store)
        borrowers = BorrowerEngine(store)
        return cls(
            settings=settings,
            store=store,
            books=books,
            borrowers=borrowers,
            dispatcher=Dispatcher(books, borrowers),
        )
