from __future__ import annotations

from kvcatalog.engine.books import BookEngine
from kvcatalog.engine.borrowers import BorrowerEngine
from kvcatalog.engine.index import ReferenceIndex

__all__ = [
    "BookEngine",
    "BorrowerEngine",
    "ReferenceIndex",
]
