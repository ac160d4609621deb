from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog

from kvcatalog.store.protocol import StoreProtocol
from kvcatalog.store.redis_store import RedisStore
from kvcatalog.store.sqlite_store import SqliteStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from kvcatalog.config import StoreSettings

__all__ = ["RedisStore", "SqliteStore", "StoreProtocol", "open_store"]

log = structlog.get_logger()


@asynccontextmanager
async def open_store(settings: StoreSettings) -> AsyncIterator[StoreProtocol]:
    """Open the configured backend and close it when the block exits.

    Connection failures propagate: the shell cannot do anything useful
    without a store, so startup aborts instead of degrading.
    """
    if settings.backend == "sqlite":
        db_path = Path(settings.db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(db_path) as db:
            store = SqliteStore(db)
            await store.init_db()
            log.info("store_opened", backend="sqlite", db_path=str(db_path))
            yield store
        return

    redis_store = RedisStore.from_url(settings.redis_url)
    try:
        await redis_store.ping()
        log.info("store_opened", backend="redis", url=settings.redis_url)
        yield redis_store
    finally:
        await redis_store.close()
