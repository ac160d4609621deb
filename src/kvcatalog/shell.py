"""Interactive command shell.

Reads one command per line from stdin and prints its result to stdout.
Commands run strictly one after another; logs go to stderr.

    python -m kvcatalog.shell
"""

from __future__ import annotations

import asyncio
import sys
from typing import TextIO

import aiosqlite
import structlog
from pydantic import ValidationError
from redis.exceptions import RedisError

from kvcatalog.config import Settings
from kvcatalog.errors import render
from kvcatalog.logging_config import configure_logging
from kvcatalog.state import AppState
from kvcatalog.store import open_store

log = structlog.get_logger()

_QUIT = frozenset({"q", "quit", "exit"})


def banner(state: AppState) -> str:
    return (
        "Library catalog. One command per line, arguments separated by commas.\n"
        f"{state.dispatcher.usage()}\n"
        "help | q"
    )


async def run_shell(state: AppState, stdin: TextIO, stdout: TextIO) -> None:
    """Serve commands until EOF or a quit command."""

    def emit(text: str) -> None:
        stdout.write(text + "\n")
        stdout.flush()

    emit(banner(state))
    while True:
        line = await asyncio.to_thread(stdin.readline)
        if not line:
            break
        line = line.strip()
        if line in _QUIT:
            break
        if line == "help":
            emit(banner(state))
            continue

        result = await state.dispatcher.dispatch_line(line)
        if result is not None:
            emit(render(result))


async def serve(settings: Settings, stdin: TextIO, stdout: TextIO) -> None:
    async with open_store(settings.store) as store:
        await run_shell(AppState.build(settings, store), stdin, stdout)
    log.info("shell_stopped")


def main() -> int:
    try:
        settings = Settings()
    except ValidationError as exc:
        print(f"Invalid configuration:\n{exc}", file=sys.stderr)
        return 2

    configure_logging(settings.logging)
    try:
        asyncio.run(serve(settings, sys.stdin, sys.stdout))
    except (RedisError, aiosqlite.Error, OSError):
        log.error("store_unavailable", backend=settings.store.backend, exc_info=True)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
