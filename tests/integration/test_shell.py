"""Shell tests: in-process over string streams, and as a subprocess."""

from __future__ import annotations

import io
import subprocess
import sys
from typing import TYPE_CHECKING

from kvcatalog.shell import run_shell

if TYPE_CHECKING:
    from pathlib import Path

    from kvcatalog.state import AppState


def _run_shell(
    env: dict[str, str], stdin: str, timeout: int = 20
) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, "-m", "kvcatalog.shell"],
        input=stdin,
        capture_output=True,
        text=True,
        timeout=timeout,
        env=env,
    )


class TestRunShell:
    async def test_prints_results_until_quit(self, app_state: AppState) -> None:
        stdin = io.StringIO(
            "add book Dune, Herbert, 111, 412\n"
            "\n"
            "list books isbn\n"
            "q\n"
            "add book Emma, Austen, 222, 99\n"
        )
        stdout = io.StringIO()
        await run_shell(app_state, stdin, stdout)

        lines = stdout.getvalue().splitlines()
        assert lines[-2:] == ["Book added successfully!", "Dune, 111, Herbert, 412"]
        # Nothing after "q" ran.
        assert await app_state.store.object_exists("book-222") is False

    async def test_help_reprints_usage(self, app_state: AppState) -> None:
        stdout = io.StringIO()
        await run_shell(app_state, io.StringIO("help\n"), stdout)
        assert stdout.getvalue().count("checkout book <isbn>, <username>") == 2


class TestSubprocess:
    def test_commands_persist_across_runs(self, subprocess_env: dict[str, str]) -> None:
        first = _run_shell(
            subprocess_env,
            "add book Dune, Herbert, 111, 412\nadd borrower Sam, sam1, 555-0100\n",
        )
        assert first.returncode == 0
        assert "Book added successfully!" in first.stdout

        second = _run_shell(subprocess_env, "checkout book 111, sam1\nborrowed by sam1\n")
        assert second.returncode == 0
        assert "Book with ISBN 111 has been checked out to sam1." in second.stdout
        assert "Books checked out by sam1: Dune" in second.stdout

    def test_missing_parent_dirs_are_auto_created(
        self, tmp_path: Path, subprocess_env: dict[str, str]
    ) -> None:
        deep_path = tmp_path / "a" / "b" / "catalog.db"
        env = {**subprocess_env, "KVCATALOG__STORE__DB_PATH": str(deep_path)}
        result = _run_shell(env, "list books isbn\n")
        assert result.returncode == 0
        assert "No books found." in result.stdout
        assert deep_path.exists()

    def test_bad_config_exits_nonzero(self, subprocess_env: dict[str, str]) -> None:
        env = {**subprocess_env, "KVCATALOG__STORE__BACKEND": "mongo"}
        result = _run_shell(env, "")
        assert result.returncode == 2
        assert "Invalid configuration" in result.stderr

    def test_unreachable_redis_exits_nonzero(self, subprocess_env: dict[str, str]) -> None:
        env = {
            **subprocess_env,
            "KVCATALOG__STORE__BACKEND": "redis",
            "KVCATALOG__STORE__REDIS_URL": "redis://127.0.0.1:1/0",
        }
        result = _run_shell(env, "")
        assert result.returncode == 1
