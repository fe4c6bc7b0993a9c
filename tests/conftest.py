from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

TS = "[19-Oct-2026 10:00:00]"


def worker_prefix(
    level: str = "WARNING",
    pool: str = "unconfined",
    stream: str = "stderr",
    child: int = 4013,
) -> str:
    return f"{TS} {level}: [pool {pool}] child {child} said into {stream}: "


@pytest.fixture
def line_prefix() -> Callable[..., str]:
    return worker_prefix


@pytest.fixture
def worker_line() -> Callable[..., str]:
    def _line(payload: str, *, suffix: str = "", **prefix_kwargs) -> str:
        return f'{worker_prefix(**prefix_kwargs)}"{payload}"{suffix}'

    return _line


@pytest.fixture
def wrapped_lines() -> Callable[..., list[str]]:
    """Split text into decorated lines filled up to limit, as the daemon writes them."""

    def _wrap(text: str, limit: int, *, suffix: str = "", **prefix_kwargs) -> list[str]:
        prefix = worker_prefix(**prefix_kwargs)
        chunk = limit - len(prefix) - 2
        assert chunk > 0, "limit too small for the decoration"
        lines = [f'{prefix}"{text[i:i + chunk]}"' for i in range(0, len(text), chunk)]
        lines[-1] += suffix
        return lines

    return _wrap


@pytest.fixture
def notice() -> Callable[[str], str]:
    def _notice(message: str) -> str:
        return f"{TS} NOTICE: {message}"

    return _notice


@pytest.fixture
def write_log() -> Callable[[Path, list[str]], None]:
    def _write(path: Path, lines: list[str]) -> None:
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    return _write
