"""Sequential log readers.

The engine only depends on :class:`LogReader`. Two implementations are
provided: an in-memory reader fed with a fixed line sequence and a polling
tail of a growing log file.
"""

from __future__ import annotations

import gzip
import logging
import time
from collections import deque
from collections.abc import Callable, Iterable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Protocol

import aiofiles
from aiofiles.threadpool import wrap

from .models import RAW_ERRORS, LogToolConfig, resolve_log_tool_config

logger = logging.getLogger(__name__)

LinePredicate = Callable[[str], bool]


class LogReader(Protocol):
    """Reader interface: deliver lines in order until the matcher accepts one."""

    def read_until(
        self,
        matcher: LinePredicate,
        timeout_message: str,
        include_history: bool = False,
    ) -> bool:
        """Return True once a line satisfies matcher, False on timeout."""
        ...


def _strip_eol(line: str) -> str:
    return line.rstrip("\r\n")


def _scan_history(history: Iterable[str], matcher: LinePredicate) -> bool:
    return any(matcher(line) for line in history)


class MemoryLogReader:
    """Deterministic reader over a fixed sequence; running out of lines is a timeout."""

    def __init__(self, lines: Iterable[str] = ()) -> None:
        self._pending: deque[str] = deque(_strip_eol(line) for line in lines)
        self._history: list[str] = []

    @property
    def history(self) -> tuple[str, ...]:
        """Lines already delivered to a matcher."""
        return tuple(self._history)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def append(self, *lines: str) -> None:
        self._pending.extend(_strip_eol(line) for line in lines)

    def read_until(
        self,
        matcher: LinePredicate,
        timeout_message: str,
        include_history: bool = False,
    ) -> bool:
        if include_history and _scan_history(self._history, matcher):
            return True
        while self._pending:
            line = self._pending.popleft()
            self._history.append(line)
            if matcher(line):
                return True
        logger.debug("No more lines: %s", timeout_message)
        return False


class FileLogReader:
    """Poll a log file for appended lines, waiting up to ``timeout`` seconds per read.

    Incomplete trailing lines are held back until their newline is written.
    If the file shrinks it is treated as truncated and read from the start.
    """

    def __init__(
        self,
        log_path: str | Path,
        *,
        config: LogToolConfig | None = None,
        timeout: float | None = None,
        poll_interval: float | None = None,
        encoding: str = "utf-8",
        decode_errors: str = RAW_ERRORS,
    ) -> None:
        cfg = resolve_log_tool_config(config)
        self.path = Path(log_path)
        self.timeout = cfg.timeout if timeout is None else timeout
        self.poll_interval = cfg.poll_interval if poll_interval is None else poll_interval
        if self.timeout < 0:
            raise ValueError("timeout must be >= 0")
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        self.encoding = encoding
        self.decode_errors = decode_errors

        self._offset = 0
        self._buffer = b""
        self._pending: deque[str] = deque()
        self._history: list[str] = []

    @property
    def history(self) -> tuple[str, ...]:
        return tuple(self._history)

    def _poll(self) -> None:
        """Queue complete lines appended since the last poll."""
        try:
            size = self.path.stat().st_size
        except FileNotFoundError:
            return

        if size < self._offset:
            logger.debug("Log file %s truncated, reading from start", self.path)
            self._offset = 0
            self._buffer = b""
        if size == self._offset:
            return

        with self.path.open("rb") as f:
            f.seek(self._offset)
            chunk = f.read()
        self._offset += len(chunk)

        parts = (self._buffer + chunk).split(b"\n")
        self._buffer = parts.pop()
        for raw in parts:
            self._pending.append(_strip_eol(raw.decode(self.encoding, errors=self.decode_errors)))

    def read_until(
        self,
        matcher: LinePredicate,
        timeout_message: str,
        include_history: bool = False,
    ) -> bool:
        if include_history and _scan_history(self._history, matcher):
            return True

        deadline = time.monotonic() + self.timeout
        while True:
            self._poll()
            while self._pending:
                line = self._pending.popleft()
                self._history.append(line)
                if matcher(line):
                    return True
            if time.monotonic() >= deadline:
                logger.debug("Timed out after %.2fs: %s", self.timeout, timeout_message)
                return False
            time.sleep(self.poll_interval)


@asynccontextmanager
async def _open_text(path: Path, *, encoding: str, decode_errors: str):
    """Open a log file for async text reading (plain or gzip)."""
    if path.suffix.lower() == ".gz":
        f = gzip.open(path, mode="rt", encoding=encoding, errors=decode_errors)
        af = wrap(f)
        try:
            yield af
        finally:
            await af.close()
    else:
        async with aiofiles.open(path, encoding=encoding, errors=decode_errors) as f:
            yield f


async def load_log_lines(
    log_path: str | Path,
    *,
    encoding: str = "utf-8",
    decode_errors: str = RAW_ERRORS,
) -> list[str]:
    """Read a whole log file into lines without line terminators."""
    path = Path(log_path)
    if not path.is_file():
        raise FileNotFoundError(f"Log file not found: {path}")

    async with _open_text(path, encoding=encoding, decode_errors=decode_errors) as f:
        return [_strip_eol(line) async for line in f]
