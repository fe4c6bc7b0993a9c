"""Core data models for log assertions."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from enum import Enum

PIPE_CLOSED_SUFFIX = ", pipe is closed"


class LogLevel(str, Enum):
    """Severity keywords written by the daemon."""

    DEBUG = "DEBUG"
    NOTICE = "NOTICE"
    WARNING = "WARNING"
    ERROR = "ERROR"
    ALERT = "ALERT"

    @classmethod
    def parse(cls, value: LogLevel | str) -> LogLevel:
        """Return the level for a (case-insensitive) name."""
        if isinstance(value, LogLevel):
            return value
        name = value.strip().upper()
        try:
            return cls(name)
        except ValueError as e:
            valid = ", ".join(lvl.value for lvl in cls)
            raise ValueError(f"Unknown log level '{value}'. Valid values: {valid}.") from e


DEFAULT_LEVEL = LogLevel.WARNING


# Readers decode with this handler so lines cut inside a UTF-8 sequence
# encode back to the exact bytes the daemon wrote.
RAW_ERRORS = "surrogateescape"


def raw_bytes(s: str) -> bytes:
    """Bytes of a string as written to the log."""
    return s.encode("utf-8", RAW_ERRORS)


def byte_len(s: str) -> int:
    """Length of a string as written to the log (UTF-8 bytes)."""
    return len(raw_bytes(s))


def readable(s: str) -> str:
    """Text safe to print, with undecodable bytes shown as U+FFFD."""
    return raw_bytes(s).decode("utf-8", errors="replace")


@dataclass(slots=True)
class ExpectedMessage:
    """Expected logical message and the cursors advanced while matching it."""

    text: str
    limit: int
    position: int = 0  # bytes of text already matched
    suffix_position: int = 0  # bytes of PIPE_CLOSED_SUFFIX already matched

    @classmethod
    def create(cls, text: str, limit: int, repeat: int = 0) -> ExpectedMessage:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if repeat < 0:
            raise ValueError("repeat must be >= 0")
        return cls(text=text * repeat if repeat > 0 else text, limit=limit)

    @property
    def data(self) -> bytes:
        return raw_bytes(self.text)

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def remaining(self) -> int:
        return self.size - self.position

    @property
    def complete(self) -> bool:
        return self.position >= self.size

    def reset(self) -> None:
        self.position = 0
        self.suffix_position = 0


class OutcomeKind(str, Enum):
    MATCHED = "matched"
    MISMATCHED = "mismatched"
    IGNORED = "ignored"


@dataclass(frozen=True, slots=True)
class Outcome:
    """Result of checking one line against an expectation."""

    kind: OutcomeKind
    detail: str | None = None

    @classmethod
    def matched(cls) -> Outcome:
        return cls(OutcomeKind.MATCHED)

    @classmethod
    def mismatch(
        cls,
        detail: str,
        line: str | None = None,
        ignore_for: str | None = None,
    ) -> Outcome:
        """Build a mismatch, downgraded to IGNORED when the line carries ignore_for."""
        if line is not None and ignore_for is not None and ignore_for in line:
            return cls(OutcomeKind.IGNORED, detail)
        return cls(OutcomeKind.MISMATCHED, detail)

    @property
    def ok(self) -> bool:
        return self.kind == OutcomeKind.MATCHED


@dataclass(frozen=True, slots=True)
class LogToolConfig:
    debug: bool = False  # daemon built with debug info in each entry
    timeout: float = 3.0
    poll_interval: float = 0.05
    pool: str = "unconfined"


def _env_float(name: str) -> float | None:
    env = os.getenv(name)
    if env is None or env == "":
        return None
    try:
        value = float(env)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc
    if value <= 0:
        raise ValueError(f"{name} must be > 0")
    return value


def resolve_log_tool_config(cfg: LogToolConfig | None = None) -> LogToolConfig:
    """Return config with optional env overrides applied."""
    if cfg is None:
        cfg = LogToolConfig()

    changes: dict[str, object] = {}

    debug = os.getenv("LOG_ASSERT_DEBUG")
    if debug:
        flag = debug.strip().lower()
        if flag in ("1", "true", "yes", "on"):
            changes["debug"] = True
        elif flag in ("0", "false", "no", "off"):
            changes["debug"] = False
        else:
            raise ValueError("LOG_ASSERT_DEBUG must be a boolean (1/0, true/false)")

    timeout = _env_float("LOG_ASSERT_TIMEOUT")
    if timeout is not None:
        changes["timeout"] = timeout

    poll_interval = _env_float("LOG_ASSERT_POLL_INTERVAL")
    if poll_interval is not None:
        changes["poll_interval"] = poll_interval

    pool = os.getenv("LOG_ASSERT_POOL")
    if pool:
        changes["pool"] = pool

    if not changes:
        return cfg
    return replace(cfg, **changes)
