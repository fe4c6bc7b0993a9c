"""Regex builders for the daemon's decorated log lines.

Patterns are composed from fixed fragments; caller text is always escaped and
only the two wildcards are turned into character classes:

- ``%s`` matches any run of non-newline characters
- ``%d`` matches a run of digits
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

from .models import LogLevel

Stream = Literal["stderr", "stdout"]

TIMESTAMP = r"\[\d\d-\w\w\w-\d{4} \d\d:\d\d:\d\d(?:\.\d+)?\]"
DEBUG_INFO = r"pid \d+, (?:\w+|\(null\))\(\), line \d+: "
WILDCARDS: dict[str, str] = {
    "%s": r"[^\r\n]+",
    "%d": r"\d+",
}
# Levels a daemon entry may be reported with when recovering what was logged.
REPORTED_LEVELS = (LogLevel.NOTICE, LogLevel.WARNING, LogLevel.ERROR, LogLevel.ALERT)

_WILDCARD_RE = re.compile("(" + "|".join(re.escape(w) for w in WILDCARDS) + ")")


def expand_wildcards(message: str) -> str:
    """Escape message text and expand the %s/%d wildcards."""
    parts = _WILDCARD_RE.split(message)
    return "".join(WILDCARDS.get(part) or re.escape(part) for part in parts)


def pool_prefix(pool: str, stream: Stream = "stderr") -> str:
    """Prefix added to output relayed from a worker's stream."""
    return rf"\[pool {re.escape(pool)}\] child \d+ said into {stream}: "


@dataclass(frozen=True, slots=True)
class PatternBuilder:
    """Build compiled patterns for one verification call."""

    debug: bool = False

    truncated_re = re.compile(r"^PHP message: (?P<payload>.*?)(?P<ellipsis>\.\.\.)?$")

    def _debug_info(self) -> str:
        return f"(?:{DEBUG_INFO})?" if self.debug else ""

    def line_prefix(self, level: LogLevel, pool: str, stream: Stream = "stderr") -> str:
        """Decoration written before a relayed worker payload."""
        return f"{TIMESTAMP} {re.escape(level.value)}: {self._debug_info()}{pool_prefix(pool, stream)}"

    def wrapped_line(self, level: LogLevel, pool: str, stream: Stream = "stderr") -> re.Pattern[str]:
        """Pattern for one physical line of a wrapped, decorated message."""
        prefix = self.line_prefix(level, pool, stream)
        return re.compile(rf'^(?P<prefix>{prefix})"(?P<payload>[^"]*)"(?P<suffix>.*)$')

    def suffix_continuation(
        self, level: LogLevel, pool: str, stream: Stream = "stderr"
    ) -> re.Pattern[str]:
        """Pattern for a line carrying the rest of a split pipe-closed suffix."""
        prefix = self.line_prefix(level, pool, stream)
        return re.compile(rf"^(?P<prefix>{prefix})(?P<rest>.*)$")

    def entry(self, level: LogLevel, message: str, pool: str | None = None) -> re.Pattern[str]:
        """Pattern for a structured daemon entry with wildcards in message."""
        pool_part = rf"\[pool {re.escape(pool)}\] " if pool is not None else ""
        return re.compile(
            rf"^(?:{TIMESTAMP} )?{re.escape(level.value)}: "
            rf"{self._debug_info()}{pool_part}{expand_wildcards(message)}$"
        )

    def actual_entry(self) -> re.Pattern[str]:
        """Loose pattern recovering the level and message that were logged."""
        levels = "|".join(lvl.value for lvl in REPORTED_LEVELS)
        return re.compile(
            rf"^(?:{TIMESTAMP} )?(?P<level>{levels}): (?:{DEBUG_INFO})?(?P<message>.*)$"
        )
