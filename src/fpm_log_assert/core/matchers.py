"""Line predicates handed to a log reader.

Each matcher turns a line into an :class:`Outcome` and folds it into the shared
:class:`ErrorSlot`. While an error is pending every line is rejected without
being inspected.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod

from .errors import ErrorSlot
from .models import (
    PIPE_CLOSED_SUFFIX,
    ExpectedMessage,
    LogLevel,
    Outcome,
    OutcomeKind,
    byte_len,
    raw_bytes,
    readable,
)
from .patterns import PatternBuilder

logger = logging.getLogger(__name__)

TRUNCATION_LEVEL_PREFIX = "NOTICE: "


def _content_mismatch(expected: bytes, actual: bytes) -> str:
    return (
        f"The expected message len {len(expected)} is not equal to received message len {len(actual)}:\n"
        f"expected: '{expected.decode('utf-8', errors='replace')}'\n"
        f"received: '{actual.decode('utf-8', errors='replace')}'"
    )


def _length_violation(line_len: int, limit: int) -> str:
    return f"The line length is {line_len} which is higher than limit {limit}"


class LineMatcher(ABC):
    """Base predicate: short-circuits on a pending error, records outcomes."""

    def __init__(self, errors: ErrorSlot) -> None:
        self.errors = errors

    @abstractmethod
    def evaluate(self, line: str) -> Outcome:
        """Classify one line against the expectation."""

    def __call__(self, line: str) -> bool:
        if self.errors.pending:
            return False
        outcome = self.evaluate(line)
        if outcome.ok:
            logger.debug("Matched line: %s", readable(line))
        return self.errors.record(outcome)


class WrappedLineMatcher(LineMatcher):
    """Consume one physical line of a message wrapped at ``message.limit``.

    ``pattern`` is the decorated-line pattern; ``None`` means plain output where
    the whole right-stripped line is payload.
    """

    def __init__(
        self,
        message: ExpectedMessage,
        errors: ErrorSlot,
        pattern: re.Pattern[str] | None = None,
        *,
        pipe_closed: bool = False,
    ) -> None:
        super().__init__(errors)
        self.message = message
        self.pattern = pattern
        self.pipe_closed = pipe_closed

    def evaluate(self, line: str) -> Outcome:
        msg = self.message
        if self.pattern is None:
            payload = line.rstrip()
            suffix = ""
        else:
            m = self.pattern.match(line)
            if not m:
                return Outcome.mismatch(f"Unexpected line: {line}")
            payload = m.group("payload")
            suffix = m.group("suffix")

        line_len = byte_len(line)
        if line_len > msg.limit:
            return Outcome.mismatch(_length_violation(line_len, msg.limit))

        out = raw_bytes(payload)
        rem = msg.remaining
        if rem < len(out):
            return Outcome.mismatch("Printed more than the message length")

        expected = msg.data[msg.position : msg.position + len(out)]
        if expected != out:
            return Outcome.mismatch(_content_mismatch(expected, out))
        msg.position += len(out)

        if rem > len(out):
            # A line that continues the message is always filled up to the limit.
            if line_len != msg.limit:
                if line_len + (rem - len(out)) < msg.limit:
                    return Outcome.mismatch("Printed less than the message length")
                return Outcome.mismatch(
                    f"The continuous line length is {line_len} but it should equal to limit {msg.limit}"
                )
            return Outcome.matched()

        if not self.pipe_closed or self.pattern is None:
            return Outcome.matched()
        if not suffix or suffix not in PIPE_CLOSED_SUFFIX:
            return Outcome.mismatch(f"The final suffix has to be equal to '{PIPE_CLOSED_SUFFIX}'")
        if suffix != PIPE_CLOSED_SUFFIX:
            msg.suffix_position = byte_len(suffix)
        return Outcome.matched()


class SuffixContinuationMatcher(LineMatcher):
    """Match the line carrying the rest of a pipe-closed suffix."""

    def __init__(self, message: ExpectedMessage, errors: ErrorSlot, pattern: re.Pattern[str]) -> None:
        super().__init__(errors)
        self.message = message
        self.pattern = pattern

    def evaluate(self, line: str) -> Outcome:
        msg = self.message
        m = self.pattern.match(line)
        if not m:
            return Outcome.mismatch(f"Unexpected line: {line}")

        line_len = byte_len(line)
        if line_len > msg.limit:
            return Outcome.mismatch(_length_violation(line_len, msg.limit))

        rest = m.group("rest")
        expected = PIPE_CLOSED_SUFFIX[msg.suffix_position :]
        if rest != expected:
            return Outcome.mismatch(
                f"The final suffix continuation from position {msg.suffix_position} "
                f"should be '{expected}' but it is '{rest}'"
            )
        msg.suffix_position = 0
        return Outcome.matched()


class TruncatedLineMatcher(LineMatcher):
    """Match the single ``PHP message:`` line of a hard-truncated message."""

    def __init__(self, message: ExpectedMessage, errors: ErrorSlot) -> None:
        super().__init__(errors)
        self.message = message

    @property
    def boundary(self) -> int:
        """Line length at which the message is cut and ``...`` appended."""
        return self.message.limit - byte_len(TRUNCATION_LEVEL_PREFIX) - 1

    def evaluate(self, line: str) -> Outcome:
        msg = self.message
        line_len = byte_len(line)
        if line_len > msg.limit:
            return Outcome.mismatch(_length_violation(line_len, msg.limit))

        m = PatternBuilder.truncated_re.match(line)
        if not m:
            return Outcome.mismatch(f"Unexpected truncated message: {line}")

        payload = raw_bytes(m.group("payload"))
        if line_len == self.boundary:
            if m.group("ellipsis") is None:
                return Outcome.mismatch("The truncated line is not ended with '...'")
            expected = msg.data[: len(payload)]
        else:
            if m.group("ellipsis") is not None:
                return Outcome.mismatch("The line is complete and should not end with '...'")
            expected = msg.data

        if payload != expected:
            return Outcome.mismatch(_content_mismatch(expected, payload))
        return Outcome.matched()


class EntryMatcher(LineMatcher):
    """Match a structured daemon entry, skipping lines containing ``ignore_for``.

    With ``search`` set every non-matching line is skipped, so the entry may
    appear anywhere in the lines the reader delivers.
    """

    def __init__(
        self,
        errors: ErrorSlot,
        builder: PatternBuilder,
        level: LogLevel,
        message: str,
        *,
        pool: str | None = None,
        ignore_for: str | None = LogLevel.DEBUG.value,
        search: bool = False,
    ) -> None:
        super().__init__(errors)
        self.level = level
        self.message = message
        self.ignore_for = ignore_for
        self.search = search
        self.pattern = builder.entry(level, message, pool)
        self.actual_re = builder.actual_entry()

    def evaluate(self, line: str) -> Outcome:
        if self.pattern.match(line):
            return Outcome.matched()
        if self.search:
            return Outcome(OutcomeKind.IGNORED)

        m = self.actual_re.match(line)
        if m:
            actual = f"{m.group('level')} message '{m.group('message')}'"
        else:
            actual = f"unknown message in line: {line}"
        detail = (
            f"The {self.level.value} does not match expected format. "
            f"Expected message '{self.message}', actual {actual}"
        )
        return Outcome.mismatch(detail, line, self.ignore_for)


class PatternMatcher(LineMatcher):
    """Search a raw caller regex; lines that do not match are skipped."""

    def __init__(self, errors: ErrorSlot, pattern: str | re.Pattern[str]) -> None:
        super().__init__(errors)
        self.pattern = re.compile(pattern)

    def evaluate(self, line: str) -> Outcome:
        if self.pattern.search(line):
            return Outcome.matched()
        return Outcome(OutcomeKind.IGNORED)
