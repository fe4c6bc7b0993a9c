"""Sticky error slot shared by matchers and the engine."""

from __future__ import annotations

import logging

from .models import Outcome, OutcomeKind, readable

logger = logging.getLogger(__name__)


class MessageNotSetError(RuntimeError):
    """Raised when a message check runs before an expected message is configured."""


class ErrorSlot:
    """Single-slot error holder: the first error wins until it is popped.

    Mismatches on lines that contain the caller's ignore substring are folded
    as IGNORED and never fill an empty slot. Once filled, callers are expected
    to reject every further line until the error is popped.
    """

    def __init__(self) -> None:
        self._error: str | None = None

    @property
    def pending(self) -> bool:
        return self._error is not None

    def record(self, outcome: Outcome) -> bool:
        """Fold a line outcome into the slot; True only for a match."""
        if outcome.kind == OutcomeKind.MATCHED:
            return True
        if outcome.kind == OutcomeKind.MISMATCHED and self._error is None:
            detail = readable(outcome.detail or "")
            logger.debug("Setting error: %s", detail)
            self._error = detail
        return False

    def error(self, msg: str, line: str | None = None, ignore_for: str | None = None) -> bool:
        """Store msg unless an error is pending or the line is ignorable. Always False."""
        return self.record(Outcome.mismatch(msg, line, ignore_for))

    def peek(self) -> str | None:
        return self._error

    def pop(self) -> str | None:
        err, self._error = self._error, None
        return err

    def clear(self) -> None:
        self._error = None
