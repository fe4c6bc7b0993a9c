"""Verification engine for the daemon's log output.

A caller configures the expected message/level, then runs a check. The check
builds a matcher closed over the message state and pulls lines from the reader
until the matcher accepts one or the reader gives up. When a public check fails
its diagnostic is printed to stdout once, kept as :attr:`LogTool.last_error`,
and the error slot is cleared for the next check.
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import replace
from typing import TextIO

from .errors import ErrorSlot, MessageNotSetError
from .matchers import (
    EntryMatcher,
    LineMatcher,
    PatternMatcher,
    SuffixContinuationMatcher,
    TruncatedLineMatcher,
    WrappedLineMatcher,
)
from .models import DEFAULT_LEVEL, ExpectedMessage, LogLevel, LogToolConfig, resolve_log_tool_config
from .patterns import PatternBuilder
from .readers import LogReader

logger = logging.getLogger(__name__)

DEFAULT_IGNORE_FOR = LogLevel.DEBUG.value


class LogTool:
    """Match daemon log lines against expectations."""

    def __init__(
        self,
        reader: LogReader,
        *,
        config: LogToolConfig | None = None,
        debug: bool | None = None,
        output: TextIO | None = None,
    ) -> None:
        cfg = resolve_log_tool_config(config)
        if debug is not None and debug != cfg.debug:
            cfg = replace(cfg, debug=debug)
        self.config = cfg
        self.reader = reader
        self.output = output  # failure diagnostics; stdout when None
        self.builder = PatternBuilder(debug=cfg.debug)
        self.errors = ErrorSlot()

        self._message: ExpectedMessage | None = None
        self._level: LogLevel | None = None
        self._pipe_closed = False
        self._last_error: str | None = None

    def set_expected_message(self, message: str, limit: int, repeat: int = 0) -> None:
        """Expect message (repeated repeat times) written with lines of at most limit bytes."""
        self._message = ExpectedMessage.create(message, limit, repeat)

    @property
    def message(self) -> ExpectedMessage:
        if self._message is None:
            raise MessageNotSetError("The message has not been set")
        return self._message

    def set_expected_level(self, level: LogLevel | str) -> LogLevel:
        self._level = LogLevel.parse(level)
        return self._level

    @property
    def expected_level(self) -> LogLevel:
        return self._level or DEFAULT_LEVEL

    def set_pipe_closed(self, pipe_closed: bool) -> None:
        """Expect the final wrapped line to carry the pipe-closed suffix."""
        self._pipe_closed = pipe_closed

    def peek_error(self) -> str | None:
        return self.errors.peek()

    def pop_error(self) -> str | None:
        return self.errors.pop()

    @property
    def last_error(self) -> str | None:
        """Diagnostic of the most recent failed check."""
        return self._last_error

    def _read(self, matcher: LineMatcher, timeout_message: str, include_history: bool = False) -> bool:
        if self.reader.read_until(matcher, timeout_message, include_history):
            return True
        return self.errors.error(timeout_message)

    def _fail(self) -> bool:
        err = self.errors.pop()
        self._last_error = err
        if err is not None:
            logger.debug("Check failed: %s", err)
            print(f"ERROR: {err}", file=self.output or sys.stdout)
        return False

    def check_truncated_message(self, line: str | None = None) -> bool:
        """Check a hard-truncated ``PHP message:`` line (read from the log if not given)."""
        message = self.message
        if self.errors.pending:
            return self._fail()

        matcher = TruncatedLineMatcher(message, self.errors)
        if line is not None:
            ok = matcher(line)
        else:
            ok = self._read(matcher, "The truncated message not found")
        return ok or self._fail()

    def check_wrapped_message(
        self,
        terminated: bool = True,
        decorated: bool = True,
        is_stderr: bool = True,
    ) -> bool:
        """Check that the expected message is written wrapped across lines at the limit."""
        message = self.message
        message.reset()
        if self.errors.pending:
            return self._fail()

        level = self.expected_level
        stream = "stderr" if is_stderr else "stdout"
        pattern = self.builder.wrapped_line(level, self.config.pool, stream) if decorated else None
        matcher = WrappedLineMatcher(message, self.errors, pattern, pipe_closed=self._pipe_closed)

        while not message.complete:
            if not self._read(matcher, "The output message not found"):
                return self._fail()

        if message.suffix_position > 0:
            suffix_matcher = SuffixContinuationMatcher(
                message,
                self.errors,
                self.builder.suffix_continuation(level, self.config.pool, stream),
            )
            if not self._read(suffix_matcher, "The final suffix continuation not found"):
                return self._fail()

        if terminated and not self._expect_terminator_lines():
            return self._fail()
        return True

    def _expect_entry(
        self,
        level: LogLevel | str,
        message: str,
        pool: str | None = None,
        ignore_for: str | None = DEFAULT_IGNORE_FOR,
        check_all_logs: bool = False,
    ) -> bool:
        if self.errors.pending:
            return False
        level = LogLevel.parse(level)
        matcher = EntryMatcher(
            self.errors,
            self.builder,
            level,
            message,
            pool=pool,
            ignore_for=ignore_for,
            search=check_all_logs,
        )
        return self._read(matcher, f"The {level.value} '{message}' not found", check_all_logs)

    def expect_entry(
        self,
        level: LogLevel | str,
        message: str,
        pool: str | None = None,
        ignore_for: str | None = DEFAULT_IGNORE_FOR,
        check_all_logs: bool = False,
    ) -> bool:
        """Expect the next relevant entry to match; %s and %d are wildcards in message."""
        return self._expect_entry(level, message, pool, ignore_for, check_all_logs) or self._fail()

    def read_all_entries(
        self,
        level: LogLevel | str,
        message: str,
        pool: str | None = None,
        ignore_for: str | None = DEFAULT_IGNORE_FOR,
    ) -> bool:
        """Consume matching entries until none is left; True if at least one matched."""
        if self.errors.pending:
            return self._fail()
        found = False
        while self._expect_entry(level, message, pool, ignore_for):
            found = True
        self.errors.clear()
        return found

    def expect_debug(self, message: str, pool: str | None = None) -> bool:
        return self.expect_entry(LogLevel.DEBUG, message, pool)

    def expect_notice(self, message: str, pool: str | None = None) -> bool:
        return self.expect_entry(LogLevel.NOTICE, message, pool)

    def expect_warning(self, message: str, pool: str | None = None) -> bool:
        return self.expect_entry(LogLevel.WARNING, message, pool)

    def expect_error(self, message: str, pool: str | None = None) -> bool:
        return self.expect_entry(LogLevel.ERROR, message, pool)

    def expect_alert(self, message: str, pool: str | None = None) -> bool:
        return self.expect_entry(LogLevel.ALERT, message, pool)

    def expect_pattern(self, pattern: str | re.Pattern[str]) -> bool:
        """Skip lines until one contains a match for the raw regex."""
        if self.errors.pending:
            return self._fail()
        return self._read(PatternMatcher(self.errors, pattern), "The search pattern not found") or self._fail()

    def _expect_notice(self, message: str) -> bool:
        return self._expect_entry(LogLevel.NOTICE, message)

    def _expect_starting_lines(self) -> bool:
        return self._expect_notice("fpm is running, pid %d") and self._expect_notice(
            "ready to handle connections"
        )

    def _expect_terminator_lines(self) -> bool:
        return self._expect_notice("Terminating ...") and self._expect_notice("exiting, bye-bye!")

    def _expect_reloading_lines(
        self,
        socket_count: int,
        expect_initial_progress: bool,
        expect_reloading: bool,
    ) -> bool:
        if expect_initial_progress and not self._expect_notice("Reloading in progress ..."):
            return False
        if expect_reloading and not self._expect_notice("reloading: %s"):
            return False
        for _ in range(socket_count):
            if not self._expect_notice('using inherited socket fd=%d, "%s"'):
                return False
        return self._expect_starting_lines()

    def expect_starting_lines(self) -> bool:
        return self._expect_starting_lines() or self._fail()

    def expect_terminator_lines(self) -> bool:
        return self._expect_terminator_lines() or self._fail()

    def expect_reloading_lines(
        self,
        socket_count: int,
        expect_initial_progress: bool = True,
        expect_reloading: bool = True,
    ) -> bool:
        """Expect a reload: progress notices, one notice per inherited socket, then startup."""
        if socket_count < 0:
            raise ValueError("socket_count must be >= 0")
        return (
            self._expect_reloading_lines(socket_count, expect_initial_progress, expect_reloading)
            or self._fail()
        )

    def expect_reloading_logs_lines(self) -> bool:
        return (
            self._expect_notice("error log file re-opened")
            and self._expect_notice("access log file re-opened")
        ) or self._fail()
