from __future__ import annotations

import pytest

from fpm_log_assert.core.errors import MessageNotSetError
from fpm_log_assert.core.log_tool import LogTool
from fpm_log_assert.core.models import PIPE_CLOSED_SUFFIX, LogLevel, LogToolConfig
from fpm_log_assert.core.readers import MemoryLogReader

TEXT = "Lorem ipsum dolor sit amet, consectetur adipiscing elit. " * 4


def _tool(lines: list[str], **kwargs) -> LogTool:
    return LogTool(MemoryLogReader(lines), config=LogToolConfig(), **kwargs)


def test_expected_level_defaults_to_warning() -> None:
    tool = _tool([])
    assert tool.expected_level == LogLevel.WARNING
    assert tool.set_expected_level("notice") == LogLevel.NOTICE
    assert tool.expected_level == LogLevel.NOTICE


def test_checks_require_message() -> None:
    tool = _tool([])
    with pytest.raises(MessageNotSetError):
        tool.check_wrapped_message()
    with pytest.raises(MessageNotSetError):
        tool.check_truncated_message("PHP message: x")


def test_wrapped_message_with_terminator(wrapped_lines, notice) -> None:
    lines = wrapped_lines(TEXT, 150) + [notice("Terminating ..."), notice("exiting, bye-bye!")]
    tool = _tool(lines)
    tool.set_expected_message(TEXT, 150)

    assert tool.check_wrapped_message()
    assert tool.last_error is None


def test_wrapped_message_repeat_and_stdout(wrapped_lines) -> None:
    tool = _tool(wrapped_lines("abcdef" * 30, 120, level="NOTICE", stream="stdout"))
    tool.set_expected_message("abcdef", 120, repeat=30)
    tool.set_expected_level(LogLevel.NOTICE)

    assert tool.check_wrapped_message(terminated=False, is_stderr=False)


def test_wrapped_message_undecorated() -> None:
    tool = _tool(["AAAAA", "AAAAA"])
    tool.set_expected_message("A", 5, repeat=10)
    assert tool.check_wrapped_message(terminated=False, decorated=False)


def test_wrapped_message_with_split_suffix(worker_line, line_prefix) -> None:
    tool = _tool([worker_line("hello", suffix=", pipe"), line_prefix() + " is closed"])
    tool.set_expected_message("hello", 200)
    tool.set_pipe_closed(True)

    assert tool.check_wrapped_message(terminated=False)
    assert tool.message.suffix_position == 0


def test_wrapped_message_missing_suffix_continuation(worker_line) -> None:
    tool = _tool([worker_line("hello", suffix=", pipe")])
    tool.set_expected_message("hello", 200)
    tool.set_pipe_closed(True)

    assert not tool.check_wrapped_message(terminated=False)
    assert tool.last_error == "The final suffix continuation not found"


def test_failure_is_printed_once_and_cleared(capsys: pytest.CaptureFixture[str]) -> None:
    tool = _tool(["AAAA"])
    tool.set_expected_message("A" * 10, 5)

    assert not tool.check_wrapped_message(terminated=False, decorated=False)

    out = capsys.readouterr().out
    assert out.count("ERROR: ") == 1
    assert "The continuous line length is 4" in out
    assert tool.last_error is not None
    assert tool.peek_error() is None


def test_timeout_reports_operation_message() -> None:
    tool = _tool([])
    tool.set_expected_message("hello", 10)
    assert not tool.check_wrapped_message(decorated=False)
    assert tool.last_error == "The output message not found"


def test_pending_error_short_circuits() -> None:
    tool = _tool(["NOTICE: ready to handle connections"])
    tool.errors.error("stale")

    assert not tool.expect_notice("ready to handle connections")
    assert tool.last_error == "stale"
    assert tool.pop_error() is None


def test_truncated_message_literal_and_from_log() -> None:
    tool = _tool(["PHP message: hello"])
    tool.set_expected_message("hello", 40)

    assert tool.check_truncated_message("PHP message: hello")
    assert tool.check_truncated_message()
    assert not tool.check_truncated_message("PHP message: hello...")
    assert tool.last_error == "The line is complete and should not end with '...'"


def test_expect_entry_skips_debug_noise(notice) -> None:
    tool = _tool(
        [
            "[19-Oct-2026 10:00:00] DEBUG: pid 1, fpm_pctl_perform_idle_server_maintenance(), line 379: idle",
            notice('using inherited socket fd=7, "abc"'),
        ]
    )
    assert tool.expect_notice('using inherited socket fd=%d, "%s"')


def test_expect_entry_reports_actual_entry(notice) -> None:
    tool = _tool(
        [
            "[19-Oct-2026 10:00:00] WARNING: something else",
            notice("ready to handle connections"),
        ]
    )
    assert not tool.expect_notice("ready to handle connections")
    assert tool.last_error is not None
    assert "Expected message 'ready to handle connections'" in tool.last_error
    assert "actual WARNING message 'something else'" in tool.last_error


def test_expect_entry_unknown_actual_message() -> None:
    tool = _tool(["not a daemon line"])
    assert not tool.expect_error("unable to bind")
    assert "unknown message in line: not a daemon line" in tool.last_error


def test_expect_entry_with_pool() -> None:
    tool = _tool(["[19-Oct-2026 10:00:00] WARNING: [pool www] server reached pm.max_children setting (5)"])
    assert tool.expect_warning("server reached pm.max_children setting (%d)", pool="www")


def test_expect_entry_check_all_logs(notice) -> None:
    tool = _tool([notice("first"), notice("second")])
    assert tool.expect_notice("first")
    assert tool.expect_notice("second")
    assert tool.expect_entry("NOTICE", "first", check_all_logs=True)
    assert tool.expect_entry("NOTICE", "second", check_all_logs=True)
    assert not tool.expect_entry("NOTICE", "third", check_all_logs=True)
    assert tool.last_error == "The NOTICE 'third' not found"
    assert not tool.expect_notice("first")


def test_expect_entry_debug_build() -> None:
    tool = _tool(
        ["[19-Oct-2026 10:00:00] NOTICE: pid 12, fpm_event_loop(), line 415: ready to handle connections"],
        debug=True,
    )
    assert tool.expect_notice("ready to handle connections")


def test_read_all_entries_drains_matches(notice) -> None:
    reader = MemoryLogReader(
        [
            notice("child 1 started"),
            "[19-Oct-2026 10:00:00] DEBUG: pid 1, fpm_children_make(), line 1: noise",
            notice("child 2 started"),
        ]
    )
    tool = LogTool(reader, config=LogToolConfig())

    assert tool.read_all_entries(LogLevel.NOTICE, "child %d started")
    assert reader.pending == 0
    assert tool.peek_error() is None
    assert not tool.read_all_entries(LogLevel.NOTICE, "child %d started")


def test_expect_pattern() -> None:
    tool = _tool(["foo", "bar 42", "baz"])
    assert tool.expect_pattern(r"bar \d+")
    assert not tool.expect_pattern("nothing")
    assert tool.last_error == "The search pattern not found"


def test_starting_and_terminator_lines(notice) -> None:
    tool = _tool(
        [
            notice("fpm is running, pid 4012"),
            notice("ready to handle connections"),
            notice("Terminating ..."),
            notice("exiting, bye-bye!"),
        ]
    )
    assert tool.expect_starting_lines()
    assert tool.expect_terminator_lines()


def test_reloading_lines(notice) -> None:
    tool = _tool(
        [
            notice("Reloading in progress ..."),
            notice('reloading: execvp("php-fpm", {"php-fpm", "-F"})'),
            notice('using inherited socket fd=7, "127.0.0.1:9000"'),
            notice('using inherited socket fd=8, "127.0.0.1:9001"'),
            notice("fpm is running, pid 4012"),
            notice("ready to handle connections"),
            notice("error log file re-opened"),
            notice("access log file re-opened"),
        ]
    )
    assert tool.expect_reloading_lines(2)
    assert tool.expect_reloading_logs_lines()


def test_reloading_lines_stop_at_first_failure(notice) -> None:
    reader = MemoryLogReader(
        [
            notice('reloading: execvp("php-fpm")'),
            notice("fpm is running, pid 4012"),
            notice("ready to handle connections"),
        ]
    )
    tool = LogTool(reader, config=LogToolConfig())

    assert not tool.expect_reloading_lines(1, expect_initial_progress=False)
    assert "using inherited socket" in tool.last_error
    assert reader.pending == 0


def test_reloading_lines_reject_negative_count() -> None:
    with pytest.raises(ValueError):
        _tool([]).expect_reloading_lines(-1)
