"""Declarative verification steps and their runner."""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from .log_tool import LogTool
from .models import LogLevel

StepKind = Literal[
    "entry",
    "read_all",
    "pattern",
    "wrapped",
    "truncated",
    "starting",
    "terminator",
    "reloading",
    "reloading_logs",
]


class VerificationStep(BaseModel):
    kind: StepKind = Field(description="Which check to run.")
    level: str | None = Field(default=None, description="Entry level, or expected level for wrapped output.")
    message: str | None = Field(
        default=None, description="Expected message; %s and %d are wildcards in entry steps."
    )
    pool: str | None = Field(default=None, description="Pool name prefixed to the entry.")
    ignore_for: str | None = Field(
        default=LogLevel.DEBUG.value,
        description="Lines containing this substring are skipped instead of failing.",
    )
    check_all_logs: bool = Field(default=False, description="Also search already consumed lines.")
    pattern: str | None = Field(default=None, description="Raw regular expression for pattern steps.")
    limit: int | None = Field(default=None, ge=1, description="Maximum physical line length in bytes.")
    repeat: int = Field(default=0, ge=0, description="Repeat the expected message this many times.")
    pipe_closed: bool = Field(default=False, description="Expect the ', pipe is closed' suffix.")
    terminated: bool = Field(default=True, description="Expect the terminator lines afterwards.")
    decorated: bool = Field(default=True, description="Output carries timestamp/level/pool decoration.")
    stderr: bool = Field(default=True, description="Output was relayed from the worker's stderr.")
    line: str | None = Field(default=None, description="Literal line for truncated steps.")
    socket_count: int = Field(default=0, ge=0, description="Inherited sockets announced on reload.")
    expect_initial_progress: bool = True
    expect_reloading: bool = True

    @model_validator(mode="after")
    def check_required(self) -> VerificationStep:
        if self.kind in ("entry", "read_all") and (self.level is None or self.message is None):
            raise ValueError(f"{self.kind} steps require level and message")
        if self.kind == "pattern" and not self.pattern:
            raise ValueError("pattern steps require pattern")
        if self.pattern is not None:
            try:
                re.compile(self.pattern)
            except re.error as e:
                raise ValueError(f"Invalid pattern '{self.pattern}': {e}") from e
        if self.kind in ("wrapped", "truncated") and (self.message is None or self.limit is None):
            raise ValueError(f"{self.kind} steps require message and limit")
        if self.level is not None:
            LogLevel.parse(self.level)
        return self


class StepResult(BaseModel):
    index: int
    kind: StepKind
    ok: bool
    matched: bool | None = Field(default=None, description="For read_all: whether any entry matched.")
    error: str | None = None


class VerificationReport(BaseModel):
    ok: bool
    lines: int = Field(description="Number of log lines available to the checks.")
    results: list[StepResult] = Field(default_factory=list)


def run_step(tool: LogTool, step: VerificationStep, index: int = 0) -> StepResult:
    """Run a single step; read_all steps never fail."""
    matched: bool | None = None
    kind = step.kind

    if kind == "entry":
        ok = tool.expect_entry(
            step.level, step.message, step.pool, step.ignore_for, step.check_all_logs
        )
    elif kind == "read_all":
        matched = tool.read_all_entries(step.level, step.message, step.pool, step.ignore_for)
        ok = True
    elif kind == "pattern":
        ok = tool.expect_pattern(step.pattern)
    elif kind in ("wrapped", "truncated"):
        tool.set_expected_message(step.message, step.limit, step.repeat)
        if kind == "truncated":
            ok = tool.check_truncated_message(step.line)
        else:
            tool.set_expected_level(step.level or LogLevel.WARNING)
            tool.set_pipe_closed(step.pipe_closed)
            ok = tool.check_wrapped_message(step.terminated, step.decorated, step.stderr)
    elif kind == "starting":
        ok = tool.expect_starting_lines()
    elif kind == "terminator":
        ok = tool.expect_terminator_lines()
    elif kind == "reloading":
        ok = tool.expect_reloading_lines(
            step.socket_count, step.expect_initial_progress, step.expect_reloading
        )
    else:
        ok = tool.expect_reloading_logs_lines()

    return StepResult(
        index=index,
        kind=kind,
        ok=ok,
        matched=matched,
        error=None if ok else tool.last_error,
    )


def run_steps(tool: LogTool, steps: list[VerificationStep]) -> list[StepResult]:
    """Run steps in order, stopping after the first failure."""
    results: list[StepResult] = []
    for index, step in enumerate(steps):
        result = run_step(tool, step, index)
        results.append(result)
        if not result.ok:
            break
    return results
