"""MCP tool implementations.

This module contains the *implementation* behind the exposed MCP tools.
Keep this layer thin: validate inputs, translate them into core calls, and
return JSON-serializable data structures.
"""

from __future__ import annotations

import sys
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Any

from fpm_log_assert.core.log_tool import LogTool
from fpm_log_assert.core.models import resolve_log_tool_config
from fpm_log_assert.core.readers import MemoryLogReader, load_log_lines
from fpm_log_assert.core.steps import VerificationReport, VerificationStep, run_steps

HARD_STEP_LIMIT = 500


def _parse_steps(steps: Sequence[Mapping[str, Any]]) -> list[VerificationStep]:
    """Validate user-supplied step definitions."""
    if not steps:
        raise ValueError("steps must not be empty")
    if len(steps) > HARD_STEP_LIMIT:
        raise ValueError(f"At most {HARD_STEP_LIMIT} steps are allowed")
    return [VerificationStep.model_validate(dict(s)) for s in steps]


async def verify_log_impl(
    *,
    log_path: str,
    steps: Sequence[Mapping[str, Any]],
    debug: bool | None = None,
    pool: str | None = None,
) -> dict[str, Any]:
    """Implementation for the `verify_log` MCP tool.

    Notes
    -----
    - Steps run in order against one reader; each step continues where the
      previous one stopped reading.
    - Running stops after the first failing step.
    - Failure diagnostics go to stderr; stdout belongs to the MCP transport.
    """
    parsed = _parse_steps(steps)
    lines = await load_log_lines(log_path)

    cfg = resolve_log_tool_config()
    if pool:
        cfg = replace(cfg, pool=pool)
    tool = LogTool(MemoryLogReader(lines), config=cfg, debug=debug, output=sys.stderr)

    results = run_steps(tool, parsed)
    report = VerificationReport(
        ok=len(results) == len(parsed) and all(r.ok for r in results),
        lines=len(lines),
        results=results,
    )
    return report.model_dump()
