"""MCP resource registry.

Resources are addressable by URI and can be fetched by the MCP client on demand.
"""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP

from fpm_log_assert.core.models import PIPE_CLOSED_SUFFIX, LogLevel
from fpm_log_assert.core.patterns import DEBUG_INFO, TIMESTAMP, WILDCARDS, pool_prefix
from fpm_log_assert.core.steps import VerificationReport, VerificationStep


def grammar() -> dict[str, Any]:
    """Return the regex fragments of the decorated-line grammar."""
    return {
        "line": '<TIMESTAMP> <LEVEL>: [<DEBUG-INFO>]? [<POOL-PREFIX>]? "<PAYLOAD>"<SUFFIX>?',
        "timestamp": TIMESTAMP,
        "levels": [lvl.value for lvl in LogLevel],
        "debug_info": DEBUG_INFO,
        "pool_prefix": pool_prefix("NAME"),
        "pipe_closed_suffix": PIPE_CLOSED_SUFFIX,
        "wildcards": dict(WILDCARDS),
    }


def register_resources(mcp: FastMCP) -> None:
    """Register resource handlers on the MCP server."""

    @mcp.resource("app://fpm-log-assert/help")
    def help_resource() -> str:
        """Return a short list of available resource URIs."""
        return (
            "Resources:\n"
            "- app://fpm-log-assert/help\n"
            "- app://fpm-log-assert/grammar\n"
            "- app://fpm-log-assert/schemas/verification-step\n"
            "- app://fpm-log-assert/schemas/verification-report\n"
            "- app://fpm-log-assert/examples/sample-log\n"
            "\nTools:\n"
            "- verify_log(log_path, steps): run checks in order against a log file.\n"
            "  read_all steps consume lines until the end of the file.\n"
        )

    @mcp.resource("app://fpm-log-assert/grammar")
    def grammar_resource() -> dict[str, Any]:
        """Return the decorated-line grammar fragments."""
        return grammar()

    @mcp.resource("app://fpm-log-assert/examples/sample-log")
    def sample_log() -> str:
        """Return a tiny daemon log for demos and tests."""
        return (
            "[19-Oct-2026 10:00:00] NOTICE: fpm is running, pid 4012\n"
            "[19-Oct-2026 10:00:00] NOTICE: ready to handle connections\n"
            '[19-Oct-2026 10:00:01] WARNING: [pool unconfined] child 4013 said into stderr: "hello"\n'
            "[19-Oct-2026 10:00:02] NOTICE: Terminating ...\n"
            "[19-Oct-2026 10:00:02] NOTICE: exiting, bye-bye!\n"
        )

    @mcp.resource("app://fpm-log-assert/schemas/verification-step")
    def step_schema() -> dict[str, Any]:
        """Return the JSON schema for one verification step."""
        return VerificationStep.model_json_schema()

    @mcp.resource("app://fpm-log-assert/schemas/verification-report")
    def report_schema() -> dict[str, Any]:
        """Return the JSON schema for verification reports."""
        return VerificationReport.model_json_schema()
