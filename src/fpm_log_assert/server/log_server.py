"""MCP server entrypoint (stdio transport).

This module wires together:
- Tools: callable actions (e.g., verify a daemon log file)
- Resources: addressable data blobs (e.g., the decorated-line grammar)

Run locally (stdio):
    python -m fpm_log_assert.server.log_server
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from typing import Any

from mcp.server.fastmcp import FastMCP

from fpm_log_assert.resources.registry import register_resources
from fpm_log_assert.tools.verify import verify_log_impl

LOGGER = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Configure a reasonable default logging setup.

    The MCP client typically captures stderr; keeping logs concise makes them easier to consume.
    """
    level_name = os.getenv("LOG_ASSERT_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


mcp = FastMCP("fpm-log-assert", json_response=True)

register_resources(mcp)


@mcp.tool()
async def verify_log(
    log_path: str,
    steps: list[dict[str, Any]],
    debug: bool | None = None,
    pool: str | None = None,
) -> dict[str, Any]:
    """Check that a daemon log file contains the expected lines, in order.

    Parameters
    ----------
    log_path:
        Path to a local log file. Supports plain text and .gz.
    steps:
        Checks to run in order. Each step has a "kind":
          - entry: {"level", "message", "pool"?, "ignore_for"?, "check_all_logs"?}
            (%s and %d are wildcards in message)
          - read_all: drain matching entries, e.g. {"level": "DEBUG", "message": "%s"}
          - pattern: {"pattern"} raw regular expression
          - wrapped: {"message", "limit", "level"?, "pipe_closed"?, "terminated"?,
            "decorated"?, "stderr"?, "repeat"?}
          - truncated: {"message", "limit", "line"?}
          - starting / terminator / reloading_logs
          - reloading: {"socket_count", "expect_initial_progress"?, "expect_reloading"?}
    debug:
        Entries carry the "pid N, func(), line N: " block of a debug build.
    pool:
        Pool name used in worker output prefixes (default: unconfined).

    Returns
    -------
    dict:
        {"ok": bool, "lines": int, "results": list[dict]}
    """
    return await verify_log_impl(log_path=log_path, steps=steps, debug=debug, pool=pool)


def main(argv: Sequence[str] | None = None) -> None:
    """Start the MCP server over stdio."""
    _configure_logging()
    LOGGER.debug("Starting MCP server (transport=stdio)")
    _ = argv or sys.argv[1:]
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
