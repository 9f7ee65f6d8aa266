"""
Logging utilities for the MCP tool server, the authorization app and scripts.

Logs go to stderr: stdout belongs to the MCP stdio JSON-RPC stream.
"""

import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stderr,
    )
    # httpx logs every request line at INFO, including Web API query strings.
    logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = ["configure_logging"]
