"""Logging configuration for figma-node-export."""

import sys

from loguru import logger


def configure_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Configure loguru with appropriate level.

    Everything goes to stderr: the MCP server owns stdout for its transport,
    so it runs with ``quiet=True`` and only reports warnings.
    """
    logger.remove()
    if verbose:
        level = "DEBUG"
    elif quiet:
        level = "WARNING"
    else:
        level = "INFO"
    logger.add(sys.stderr, level=level, format="{level.icon} {message}")
