# nba_ticker/logging_setup.py
"""
Loguru sink setup.

Library modules simply `from loguru import logger`; the process entrypoint calls
configure_logging() once to pick the level and format.
"""

from __future__ import annotations

import sys

from loguru import logger


LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} | {message}"


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default handler with a single stderr sink at the given level."""
    logger.remove()
    try:
        logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)
    except ValueError:
        logger.add(sys.stderr, level="INFO", format=LOG_FORMAT)
        logger.warning(f"Unknown LOG_LEVEL {level!r}; using INFO.")
