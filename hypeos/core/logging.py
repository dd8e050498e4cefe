"""Loguru sink setup for the CLI and scripts."""

from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = "{time:HH:mm:ss} | {level: <8} | {name}:{line} - {message}"


def configure_logging(level: str = "INFO") -> None:
    """Replace the default loguru sink with a stderr sink at `level`."""
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)
