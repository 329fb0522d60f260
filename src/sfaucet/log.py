"""Logging setup."""

import sys

from loguru import logger

LOG_FORMAT = "{time:HH:mm:ss} | {level: <8} | {name}:{line} | {message}"


def setup_logging(level: str = "INFO") -> None:
    """Replace loguru's default handler with a single stderr sink."""
    logger.remove()
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)
    logger.debug(f"Logging initialized (level={level})")
