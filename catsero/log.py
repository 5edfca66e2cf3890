"""Logging setup (loguru).

Library modules only emit through `loguru.logger`; sinks are configured by
the application entry point via `configure_logging`.
"""

from __future__ import annotations
import sys

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level>"
)


def configure_logging(level: str = "INFO") -> int:
    """Replace loguru's default sink with one stderr sink at `level`.

    Returns:
        The loguru sink id, for later removal.
    """
    logger.remove()
    return logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)
