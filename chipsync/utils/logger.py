"""Logging configuration.

Every logger hangs off the ``chipsync`` package logger, which owns the only
handler. Module loggers propagate to it, so the level and format are set once.
"""
import logging
import sys
from typing import Optional

from chipsync.config import config

PACKAGE_LOGGER = "chipsync"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _package_logger() -> logging.Logger:
    logger = logging.getLogger(PACKAGE_LOGGER)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger under the package logger.

    Args:
        name: Logger name, typically __name__ of the calling module. Names
            outside the package are nested under it.

    Returns:
        Configured logger instance.
    """
    root = _package_logger()
    if not name or name == PACKAGE_LOGGER:
        return root
    if not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
