"""
Logging utilities.

Every module logs through a child of the ``localsense`` logger, so a single
handler installed by ``configure_logging`` covers the whole package.
"""

import logging
import sys
from typing import Optional, TextIO

PACKAGE_LOGGER = "localsense"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_handler: Optional[logging.Handler] = None


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level

    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger inside the package namespace.

    Args:
        name: Logger name (usually __name__); names outside the package are
            nested under it

    Returns:
        Logger that propagates to the package logger
    """
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def configure_logging(level: int | str = "INFO", stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Install the package log handler and set its level.

    Calling this again replaces the handler instead of adding another one.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Destination stream (default: sys.stderr)

    Returns:
        The package logger
    """
    global _handler

    logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        logger.removeHandler(_handler)

    _handler = logging.StreamHandler(stream or sys.stderr)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(_handler)
    logger.setLevel(_resolve_level(level))

    return logger


def set_log_level(level: int | str) -> None:
    """
    Set the log level for every localsense logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Raises:
        ValueError: If the level name is unknown
    """
    logging.getLogger(PACKAGE_LOGGER).setLevel(_resolve_level(level))
