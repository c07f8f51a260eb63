"""Utilities for localsense."""

from .config import Config, SearchConfig, load_config
from .logging import configure_logging, get_logger, set_log_level

__all__ = [
    "Config",
    "SearchConfig",
    "load_config",
    "configure_logging",
    "get_logger",
    "set_log_level",
]
