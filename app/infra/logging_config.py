"""
Logging configuration for the whole application.

Instantiate LoggingConfig once at startup (create_app); modules then use
get_logger(name) or logging.getLogger(__name__) under the "app" namespace.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from app.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
ROOT_LOGGER_NAME = "app"


class LoggingConfig:
    """Install a single stdout handler on the "app" logger."""

    _configured = False

    def __init__(self, level: Optional[str] = None) -> None:
        level_name = (level or get_settings().log_level).upper()
        root = logging.getLogger(ROOT_LOGGER_NAME)
        root.setLevel(getattr(logging, level_name, logging.INFO))
        if LoggingConfig._configured:
            return
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        LoggingConfig._configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger nested under the application namespace."""
    if name.startswith(f"{ROOT_LOGGER_NAME}.") or name == ROOT_LOGGER_NAME:
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
