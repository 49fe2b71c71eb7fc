"""Unified logging configuration for the motorble service.

This module provides a centralized logging configuration that ensures all log
entries (from both the application and uvicorn) include timestamps and follow
a consistent format.

Usage:
    At application startup:
    >>> from motorble.logging_config import configure_logging
    >>> configure_logging()

    When starting uvicorn:
    >>> from motorble.logging_config import get_uvicorn_log_config
    >>> uvicorn.run(app, log_config=get_uvicorn_log_config())

Configuration:
    - Log level: Set via MOTOR_BLE_LOG_LEVEL environment variable (default: INFO)
    - Access logs: Set MOTOR_BLE_VERBOSE_LOGGING=true to show uvicorn access logs
    - Format: "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"
    - Date format: "%Y-%m-%d %H:%M:%S"
"""

import logging
import logging.config
import os
from typing import Any, Dict

from .constants import LOG_LEVEL_ENV, VERBOSE_LOGGING_ENV
from .utils import get_env_bool

LOG_FORMAT = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_log_level() -> str:
    """Get the log level from environment variable with fallback."""
    return (os.getenv(LOG_LEVEL_ENV, "INFO") or "INFO").upper()


def get_logging_config() -> Dict[str, Any]:
    """Generate a unified logging configuration dictionary.

    Access logs (state polling from the UI) are only shown in verbose mode.
    """
    log_level = get_log_level()
    access_log_level = log_level if get_env_bool(VERBOSE_LOGGING_ENV, False) else "WARNING"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": LOG_FORMAT,
                "datefmt": DATE_FORMAT,
            },
            "access": {
                "format": LOG_FORMAT,
                "datefmt": DATE_FORMAT,
            },
        },
        "handlers": {
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stderr",
            },
            "access": {
                "formatter": "access",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "uvicorn": {
                "handlers": ["default"],
                "level": log_level,
                "propagate": False,
            },
            "uvicorn.error": {
                "handlers": ["default"],
                "level": log_level,
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": ["access"],
                "level": access_log_level,
                "propagate": False,
            },
            "motorble": {
                "handlers": ["default"],
                "level": log_level,
                "propagate": False,
            },
            # bleak is chatty at DEBUG; keep it at WARNING unless asked
            "bleak": {
                "handlers": ["default"],
                "level": log_level if log_level == "DEBUG" else "WARNING",
                "propagate": False,
            },
        },
        "root": {
            "level": log_level,
            "handlers": ["default"],
        },
    }


def configure_logging() -> None:
    """Configure logging for the entire application.

    This should be called once at application startup, before any other
    logging configuration or logger creation.
    """
    logging.config.dictConfig(get_logging_config())
    logging.getLogger(__name__).debug("Logging configured at level %s", get_log_level())


def get_uvicorn_log_config() -> Dict[str, Any]:
    """Get uvicorn-specific log configuration.

    Used when starting uvicorn so it shares the unified logging format.
    """
    return get_logging_config()
