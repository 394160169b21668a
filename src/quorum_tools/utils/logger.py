"""
Logging configuration for quorum-tools.

This module provides centralized logging configuration for the entire application.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

DEFAULT_NAME = "quorum-tools"

# qctl verbosity levels: 0=silent, 1=error, 2=warn, 3=info, 4=debug, 5=detail
VERBOSITY_LEVELS = {
    0: logging.CRITICAL + 10,
    1: logging.ERROR,
    2: logging.WARNING,
    3: logging.INFO,
    4: logging.DEBUG,
    5: logging.NOTSET + 1,
}


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name. If None, uses the default service name.

    Returns:
        Configured logger instance.
    """
    if name is None:
        name = DEFAULT_NAME

    logger_instance = logging.getLogger(name)

    # Only configure if not already configured
    if not logger_instance.handlers:
        configure_logger(logger_instance)

    return logger_instance


def configure_logger(logger_instance: logging.Logger) -> None:
    """
    Configure a logger instance with console and optional file handlers.

    Args:
        logger_instance: Logger instance to configure.
    """
    logger_instance.setLevel(logging.INFO)
    logger_instance.propagate = False

    formatter = logging.Formatter(
        '[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s'
    )

    log_file = os.environ.get("LOG_FILE")
    if log_file:
        try:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_path)
            file_handler.setFormatter(formatter)
            logger_instance.addHandler(file_handler)
        except OSError as e:
            # If file logging fails, just use console
            print(f"Warning: Could not set up file logging: {e}", file=sys.stderr)

    # stdout is reserved for exported network information
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger_instance.addHandler(console_handler)


def set_verbosity(verbosity: int, logger_instance: Optional[logging.Logger] = None) -> int:
    """
    Map a qctl verbosity (0-5) onto a logging level and apply it.

    Out-of-range values are clamped. Returns the logging level that was set.
    """
    verbosity = max(0, min(verbosity, max(VERBOSITY_LEVELS)))
    level = VERBOSITY_LEVELS[verbosity]
    (logger_instance or logger).setLevel(level)
    return level


logger = get_logger(DEFAULT_NAME)


__all__ = ["get_logger", "logger", "configure_logger", "set_verbosity"]
