"""Logging infrastructure for FlowTrack.

Provides centralized logging configuration with support for both
file and console output, log rotation, and ISO 8601 timestamps.
Modules log through ``logging.getLogger(__name__)``; configuring the
``flowtrack`` logger once here routes all of them.
"""

import logging
import logging.handlers
import os
from typing import Optional

from flowtrack.core.config import Settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
MAX_LOG_BYTES = 10485760  # 10MB
LOG_BACKUP_COUNT = 5


def setup_logger(
    name: str = "flowtrack",
    log_dir: Optional[str] = None,
    level: str = "INFO",
) -> logging.Logger:
    """Set up a logger with console and optional file handlers.

    Args:
        name: Logger name (the package root by default)
        log_dir: Directory for log files; file logging is off when None
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Validate and set log level
    level_upper = level.upper()
    if level_upper not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ValueError(
            f"Invalid log level: {level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    logger.setLevel(getattr(logging, level_upper))

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    # File handler with rotation
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        log_file = os.path.join(log_dir, f"{name}.log")
        file_handler = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUP_COUNT
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


def configure_logging(settings: Settings) -> logging.Logger:
    """Configure the package logger from application settings."""
    level = "DEBUG" if settings.debug else settings.log_level
    return setup_logger("flowtrack", log_dir=settings.log_dir, level=level)
