"""Logging helpers for AEQUA.

The library never configures handlers on its own: the package logger gets a
NullHandler and modules log debug diagnostics through get_logger(). Host
applications that want to see them call setup_logging().
"""

import logging
import sys
from datetime import datetime
from typing import Optional

from . import config

ROOT_LOGGER_NAME = "aequa"


class StructuredFormatter(logging.Formatter):
    """Formatter that outputs timestamp, level, logger name and message."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).isoformat()
        return f"{timestamp} [{record.levelname}] {record.name}: {record.getMessage()}"


def setup_logging(
    level: Optional[str] = None, log_file: Optional[str] = None
) -> logging.Logger:
    """Attach stderr (and optionally file) handlers to the package logger.

    Args:
        level: Logging level name; defaults to AEQUA_LOG_LEVEL
        log_file: Optional file path to also write records to

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    level_name = (level or config.LOG_LEVEL).upper()
    logger.setLevel(getattr(logging, level_name, logging.WARNING))

    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(StructuredFormatter())
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get the logger for an AEQUA module.

    Args:
        name: Short module name, e.g. "memory"

    Returns:
        Logger named "aequa.<name>"
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


logging.getLogger(ROOT_LOGGER_NAME).addHandler(logging.NullHandler())
