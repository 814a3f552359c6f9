"""Centralized logging configuration for the DomainIQ application.

Sets up standard Python logging with a console handler and, when a log file
is configured, a size-rotated file handler.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional, Union

DEFAULT_LOG_LEVEL = logging.WARNING
DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_LOG_FILE = None
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3


def resolve_level(level: Union[int, str]) -> int:
    """Accepts logging.INFO or 'info'; unknown names fall back to WARNING."""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else DEFAULT_LOG_LEVEL


def setup_logging(
    log_level: Union[int, str] = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT,
    log_file: Optional[str] = DEFAULT_LOG_FILE
) -> None:
    """Configures the root logger for the application.

    Args:
        log_level: The minimum logging level (e.g., logging.DEBUG or 'debug').
        log_format: The format string for log messages.
        log_file: Optional path to a file for logging output.
    """
    level = resolve_level(log_level)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(log_format)

    # stderr keeps stdout clean for --json output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = RotatingFileHandler(
                log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUP_COUNT, encoding='utf-8'
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            logging.info(f"Logging to file: {log_file}")
        except OSError as e:
            logging.error(f"Failed to set up file logging to {log_file}: {e}", exc_info=True)

    logging.debug(f"Logging configured. Level={logging.getLevelName(level)}")
