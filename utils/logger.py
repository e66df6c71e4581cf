"""
Logging Setup for the Moderation Queue

This module contains a custom formatter for console output with different
colours per log level, plus helpers to obtain named loggers and to add a
log file.
"""

import logging
from typing import Optional

APP_LOGGER_NAME = "moderation_queue"


class CustomFormatter(logging.Formatter):
    """
    A custom formatter for logging messages with different log levels.

    Attributes:
        grey (str): ANSI escape sequence for grey color.
        yellow (str): ANSI escape sequence for yellow color.
        red (str): ANSI escape sequence for red color.
        bold_red (str): ANSI escape sequence for bold red color.
        reset (str): ANSI escape sequence to reset color.
        format (str): The log message format.
        FORMATS (dict): A dictionary mapping log levels to their respective log message formats.

    Usage:
        formatter = CustomFormatter()
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
    """
    grey = "\x1b[37;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    dark_grey = "\x1b[30;1m"
    reset = "\x1b[0m"
    format = '[%(levelname)s] %(asctime)s - %(name)s - %(message)s'

    FORMATS = {
        logging.DEBUG: dark_grey + format + reset,
        logging.INFO: grey + format + reset,
        logging.WARNING: yellow + format + reset,
        logging.ERROR: red + format + reset,
        logging.CRITICAL: bold_red + format + reset
    }

    def format(self, record):
        """
        Formats the log record based on its log level.

        Args:
            record (logging.LogRecord): The log record to be formatted.

        Returns:
            str: The formatted log message.
        """
        log_fmt = self.FORMATS.get(record.levelno)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


def _app_logger() -> logging.Logger:
    """Return the application logger, attaching the console handler once."""
    log = logging.getLogger(APP_LOGGER_NAME)
    if not any(getattr(h, "_queue_console", False) for h in log.handlers):
        ch = logging.StreamHandler()
        ch.setLevel(logging.DEBUG)
        ch.setFormatter(CustomFormatter())
        ch._queue_console = True
        log.addHandler(ch)
        log.setLevel(logging.INFO)
    return log


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger that writes through the application's console handler.

    Args:
        name: Usually the caller's __name__.

    Returns:
        logging.Logger: A child of the application logger.
    """
    _app_logger()
    return logging.getLogger(f"{APP_LOGGER_NAME}.{name}")


def setup_file_logging(log_file: Optional[str], level: int = logging.INFO) -> logging.Logger:
    """
    Set the application log level and optionally mirror output to a file.

    Args:
        log_file: Path of the log file, or None for console only. Any file
            added by an earlier call is closed and replaced.
        level: Logging level for the application logger.

    Returns:
        logging.Logger: The configured application logger.
    """
    log = _app_logger()
    log.setLevel(level)

    # At most one log file; a later call replaces the earlier one
    for handler in [h for h in log.handlers if getattr(h, "_queue_file", False)]:
        log.removeHandler(handler)
        handler.close()

    if log_file:
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh._queue_file = True
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter('[%(levelname)s] %(asctime)s - %(name)s - %(message)s'))
        log.addHandler(fh)

    return log
