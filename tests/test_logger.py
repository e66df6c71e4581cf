"""
Tests for the Logging Setup

Tests cover the application logger hierarchy and the optional log file.
"""

import logging

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from utils.logger import APP_LOGGER_NAME, get_logger, setup_file_logging


def file_handlers():
    """FileHandlers currently attached to the application logger."""
    return [h for h in logging.getLogger(APP_LOGGER_NAME).handlers
            if isinstance(h, logging.FileHandler)]


@pytest.fixture
def app_logger():
    """The application logger, restored to console-only INFO afterwards."""
    log = logging.getLogger(APP_LOGGER_NAME)
    yield log
    setup_file_logging(None, logging.INFO)


class TestGetLogger:
    """Tests for named loggers."""

    def test_child_of_application_logger(self):
        """Module loggers propagate to the application logger."""
        assert get_logger("data.store").name == f"{APP_LOGGER_NAME}.data.store"

    def test_console_handler_attached_once(self, app_logger):
        """Repeated lookups do not stack console handlers."""
        get_logger("a")
        get_logger("b")

        consoles = [h for h in app_logger.handlers if getattr(h, "_queue_console", False)]
        assert len(consoles) == 1


class TestSetupFileLogging:
    """Tests for mirroring log output to a file."""

    def test_writes_to_file(self, app_logger, tmp_path):
        """Messages at or above the level reach the log file."""
        log_file = tmp_path / "queue.log"
        setup_file_logging(str(log_file), logging.DEBUG)

        get_logger("test").debug("written to file")
        for handler in file_handlers():
            handler.flush()

        assert "written to file" in log_file.read_text(encoding="utf-8")
        assert app_logger.level == logging.DEBUG

    def test_repeated_calls_keep_one_file_handler(self, app_logger, tmp_path):
        """A second call replaces the earlier log file instead of adding another."""
        first = tmp_path / "first.log"
        second = tmp_path / "second.log"

        setup_file_logging(str(first))
        setup_file_logging(str(second))
        get_logger("test").info("only in second")
        for handler in file_handlers():
            handler.flush()

        [handler] = file_handlers()
        assert handler.baseFilename == str(second)
        assert "only in second" not in first.read_text(encoding="utf-8")
        assert "only in second" in second.read_text(encoding="utf-8")

    def test_none_removes_file_handler(self, app_logger, tmp_path):
        """Passing no file drops a previously configured log file."""
        setup_file_logging(str(tmp_path / "queue.log"))

        setup_file_logging(None)

        assert file_handlers() == []
