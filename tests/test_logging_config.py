# tests/test_logging_config.py

"""Tests for the per-run logging configuration."""

import logging
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from storefront.config.logging_config import LOGGER_NAME, setup_logging
from storefront.config.settings import Settings


class TestLoggingConfig(unittest.TestCase):
    """Verify logging setup behaviour."""

    def setUp(self) -> None:
        """Point logs at a temp dir and reset the storefront logger."""
        self.tmp_dir = tempfile.mkdtemp()
        self.logs_dir = Path(self.tmp_dir) / "logs"
        self.patcher = patch.object(Settings, "LOGS_DIR", self.logs_dir)
        self.patcher.start()
        self._clear_handlers()

    def tearDown(self) -> None:
        """Close handlers opened by the test."""
        self._clear_handlers()
        self.patcher.stop()

    @staticmethod
    def _clear_handlers() -> None:
        root_logger = logging.getLogger(LOGGER_NAME)
        for handler in list(root_logger.handlers):
            handler.close()
        root_logger.handlers.clear()

    def test_setup_creates_log_file(self) -> None:
        """setup_logging returns a path that exists on disk."""
        log_path = setup_logging()
        self.assertTrue(log_path.exists())

    def test_log_file_naming_convention(self) -> None:
        """Log file name matches run_YYYYMMDD_HHMMSS.log format."""
        log_path = setup_logging()
        pattern = r"^run_\d{8}_\d{6}\.log$"
        self.assertRegex(log_path.name, pattern)

    def test_root_logger_has_handlers(self) -> None:
        """After setup, the storefront logger has at least 2 handlers."""
        setup_logging()
        root_logger = logging.getLogger(LOGGER_NAME)
        self.assertGreaterEqual(len(root_logger.handlers), 2)

    def test_file_handler_level_debug(self) -> None:
        """File handler should be set to DEBUG level."""
        setup_logging()
        root_logger = logging.getLogger(LOGGER_NAME)
        file_handlers = [
            h
            for h in root_logger.handlers
            if isinstance(h, logging.FileHandler)
        ]
        self.assertTrue(len(file_handlers) >= 1)
        self.assertEqual(file_handlers[0].level, logging.DEBUG)

    def test_console_handler_level_warning(self) -> None:
        """Console handler should be set to WARNING level."""
        setup_logging()
        root_logger = logging.getLogger(LOGGER_NAME)
        stream_handlers: list[logging.Handler] = [
            h
            for h in root_logger.handlers
            if isinstance(h, logging.StreamHandler)
            and not isinstance(h, logging.FileHandler)
        ]
        self.assertTrue(len(stream_handlers) >= 1)
        self.assertEqual(stream_handlers[0].level, logging.WARNING)

    def test_repeated_calls_no_duplicate_handlers(self) -> None:
        """Calling setup_logging twice does not duplicate handlers."""
        setup_logging()
        root_logger = logging.getLogger(LOGGER_NAME)
        count_before = len(root_logger.handlers)
        setup_logging()
        self.assertEqual(count_before, len(root_logger.handlers))

    def test_root_logger_level_is_debug(self) -> None:
        """The root project logger is set to DEBUG."""
        setup_logging()
        root_logger = logging.getLogger(LOGGER_NAME)
        self.assertEqual(root_logger.level, logging.DEBUG)

    def test_log_file_inside_logs_dir(self) -> None:
        """Log file is created inside the configured logs directory."""
        log_path = setup_logging()
        self.assertEqual(log_path.parent, self.logs_dir)

    def test_explicit_logs_dir(self) -> None:
        """An explicit directory overrides Settings.LOGS_DIR."""
        other = Path(self.tmp_dir) / "other"
        log_path = setup_logging(other)
        self.assertEqual(log_path.parent, other)
        self.assertTrue(log_path.exists())

    def test_child_logger_reaches_file(self) -> None:
        """Module loggers such as storefront.paginator write to the run log."""
        log_path = setup_logging()
        logging.getLogger("storefront.paginator").info("page landed")
        for handler in logging.getLogger(LOGGER_NAME).handlers:
            handler.flush()
        self.assertIn("page landed", log_path.read_text(encoding="utf-8"))


if __name__ == "__main__":
    unittest.main()
