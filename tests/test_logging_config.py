import logging
import unittest
from logging.handlers import RotatingFileHandler

from voice_relay.config.logging_config import configure_logging


class TestLoggingConfig(unittest.TestCase):
    def test_configure_logging(self):
        # Test that the function returns a logger
        logger = configure_logging("INFO")
        self.assertIsInstance(logger, logging.Logger)

        # Test that the logger has the correct name
        self.assertEqual(logger.name, "voice_relay")

        # Test that the logger has the correct level
        self.assertEqual(logger.level, logging.INFO)
        self.assertFalse(logger.propagate)

        # Test that the logger has the correct handlers and format
        self.assertGreaterEqual(len(logger.handlers), 1)  # At least one handler (console)
        handler = logger.handlers[0]  # Check first handler (should be console handler)
        self.assertIsInstance(handler, logging.StreamHandler)
        formatter = handler.formatter
        self.assertEqual(formatter._fmt, "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    def test_error_file_only_receives_errors(self):
        logger = configure_logging("DEBUG")
        file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
        if not file_handlers:
            self.skipTest("File logging unavailable in this environment")
        self.assertIn(logging.ERROR, [h.level for h in file_handlers])

    def test_reconfigure_replaces_handlers(self):
        first = len(configure_logging("INFO").handlers)
        second = len(configure_logging("WARNING").handlers)
        self.assertEqual(first, second)
        self.assertEqual(logging.getLogger("voice_relay").level, logging.WARNING)


if __name__ == "__main__":
    unittest.main()
