import logging
import unittest

from tracking_pixel.server.config import ConfigError
from tracking_pixel.server.logs import EVENTS_LOGGER, TRACE, configure_logging


def keep_events_logger(test: unittest.TestCase) -> logging.Logger:
    logger = logging.getLogger(EVENTS_LOGGER)
    saved = (logger.level, list(logger.handlers), logger.propagate)

    def restore():
        logger.setLevel(saved[0])
        logger.handlers[:] = saved[1]
        logger.propagate = saved[2]

    test.addCleanup(restore)
    return logger


class TestConfigureLogging(unittest.TestCase):
    def test_fallback_keeps_trace_events(self):
        logger = keep_events_logger(self)
        logger.handlers[:] = []
        configure_logging(None)
        self.assertTrue(logger.isEnabledFor(TRACE))
        self.assertEqual(len(logger.handlers), 1)
        self.assertFalse(logger.propagate)

    def test_fallback_does_not_stack_handlers(self):
        logger = keep_events_logger(self)
        logger.handlers[:] = []
        configure_logging(None)
        configure_logging(None)
        self.assertEqual(len(logger.handlers), 1)

    def test_invalid_dict_config(self):
        with self.assertRaises(ConfigError):
            configure_logging({"version": 99})


if __name__ == "__main__":
    unittest.main()
