"""Tests for logging setup."""

import logging
import os
import tempfile

from autoapply.utils.logging_config import setup_logging


class TestSetupLogging:
    def test_file_and_console_handlers(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            logger = setup_logging(tmpdir)
            try:
                assert logger.name == "autoapply"
                assert len(logger.handlers) == 2
                logging.getLogger("autoapply.apply").info("hello")
                assert os.path.exists(os.path.join(tmpdir, "autoapply.log"))
            finally:
                for handler in list(logger.handlers):
                    logger.removeHandler(handler)
                    handler.close()

    def test_reinit_does_not_duplicate_handlers(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            setup_logging(tmpdir)
            logger = setup_logging(tmpdir, level=logging.DEBUG)
            try:
                assert len(logger.handlers) == 2
                assert logger.level == logging.DEBUG
            finally:
                for handler in list(logger.handlers):
                    logger.removeHandler(handler)
                    handler.close()
