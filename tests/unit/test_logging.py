# tests/unit/test_logging.py
"""Unit tests for structured logging setup."""

import json
import logging
import sys

import pytest

from unfurl.utils.logging import get_logger, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level

    yield root

    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.unit
class TestSetupLogging:
    """Tests for handler wiring."""

    def test_console_logs_go_to_stderr(self, restore_root_logger):
        setup_logging(log_level="debug", log_format="console")

        (handler,) = restore_root_logger.handlers
        assert handler.stream is sys.stderr
        assert restore_root_logger.level == logging.DEBUG

    def test_file_log_is_json_lines(self, tmp_path, restore_root_logger):
        setup_logging(log_level="INFO", log_format="console", log_dir=tmp_path / "logs")

        get_logger("unfurl.test").info("feed_synced", feed_id=7)
        for handler in restore_root_logger.handlers:
            handler.flush()

        lines = (tmp_path / "logs" / "unfurl.log").read_text(encoding="utf-8").splitlines()
        record = json.loads(lines[-1])
        assert record["event"] == "feed_synced"
        assert record["feed_id"] == 7
        assert record["level"] == "info"
