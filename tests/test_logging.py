"""Tests for logging configuration."""

import json
import logging
import sys

import pytest

from oss_resolver.logging_config import LOGGER_NAME, StructuredFormatter, set_log_level, setup_logging


@pytest.fixture
def restore_level():
    log = logging.getLogger(LOGGER_NAME)
    level = log.level
    yield log
    set_log_level(logging.getLevelName(level))


class TestSetupLogging:
    def test_single_handler(self):
        log = setup_logging()
        assert setup_logging() is log
        assert len(log.handlers) == 1

    def test_set_log_level(self, restore_level):
        set_log_level("debug")

        assert restore_level.level == logging.DEBUG
        assert all(h.level == logging.DEBUG for h in restore_level.handlers)

    def test_unknown_level_falls_back_to_info(self, restore_level):
        set_log_level("chatty")
        assert restore_level.level == logging.INFO


class TestStructuredFormatter:
    def test_json_record(self):
        record = logging.LogRecord(LOGGER_NAME, logging.WARNING, __file__, 1, "Failed to resolve %s", ("x",), None)

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["level"] == "WARNING"
        assert entry["logger"] == LOGGER_NAME
        assert entry["message"] == "Failed to resolve x"
        assert entry["thread"] == record.threadName
        assert entry["timestamp"].endswith("+00:00")

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(LOGGER_NAME, logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

        entry = json.loads(StructuredFormatter().format(record))

        assert "ValueError: boom" in entry["exception"]
