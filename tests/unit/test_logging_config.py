"""
Unit tests for logging_config module.
"""

import json
import logging
import logging.handlers

import pytest

from hutwatch.providers.montblanc import MontBlancProvider
from hutwatch.utils.logging_config import ColoredFormatter, JSONFormatter, get_logger, setup_logging


def make_record(msg="Test message", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="hutwatch.test",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    """Clean up logging handlers after each test."""
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()
    root.setLevel(level)


class TestJSONFormatter:
    """Tests for JSONFormatter class."""

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "hutwatch.test"
        assert data["message"] == "Test message"
        assert data["module"] == "test"
        assert data["line"] == 10
        assert "timestamp" in data

    def test_extra_fields_are_top_level(self):
        record = make_record(target_id=42, attempt=2, provider_type="hut-reservation")

        data = json.loads(JSONFormatter().format(record))

        assert data["target_id"] == 42
        assert data["attempt"] == 2
        assert data["provider_type"] == "hut-reservation"
        assert "msg" not in data
        assert "args" not in data

    def test_exception_is_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            import sys

            record = logging.LogRecord("t", logging.ERROR, "t.py", 1, "failed", (), sys.exc_info())

        data = json.loads(JSONFormatter().format(record))

        assert "ValueError: boom" in data["exception"]

    def test_non_serializable_extra_uses_str(self):
        data = json.loads(JSONFormatter().format(make_record(path=object())))

        assert data["path"].startswith("<object object")


class TestColoredFormatter:
    def test_restores_levelname(self):
        record = make_record(level=logging.WARNING)

        output = ColoredFormatter("%(levelname)s %(message)s").format(record)

        assert "\033[33m" in output
        assert record.levelname == "WARNING"

    def test_appends_scrape_context(self):
        record = make_record(target_id=42, attempt=2, unrelated="x")

        output = ColoredFormatter("%(message)s").format(record)

        assert output.endswith("Test message [target_id=42 attempt=2]")
        assert "unrelated" not in output

    def test_no_suffix_without_context(self):
        assert ColoredFormatter("%(message)s").format(make_record()) == "Test message"


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_console_handler(self, restore_root_logger):
        setup_logging(level="DEBUG")

        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1
        assert isinstance(restore_root_logger.handlers[0].formatter, ColoredFormatter)
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING

    def test_invalid_level_falls_back_to_info(self, restore_root_logger):
        setup_logging(level="LOUD")

        assert restore_root_logger.level == logging.INFO

    def test_json_console(self, restore_root_logger):
        setup_logging(json_format=True)

        assert isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)

    def test_file_handler_writes_json(self, restore_root_logger, temp_logs_dir):
        log_file = temp_logs_dir / "nested" / "hutwatch.log"

        setup_logging(level="INFO", log_file=str(log_file), console_output=False)
        logging.getLogger("hutwatch.test").info("Scraped", extra={"target_id": 7})
        for handler in restore_root_logger.handlers:
            handler.flush()

        handlers = restore_root_logger.handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.handlers.RotatingFileHandler)

        lines = log_file.read_text(encoding="utf-8").strip().splitlines()
        data = json.loads(lines[-1])
        assert data["message"] == "Scraped"
        assert data["target_id"] == 7


class TestGetLogger:
    def test_adapter_carries_extra_fields(self):
        adapter = get_logger("hutwatch.providers", {"provider": "montblanc"})

        assert isinstance(adapter, logging.LoggerAdapter)
        assert adapter.logger.name == "hutwatch.providers"
        assert adapter.extra == {"provider": "montblanc"}

    def test_defaults_to_empty_extra(self):
        assert get_logger("x").extra == {}

    def test_provider_loggers_carry_provider_type(self):
        provider = MontBlancProvider()

        assert provider.logger.extra == {"provider_type": "montblanc"}
        assert provider.logger.logger.name == "hutwatch.providers.base.montblanc"
