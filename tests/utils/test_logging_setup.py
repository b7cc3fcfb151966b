"""
Tests for the screensense.utils.logging_setup module.
"""

import logging

import pytest

from screensense.utils.logging_setup import NO_TAB, TabLogFilter, init_logging


def make_record(name: str = "screensense.test", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name=name,
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="message",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    """Restore root logger handlers and level after a test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestTabLogFilter:
    """Tests for TabLogFilter."""

    def test_adds_placeholder_tab_id(self):
        record = make_record()

        assert TabLogFilter().filter(record) is True
        assert record.tab_id == NO_TAB

    def test_keeps_existing_tab_id(self):
        record = make_record(tab_id=3)

        TabLogFilter().filter(record)

        assert record.tab_id == "3"

    def test_tab_id_zero_is_kept(self):
        record = make_record(tab_id=0)

        TabLogFilter().filter(record)

        assert record.tab_id == "0"

    def test_root_logger_name_normalized(self):
        record = make_record(name="root")

        TabLogFilter().filter(record)

        assert record.name == "DefaultLogger"


class TestInitLogging:
    """Tests for init_logging."""

    def test_installs_single_filtered_handler(self, restore_root_logger):
        init_logging(level=logging.DEBUG)

        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert any(isinstance(f, TabLogFilter) for f in root.handlers[0].filters)

    def test_keeps_existing_handlers_when_requested(self, restore_root_logger):
        root = restore_root_logger
        existing = logging.NullHandler()
        root.addHandler(existing)

        init_logging(clear_existing_handlers=False)

        assert existing in root.handlers

    def test_formats_records_without_tab_id(self, restore_root_logger):
        init_logging()
        handler = restore_root_logger.handlers[0]
        record = make_record()

        for log_filter in handler.filters:
            log_filter.filter(record)
        formatted = handler.format(record)

        assert "[tab:-]" in formatted
        assert "[screensense.test]" in formatted
