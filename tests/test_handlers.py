"""
Tests for the logging handler integration
"""

import logging
from unittest.mock import MagicMock

import pytest

from datelog import LogFile, RotationConfig, property_context
from datelog.context import get_log_properties, set_log_properties, update_log_properties
from datelog.handlers import DatedFileHandler, create_file_logger

from .helpers import T0, read

PATTERN = "logs/{APP}/{APP}_YYYYMMDD_{IP}.log"


def make_record(msg="hello", level=logging.INFO, **attrs):
    record = logging.LogRecord(
        name="test",
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )
    record.created = T0.timestamp()
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def handler(make_log_file):
    log_file = make_log_file(pattern=PATTERN)
    handler = DatedFileHandler(log_file, {"APP": "ids", "IP": "0.0.0.0"})
    handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    yield handler
    handler.close()


class TestDatedFileHandler:
    def test_static_properties(self, handler):
        handler.emit(make_record())
        handler.log_file.close()

        assert read("logs/ids/ids_20201021_0.0.0.0.log") == "INFO hello\n"

    def test_record_properties_override(self, handler):
        handler.emit(make_record("routed", prop_IP="10.0.0.1"))
        handler.log_file.close()

        assert read("logs/ids/ids_20201021_10.0.0.1.log") == "INFO routed\n"

    def test_context_properties(self, handler):
        with property_context(IP="10.0.0.7"):
            handler.emit(make_record("from context"))
            handler.emit(make_record("explicit wins", prop_IP="10.0.0.8"))
        handler.emit(make_record("outside"))
        handler.log_file.close()

        assert read("logs/ids/ids_20201021_10.0.0.7.log") == "INFO from context\n"
        assert read("logs/ids/ids_20201021_10.0.0.8.log") == "INFO explicit wins\n"
        assert read("logs/ids/ids_20201021_0.0.0.0.log") == "INFO outside\n"

    def test_errors_go_to_handle_error(self, handler):
        handler.log_file.close()
        handler.handleError = MagicMock()
        record = make_record()

        handler.emit(record)

        handler.handleError.assert_called_once_with(record)

    def test_close_can_own_log_file(self, workdir, clock):
        log_file = LogFile(RotationConfig(pattern=PATTERN), clock=clock)
        log_file.start()
        handler = DatedFileHandler(log_file, close_log_file=True)

        handler.close()

        assert not log_file.started


class TestCreateFileLogger:
    def test_logger_writes_through_handler(self, make_log_file):
        log_file = make_log_file(pattern="logs/{APP}_{IP}.log")
        logger = create_file_logger(
            "datelog.tests.app",
            log_file,
            {"APP": "web", "IP": "h1"},
            formatter=logging.Formatter("%(message)s"),
        )

        logger.info("first")
        logger.warning("second", extra={"prop_IP": "h2"})
        log_file.close()

        assert read("logs/web_h1.log") == "first\n"
        assert read("logs/web_h2.log") == "second\n"

    def test_replaces_existing_handlers(self, make_log_file):
        log_file = make_log_file()
        create_file_logger("datelog.tests.replace", log_file)
        logger = create_file_logger("datelog.tests.replace", log_file)

        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], DatedFileHandler)


class TestPropertyContext:
    def test_nested_contexts_restore(self):
        with property_context(APP="outer"):
            with property_context(IP="1.2.3.4") as merged:
                assert merged == {"APP": "outer", "IP": "1.2.3.4"}
            assert get_log_properties() == {"APP": "outer"}
        assert get_log_properties() == {}

    def test_update_does_not_mutate_previous_binding(self):
        with property_context(APP="a"):
            before = get_log_properties()
            update_log_properties(IP="x")
            assert get_log_properties() == {"APP": "a", "IP": "x"}
            assert before == {"APP": "a"}
            set_log_properties(before)
