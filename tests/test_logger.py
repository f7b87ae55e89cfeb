"""Tests for the context-aware logger adapter and formatters."""

import json
import logging
import re
import sys

import pytest

from svckit import context
from svckit.context import RequestContext
from svckit.log.formatters import ConsoleFormatter, JsonFormatter
from svckit.log.logger import EXCEPTIONS_LOGGER_NAME, AppLogger, LoggerFactory
from svckit.log.redaction import REDACTED


class FailingHandler(logging.Handler):
    def __init__(self):
        super().__init__()
        self.close_attempted = False

    def emit(self, record):
        pass

    def flush(self):
        raise OSError("disk gone")

    def close(self):
        self.close_attempted = True
        raise OSError("disk gone")


class TestAppLogger:
    def test_levels(self, list_logger):
        logger, handler = list_logger
        app = AppLogger(logger)

        app.debug("d")
        app.info("i")
        app.warn("w")
        app.warning("w2")
        app.error("e")

        assert [r.levelno for r in handler.records] == [
            logging.DEBUG, logging.INFO, logging.WARNING, logging.WARNING, logging.ERROR,
        ]
        assert handler.records[1].getMessage() == "i"

    def test_base_context_merged(self, list_logger):
        logger, handler = list_logger
        app = AppLogger(logger, {"service": "billing", "method": "charge"})

        app.info("charged", {"amount": 10})

        assert handler.records[0].meta == {
            "service": "billing",
            "method": "charge",
            "amount": 10,
        }

    def test_call_meta_overrides_base_context(self, list_logger):
        logger, handler = list_logger
        app = AppLogger(logger, {"method": "default"})

        app.info("x", {"method": "override"})

        assert handler.records[0].meta["method"] == "override"

    def test_request_id_injected(self, list_logger):
        logger, handler = list_logger
        app = AppLogger(logger, {"service": "api"})

        with context.scope(RequestContext(request_id="req-42")):
            app.info("inside")
        app.info("outside")

        assert handler.records[0].meta["request_id"] == "req-42"
        assert "request_id" not in handler.records[1].meta

    def test_sensitive_fields_redacted(self, list_logger):
        logger, handler = list_logger
        app = AppLogger(logger, {"service": "auth"})

        app.info("login", {
            "user_id": 1,
            "password": "hunter2",
            "headers": {"Authorization": "Bearer x", "accept": "json"},
        })

        meta = handler.records[0].meta
        assert meta["password"] == REDACTED
        assert meta["headers"] == {"Authorization": REDACTED, "accept": "json"}
        assert meta["user_id"] == 1

    def test_exception_in_meta_attached(self, list_logger):
        logger, handler = list_logger
        app = AppLogger(logger)

        try:
            raise ValueError("bad input")
        except ValueError as e:
            app.error("failed", {"error": e})

        record = handler.records[0]
        assert record.meta["error"] == "bad input"
        assert record.exc_info[0] is ValueError

    def test_disabled_level_skipped(self, list_logger):
        logger, handler = list_logger
        logger.setLevel(logging.INFO)

        AppLogger(logger).debug("quiet")

        assert handler.records == []

    def test_factory_binds_context(self, list_logger):
        logger, handler = list_logger

        app = LoggerFactory(logger).create_logger({"service": "db"})
        app.info("hello")

        assert isinstance(app, AppLogger)
        assert handler.records[0].meta == {"service": "db"}

    @pytest.mark.asyncio
    async def test_flush(self, list_logger):
        logger, _ = list_logger

        assert await AppLogger(logger).flush() is None

    @pytest.mark.asyncio
    async def test_close_closes_all_handlers(self, list_logger):
        logger, handler = list_logger
        failing = FailingHandler()
        logger.handlers.insert(0, failing)
        app = AppLogger(logger)

        await app.close()

        assert failing.close_attempted
        assert logger.handlers == []
        assert logger.disabled

        app.info("after close")
        assert handler.records == []


class TestFormatters:
    def _record(self, logger, msg="hello", meta=None, exc_info=None):
        return logger.makeRecord(
            logger.name, logging.INFO, __file__, 1, msg, (), exc_info,
            extra={"meta": meta} if meta is not None else None,
        )

    def test_console_format(self, list_logger):
        logger, _ = list_logger
        record = self._record(logger, meta={"a": 1})

        line = ConsoleFormatter(colorize=False).format(record)

        assert re.fullmatch(r'\[\d{2}:\d{2}:\d{2}:\d{3}\] info: hello \{"a": 1\}', line)

    def test_console_colorized_level(self, list_logger):
        logger, _ = list_logger

        line = ConsoleFormatter().format(self._record(logger))

        assert "\033[32minfo\033[0m" in line

    def test_console_without_meta(self, list_logger):
        logger, _ = list_logger

        line = ConsoleFormatter(colorize=False).format(self._record(logger))

        assert line.endswith("info: hello")

    def test_console_stack_on_next_line(self, list_logger):
        logger, _ = list_logger
        try:
            raise RuntimeError("kaput")
        except RuntimeError:
            record = self._record(logger, exc_info=sys.exc_info())

        lines = ConsoleFormatter(colorize=False).format(record).splitlines()

        assert lines[0].endswith("info: hello")
        assert lines[1].startswith("Traceback")

    def test_json_format(self, list_logger):
        logger, _ = list_logger
        record = self._record(logger, meta={"service": "db", "token": "t"})

        payload = json.loads(JsonFormatter().format(record))

        assert payload["level"] == "info"
        assert payload["message"] == "hello"
        assert payload["service"] == "db"
        assert payload["token"] == REDACTED
        assert payload["timestamp"].endswith("Z")
        assert "stack" not in payload

    def test_json_includes_stack(self, list_logger):
        logger, _ = list_logger
        try:
            raise RuntimeError("kaput")
        except RuntimeError:
            record = self._record(logger, exc_info=sys.exc_info())

        payload = json.loads(JsonFormatter().format(record))

        assert "RuntimeError: kaput" in payload["stack"]

    def test_json_meta_cannot_clobber_core_fields(self, list_logger):
        logger, _ = list_logger
        record = self._record(logger, meta={"message": "spoofed", "level": "debug"})

        payload = json.loads(JsonFormatter().format(record))

        assert payload["message"] == "hello"
        assert payload["level"] == "info"


@pytest.mark.asyncio
async def test_close_tolerates_failing_exception_handler(list_logger):
    logger, _ = list_logger
    exceptions_logger = logging.getLogger(EXCEPTIONS_LOGGER_NAME)
    failing = FailingHandler()
    exceptions_logger.addHandler(failing)
    try:
        await AppLogger(logger).close()

        assert failing.close_attempted
        assert failing not in exceptions_logger.handlers
        assert exceptions_logger.disabled
    finally:
        exceptions_logger.removeHandler(failing)
