"""Shared fixtures: configs, mock loggers and in-memory log capture."""

import logging
from unittest.mock import MagicMock

import pytest

from svckit.config.settings import DatabaseConfig
from svckit.log import AppLogger
from svckit.log.logger import EXCEPTIONS_LOGGER_NAME, REJECTIONS_LOGGER_NAME, ROOT_LOGGER_NAME


class ListHandler(logging.Handler):
    """Keeps emitted records in memory."""

    def __init__(self):
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


@pytest.fixture(autouse=True)
def reenable_package_loggers():
    """AppLogger.close() disables the package loggers; undo that between tests."""
    yield
    for name in (ROOT_LOGGER_NAME, EXCEPTIONS_LOGGER_NAME, REJECTIONS_LOGGER_NAME):
        logging.getLogger(name).disabled = False


@pytest.fixture
def list_logger(request):
    """A stdlib logger isolated per test, with a capturing handler."""
    logger = logging.getLogger(f"svckit.tests.{request.node.name}")
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    handler = ListHandler()
    logger.addHandler(handler)

    yield logger, handler

    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.disabled = False


@pytest.fixture
def db_config() -> DatabaseConfig:
    """Minimal valid database config independent of the environment."""
    return DatabaseConfig(
        _env_file=None,
        pg_host="localhost",
        pg_port=5432,
        pg_database="app",
        pg_user="app",
    )


@pytest.fixture
def mock_logger() -> MagicMock:
    return MagicMock(spec=AppLogger)
