"""Context-aware logger adapter over the standard library logger."""

import asyncio
import logging
from collections.abc import Mapping
from contextlib import suppress
from typing import Any, Optional

from svckit import context
from svckit.log.redaction import redact

ROOT_LOGGER_NAME = "svckit"
EXCEPTIONS_LOGGER_NAME = f"{ROOT_LOGGER_NAME}.exceptions"
REJECTIONS_LOGGER_NAME = f"{ROOT_LOGGER_NAME}.rejections"

# Grace period after closing handlers so OS-level file buffers settle
CLOSE_GRACE_SECONDS = 0.025


class AppLogger:
    """
    Leveled logger bound to a base context.

    Every call merges the ambient request id, the base context and the
    call-site metadata (later keys win), masks sensitive keys and attaches
    the result to the record as ``record.meta``.
    """

    def __init__(self, logger: logging.Logger, base_context: Optional[Mapping[str, Any]] = None):
        self._logger = logger
        self.base_context = dict(base_context or {})

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def _with_context(self, meta: Optional[Mapping[str, Any]]) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        request_id = context.get_request_id()
        if request_id:
            merged["request_id"] = request_id
        merged.update(self.base_context)
        if meta:
            merged.update(meta)
        return merged

    def _log(self, level: int, message: str, meta: Optional[Mapping[str, Any]]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        merged = self._with_context(meta)
        exc_info = None
        error = merged.get("error")
        if isinstance(error, BaseException):
            exc_info = (type(error), error, error.__traceback__)
            merged["error"] = str(error)
        self._logger.log(
            level,
            message,
            extra={"meta": redact(merged)},
            exc_info=exc_info,
            stacklevel=3,
        )

    def debug(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None:
        self._log(logging.DEBUG, message, meta)

    def info(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None:
        self._log(logging.INFO, message, meta)

    def warn(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None:
        self._log(logging.WARNING, message, meta)

    warning = warn

    def error(self, message: str, meta: Optional[Mapping[str, Any]] = None) -> None:
        self._log(logging.ERROR, message, meta)

    async def flush(self) -> None:
        """Yield once so pending writes scheduled on the loop can run."""
        await asyncio.sleep(0)

    async def close(self) -> None:
        """
        Flush, stop accepting records and close every handler, including
        those of the uncaught-exception and unhandled-rejection loggers.

        A handler that fails to flush or close does not stop the others from
        being closed.
        """
        await self.flush()

        for logger in (
            self._logger,
            logging.getLogger(EXCEPTIONS_LOGGER_NAME),
            logging.getLogger(REJECTIONS_LOGGER_NAME),
        ):
            logger.disabled = True
            for handler in list(logger.handlers):
                with suppress(Exception):
                    handler.flush()
                with suppress(Exception):
                    handler.close()
                logger.removeHandler(handler)

        await asyncio.sleep(CLOSE_GRACE_SECONDS)


class LoggerFactory:
    """Creates AppLogger instances sharing one underlying logger."""

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    def create_logger(self, base_context: Optional[Mapping[str, Any]] = None) -> AppLogger:
        return AppLogger(self._logger, base_context)


_factory: Optional[LoggerFactory] = None


def get_logger_factory() -> LoggerFactory:
    """Get or create the factory bound to the package logger."""
    global _factory
    if _factory is None:
        _factory = LoggerFactory(logging.getLogger(ROOT_LOGGER_NAME))
    return _factory


def create_logger(base_context: Optional[Mapping[str, Any]] = None) -> AppLogger:
    """Create a logger from the default factory."""
    return get_logger_factory().create_logger(base_context)
