"""Handler wiring for console and rotated file output."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from svckit.config.settings import LogConfig, get_log_config
from svckit.log.formatters import ConsoleFormatter, JsonFormatter
from svckit.log.handlers import MB, DailyRotatingFileHandler
from svckit.log.logger import EXCEPTIONS_LOGGER_NAME, REJECTIONS_LOGGER_NAME, ROOT_LOGGER_NAME

# kind -> (max_bytes, max_age_days)
FILE_LIMITS = {
    "error": (10 * MB, 30),
    "combined": (20 * MB, 14),
    "exception": (10 * MB, 30),
    "rejection": (10 * MB, 30),
}


def _file_handler(log_dir: Path, kind: str) -> DailyRotatingFileHandler:
    max_bytes, max_age_days = FILE_LIMITS[kind]
    handler = DailyRotatingFileHandler(
        log_dir, kind, max_bytes=max_bytes, max_age_days=max_age_days, compress=True
    )
    handler.setFormatter(JsonFormatter())
    return handler


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ConsoleFormatter())
    return handler


def _reset(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.disabled = False
    logger.propagate = False


def configure_logging(config: Optional[LogConfig] = None) -> logging.Logger:
    """
    Attach handlers to the package logger.

    Console output is always enabled. In production, JSON-lines files are
    added: ``error`` (errors only) and ``combined`` (everything), plus
    ``exception`` and ``rejection`` files for uncaught exceptions and
    unhandled asyncio task errors. The log directory is created if missing.

    Args:
        config: Logging settings; defaults to the environment-backed singleton

    Returns:
        logging.Logger: The configured package logger
    """
    config = config or get_log_config()
    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    _reset(logger)
    logger.setLevel(config.level)
    logger.addHandler(_console_handler())

    if config.is_production:
        error_handler = _file_handler(log_dir, "error")
        error_handler.setLevel(logging.ERROR)
        logger.addHandler(error_handler)
        logger.addHandler(_file_handler(log_dir, "combined"))

    for name, kind in (
        (EXCEPTIONS_LOGGER_NAME, "exception"),
        (REJECTIONS_LOGGER_NAME, "rejection"),
    ):
        special = logging.getLogger(name)
        _reset(special)
        special.setLevel(logging.ERROR)
        special.addHandler(_console_handler())
        if config.is_production:
            special.addHandler(_file_handler(log_dir, kind))

    sys.excepthook = log_uncaught_exception
    return logger


def log_uncaught_exception(exc_type, exc, tb) -> None:
    """``sys.excepthook`` that routes uncaught exceptions to the exception log."""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc, tb)
        return
    logging.getLogger(EXCEPTIONS_LOGGER_NAME).error(
        "Uncaught exception",
        exc_info=(exc_type, exc, tb),
        extra={"meta": {"error": str(exc)}},
    )


def log_unhandled_rejection(loop: asyncio.AbstractEventLoop, ctx: dict[str, Any]) -> None:
    """asyncio exception handler that routes task errors to the rejection log."""
    exc = ctx.get("exception")
    meta = {"error": str(exc)} if exc is not None else {}
    task = ctx.get("task") or ctx.get("future")
    if task is not None:
        meta["task"] = repr(task)
    logging.getLogger(REJECTIONS_LOGGER_NAME).error(
        ctx.get("message", "Unhandled exception in event loop"),
        exc_info=(type(exc), exc, exc.__traceback__) if exc is not None else None,
        extra={"meta": meta},
    )


def install_rejection_handler(loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
    """Route unhandled asyncio errors on ``loop`` (default: running loop)."""
    loop = loop or asyncio.get_running_loop()
    loop.set_exception_handler(log_unhandled_rejection)
