"""Structured logging with request context and sensitive-field redaction."""

from svckit.log.logger import AppLogger, LoggerFactory, create_logger, get_logger_factory
from svckit.log.redaction import REDACTED, SENSITIVE_KEYS, redact
from svckit.log.setup import configure_logging, install_rejection_handler

__all__ = [
    "AppLogger",
    "LoggerFactory",
    "REDACTED",
    "SENSITIVE_KEYS",
    "configure_logging",
    "create_logger",
    "get_logger_factory",
    "install_rejection_handler",
    "redact",
]
