"""Console and JSON-lines formatters for log records."""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from svckit.log.redaction import redact

LEVEL_COLORS = {
    "DEBUG": "\033[34m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[1;31m",
}
RESET = "\033[0m"

# lowercase level names written to every output
LEVEL_NAMES = {
    "DEBUG": "debug",
    "INFO": "info",
    "WARNING": "warn",
    "ERROR": "error",
    "CRITICAL": "error",
}


def record_meta(record: logging.LogRecord) -> dict[str, Any]:
    """Metadata attached by AppLogger, scrubbed again for foreign callers."""
    meta = getattr(record, "meta", None)
    if not meta:
        return {}
    return redact(dict(meta))


def _stack(formatter: logging.Formatter, record: logging.LogRecord) -> str | None:
    if record.exc_info:
        return formatter.formatException(record.exc_info)
    if record.exc_text:
        return record.exc_text
    return None


class ConsoleFormatter(logging.Formatter):
    """Human-readable single-line output for development terminals."""

    def __init__(self, colorize: bool = True):
        super().__init__()
        self.colorize = colorize

    def formatTime(self, record, datefmt=None):
        ts = datetime.fromtimestamp(record.created)
        return ts.strftime("%H:%M:%S:") + f"{int(record.msecs):03d}"

    def format(self, record: logging.LogRecord) -> str:
        level = LEVEL_NAMES.get(record.levelname, record.levelname.lower())
        if self.colorize:
            level = f"{LEVEL_COLORS.get(record.levelname, '')}{level}{RESET}"

        meta = record_meta(record)
        extra = json.dumps(meta, default=str) if meta else ""
        line = f"[{self.formatTime(record)}] {level}: {record.getMessage()} {extra}".rstrip()

        stack = _stack(self, record)
        if stack:
            line = f"{line}\n{stack}"
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for files and log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": LEVEL_NAMES.get(record.levelname, record.levelname.lower()),
            "message": record.getMessage(),
        }
        for key, value in record_meta(record).items():
            payload.setdefault(key, value)

        stack = _stack(self, record)
        if stack:
            payload["stack"] = stack
        return json.dumps(payload, default=str)
