"""Logging configuration for the herfish package.

Configures the ``herfish`` logger with a single stderr handler emitting
either plain text or one JSON object per line.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import TextIO

PACKAGE_LOGGER = "herfish"
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


class LoggingSetupError(Exception):
    """Raised when the requested log level or format is invalid."""


def _extra_fields(record: logging.LogRecord) -> dict[str, object]:
    return {key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS}


class TextFormatter(logging.Formatter):
    """Plain formatter that appends ``extra`` fields as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        fields = _extra_fields(record)
        if not fields:
            return text
        pairs = " ".join(f"{key}={value}" for key, value in fields.items())
        head, sep, tail = text.partition("\n")
        return f"{head} {pairs}{sep}{tail}"


class JsonFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(_extra_fields(record))
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def level_for_verbosity(verbosity: int) -> int:
    """Map the ``-v`` count to a logging level: none is INFO, one or more is DEBUG."""
    if verbosity < 0:
        raise LoggingSetupError(f"verbosity must be >= 0, got {verbosity}")
    return logging.DEBUG if verbosity >= 1 else logging.INFO


def configure_logging(verbosity: int = 0, log_format: str = "text", stream: TextIO | None = None) -> logging.Logger:
    """Configure and return the package logger.

    Existing handlers are replaced so repeated calls do not duplicate output,
    and records do not propagate to the root logger.

    Args:
        verbosity: Number of ``-v`` flags given on the command line.
        log_format: ``"text"`` or ``"json"``.
        stream: Destination stream. Defaults to ``sys.stderr``.

    Raises:
        LoggingSetupError: For an unknown format or negative verbosity.
    """
    level = level_for_verbosity(verbosity)
    if log_format == "text":
        formatter: logging.Formatter = TextFormatter(TEXT_FORMAT)
    elif log_format == "json":
        formatter = JsonFormatter()
    else:
        raise LoggingSetupError(f"unknown log format: {log_format!r}")

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False
    return logger
