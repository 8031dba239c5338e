# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.
"""
Logging setup with JSON and console formatters.

Formatters add the request context (correlation id, user id) and any
``custom_dimensions`` attached to a record.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from src.core.observability.context import get_request_context

CUSTOM_DIMENSIONS = "custom_dimensions"


class LogFormatter(logging.Formatter):
    """
    Base formatter collecting the structured fields of a record.
    """

    def fields(self, record: logging.LogRecord) -> dict[str, Any]:
        """Collect structured fields for a record.

        :param record: Log record
        :type record: logging.LogRecord
        :returns: Field dictionary
        :rtype: dict[str, Any]
        """
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        data.update(get_request_context())
        dimensions = getattr(record, CUSTOM_DIMENSIONS, None)
        if dimensions:
            data[CUSTOM_DIMENSIONS] = dict(dimensions)
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return data


class JSONFormatter(LogFormatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(self.fields(record), default=str)


class ConsoleFormatter(LogFormatter):
    """Human readable single line output, with trailing key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        data = self.fields(record)
        line = (
            f"{data.pop('timestamp')} {data.pop('level'):<8} "
            f"{data.pop('logger')}: {data.pop('message')}"
        )
        exception = data.pop("exception", None)
        dimensions = data.pop(CUSTOM_DIMENSIONS, {})
        data.update(dimensions)
        if data:
            line += " | " + " ".join(f"{key}={value}" for key, value in data.items())
        if exception:
            line += "\n" + exception
        return line


class LoggerFactory:
    """
    Configures the root logger once and hands out named loggers.
    """

    _initialized = False

    @classmethod
    def initialize(
        cls,
        level: int = logging.INFO,
        log_format: str = "console",
        force: bool = False,
    ) -> None:
        """Install a single stream handler on the root logger.

        :param level: Root log level
        :type level: int
        :param log_format: "json" or "console"
        :type log_format: str
        :param force: Reconfigure even if already initialized
        :type force: bool
        """
        if cls._initialized and not force:
            return
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JSONFormatter() if log_format == "json" else ConsoleFormatter())
        root = logging.getLogger()
        for existing in [h for h in root.handlers if isinstance(h.formatter, LogFormatter)]:
            root.removeHandler(existing)
        root.addHandler(handler)
        root.setLevel(level)
        cls._initialized = True

    @classmethod
    def reset(cls) -> None:
        """Forget initialization (for testing only)."""
        cls._initialized = False

    @staticmethod
    def get_logger(name: Optional[str] = None) -> logging.Logger:
        return logging.getLogger(name)


def initialize_logging(
    level: int = logging.INFO,
    log_format: str = "console",
    force: bool = False,
) -> None:
    """Initialize logging for the application."""
    LoggerFactory.initialize(level=level, log_format=log_format, force=force)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a named logger."""
    return LoggerFactory.get_logger(name)
