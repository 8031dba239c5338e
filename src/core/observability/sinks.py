# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.
"""
Telemetry sinks receiving trace events and exception records.
"""

from __future__ import annotations
import logging
from typing import Mapping, Optional, Protocol
from src.core.observability.events import Severity, TraceEvent

EXCEPTION_CHANNEL = "exceptions"


class TelemetrySink(Protocol):
    """Destination for trace events and tracked exceptions."""

    def emit_trace(
        self,
        label: str,
        severity: Severity,
        attributes: Mapping[str, str],
    ) -> None:
        """Accept one trace event."""
        ...

    def emit_exception(
        self,
        error: BaseException,
        attributes: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Accept one exception as its own record."""
        ...


class LoggingSink:
    """
    Sink that routes telemetry through stdlib logging.

    Traces go to the configured logger with their attributes under
    ``custom_dimensions``. Exceptions go to the ``<name>.exceptions`` child
    logger with ``exc_info`` set, so handlers can ship them as exception
    records.
    """

    def __init__(self, logger_name: str = "telemetry") -> None:
        self._logger = logging.getLogger(logger_name)
        self._exception_logger = logging.getLogger(f"{logger_name}.{EXCEPTION_CHANNEL}")

    @property
    def logger(self) -> logging.Logger:
        """Logger receiving trace events."""
        return self._logger

    @property
    def exception_logger(self) -> logging.Logger:
        """Logger receiving exception records."""
        return self._exception_logger

    def emit_trace(
        self,
        label: str,
        severity: Severity,
        attributes: Mapping[str, str],
    ) -> None:
        self._logger.log(
            severity.logging_level,
            label,
            extra={"custom_dimensions": dict(attributes)},
        )

    def emit_exception(
        self,
        error: BaseException,
        attributes: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._exception_logger.error(
            str(error),
            exc_info=(type(error), error, error.__traceback__),
            extra={"custom_dimensions": dict(attributes or {})},
        )


class RecordingSink:
    """In-memory sink that keeps everything it receives."""

    def __init__(self) -> None:
        self.traces: list[TraceEvent] = []
        self.exceptions: list[BaseException] = []

    def emit_trace(
        self,
        label: str,
        severity: Severity,
        attributes: Mapping[str, str],
    ) -> None:
        self.traces.append(
            TraceEvent(label=label, severity=severity, attributes=dict(attributes))
        )

    def emit_exception(
        self,
        error: BaseException,
        attributes: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.exceptions.append(error)

    def labels(self) -> list[str]:
        """Labels of all recorded traces, in emission order."""
        return [event.label for event in self.traces]

    def clear(self) -> None:
        """Drop everything recorded so far."""
        self.traces.clear()
        self.exceptions.clear()
