# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
Azure Application Insights log handler with async background batching.

Buffers log records as telemetry envelopes in memory and posts them to the
ingestion endpoint named by the connection string, in batches, from a
background thread. Records carrying exception info become exception
telemetry; everything else becomes trace (message) telemetry.
"""

import json
import logging
import os
import queue
import sys
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests

from src.core.observability.context import get_correlation_id, get_user_id
from src.core.observability.events import Severity, truncate
from src.core.observability.exceptions import TelemetryConfigurationError
from src.core.observability.logger import CUSTOM_DIMENSIONS

DEFAULT_INGESTION_ENDPOINT = "https://dc.services.visualstudio.com"
TRACK_PATH = "/v2/track"
MAX_MESSAGE_LENGTH = 32768
TRANSPORT_LOGGERS = ("urllib3", "requests", "charset_normalizer")


@dataclass(frozen=True)
class ConnectionSettings:
    """Parsed Application Insights connection string."""

    instrumentation_key: str
    ingestion_endpoint: str = DEFAULT_INGESTION_ENDPOINT

    @property
    def track_url(self) -> str:
        """Full URL of the track endpoint."""
        return self.ingestion_endpoint.rstrip("/") + TRACK_PATH


def parse_connection_string(connection_string: str) -> ConnectionSettings:
    """Parse a ``Key=Value;Key=Value`` connection string.

    :param connection_string: Application Insights connection string
    :type connection_string: str
    :returns: Parsed settings
    :rtype: ConnectionSettings
    :raises TelemetryConfigurationError: If the instrumentation key is missing
    """
    values: Dict[str, str] = {}
    for part in connection_string.split(";"):
        if not part.strip():
            continue
        key, sep, value = part.partition("=")
        if not sep:
            raise TelemetryConfigurationError(
                "connection_string", f"malformed segment {part.strip()!r}"
            )
        values[key.strip().lower()] = value.strip()

    instrumentation_key = values.get("instrumentationkey")
    if not instrumentation_key:
        raise TelemetryConfigurationError("connection_string", "InstrumentationKey is required")
    return ConnectionSettings(
        instrumentation_key=instrumentation_key,
        ingestion_endpoint=values.get("ingestionendpoint") or DEFAULT_INGESTION_ENDPOINT,
    )


class TransportLogFilter(logging.Filter):
    """Rejects records from the HTTP stack that ships the telemetry."""

    def filter(self, record: logging.LogRecord) -> bool:
        return not any(
            record.name == name or record.name.startswith(name + ".")
            for name in TRANSPORT_LOGGERS
        )


class ApplicationInsightsHandler(logging.Handler):
    """
    Async logging handler that batches and sends telemetry to Application Insights.

    Features:
    - Buffers envelopes in memory queue
    - Background thread posts batches to the track endpoint
    - Configurable batch size and flush interval
    - Graceful shutdown with final flush
    - Ignores log records of its own HTTP transport

    """

    def __init__(
        self,
        connection_string: Optional[str] = None,
        role_name: Optional[str] = None,
        batch_size: int = 100,
        flush_interval: float = 5.0,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the Application Insights handler.

        :param connection_string: Application Insights connection string
        :param role_name: Cloud role name stamped on every envelope
        :param batch_size: Number of envelopes to batch before sending
        :param flush_interval: Seconds between flush attempts
        :param timeout: HTTP timeout in seconds
        """
        super().__init__()
        self.addFilter(TransportLogFilter())

        connection_string = connection_string or os.environ.get(
            "APPLICATIONINSIGHTS_CONNECTION_STRING", ""
        )
        self.settings: Optional[ConnectionSettings] = (
            parse_connection_string(connection_string) if connection_string else None
        )
        self.role_name = role_name or os.environ.get("APPLICATION_LOG_NAME", "")
        self.batch_size = int(os.environ.get("APPINSIGHTS_BATCH_SIZE", batch_size))
        self.flush_interval = float(os.environ.get("APPINSIGHTS_FLUSH_INTERVAL", flush_interval))
        self.timeout = timeout

        self._queue: queue.Queue[Dict[str, Any]] = queue.Queue()
        self._shutdown = threading.Event()
        self._thread: Optional[threading.Thread] = None

        if self.settings:
            self._start_background_thread()

    @property
    def enabled(self) -> bool:
        """True when a connection string was configured."""
        return self.settings is not None

    def _start_background_thread(self) -> None:
        """Start the background sender thread."""
        self._thread = threading.Thread(
            target=self._sender_loop,
            name="appinsights-sender",
            daemon=True,
        )
        self._thread.start()

    def _sender_loop(self) -> None:
        """Background loop that batches and sends envelopes."""
        batch: List[Dict[str, Any]] = []
        last_flush = time.time()

        while not self._shutdown.is_set():
            try:
                batch.append(self._queue.get(timeout=0.5))
            except queue.Empty:
                pass
            should_flush = len(batch) >= self.batch_size or (
                batch and time.time() - last_flush >= self.flush_interval
            )

            if should_flush and batch:
                self._send_batch(batch)
                batch = []
                last_flush = time.time()

        while not self._queue.empty():
            try:
                batch.append(self._queue.get_nowait())
            except queue.Empty:
                break

        if batch:
            self._send_batch(batch)

    def _send_batch(self, batch: List[Dict[str, Any]]) -> bool:
        """Post a batch of envelopes to the track endpoint.

        A failed batch is dropped and reported on stderr.

        :param batch: List of envelopes to send
        :returns: True if accepted, False otherwise
        """
        if not batch or not self.settings:
            return False

        try:
            response = requests.post(
                url=self.settings.track_url,
                data=json.dumps(batch, default=str),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as ex:
            sys.stderr.write(f"Application Insights batch of {len(batch)} dropped: {ex}\n")
            return False

        if response.status_code not in (200, 206):
            sys.stderr.write(
                f"Application Insights batch of {len(batch)} rejected: "
                f"HTTP {response.status_code}\n"
            )
            return False
        return True

    def emit(self, record: logging.LogRecord) -> None:
        """Queue a log record as an envelope.

        :param record: Log record to emit
        """
        if not self.settings:
            return

        try:
            self._queue.put_nowait(self._format_record(record))
        except Exception:
            self.handleError(record)

    def _format_record(self, record: logging.LogRecord) -> Dict[str, Any]:
        """Build the telemetry envelope for a record.

        :param record: Log record to format
        :returns: Envelope dictionary
        """
        properties: Dict[str, str] = {
            "logger": record.name,
            "level": record.levelname,
        }
        user_id = get_user_id()
        if user_id:
            properties["user_id"] = user_id
        dimensions = getattr(record, CUSTOM_DIMENSIONS, None) or {}
        properties.update({str(k): str(v) for k, v in dimensions.items()})

        severity_level = Severity.from_logging_level(record.levelno).rank
        if record.exc_info and record.exc_info[1] is not None:
            error = record.exc_info[1]
            name = "Microsoft.ApplicationInsights.Exception"
            base_type = "ExceptionData"
            base_data: Dict[str, Any] = {
                "ver": 2,
                "severityLevel": severity_level,
                "exceptions": [
                    {
                        "id": 1,
                        "outerId": 0,
                        "typeName": type(error).__name__,
                        "message": truncate(str(error), MAX_MESSAGE_LENGTH) or "",
                        "hasFullStack": True,
                        "stack": self._format_stack(record.exc_info),
                    }
                ],
                "properties": properties,
            }
        else:
            name = "Microsoft.ApplicationInsights.Message"
            base_type = "MessageData"
            base_data = {
                "ver": 2,
                "message": truncate(record.getMessage(), MAX_MESSAGE_LENGTH),
                "severityLevel": severity_level,
                "properties": properties,
            }

        tags: Dict[str, str] = {}
        if self.role_name:
            tags["ai.cloud.role"] = self.role_name
        correlation_id = get_correlation_id()
        if correlation_id:
            tags["ai.operation.id"] = correlation_id

        return {
            "name": name,
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "iKey": self.settings.instrumentation_key if self.settings else "",
            "tags": tags,
            "data": {"baseType": base_type, "baseData": base_data},
        }

    @staticmethod
    def _format_stack(exc_info: Any) -> str:
        return logging.Formatter().formatException(exc_info)

    def flush(self) -> None:
        """Wait for queued envelopes to be picked up (bounded at 10 seconds)."""
        start = time.time()
        while not self._queue.empty() and time.time() - start < 10.0:
            time.sleep(0.1)

    def close(self) -> None:
        """Shutdown the handler gracefully."""
        self._shutdown.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)
        super().close()


def add_application_insights_handler(
    logger: Optional[logging.Logger] = None,
    connection_string: Optional[str] = None,
    role_name: Optional[str] = None,
) -> Optional[ApplicationInsightsHandler]:
    """Add an Application Insights handler to a logger.

    If connection_string is not provided, reads it from the environment.
    Returns None if no connection string is available.

    :param logger: Logger to add handler to (default: root logger)
    :param connection_string: Application Insights connection string
    :param role_name: Cloud role name
    :returns: The handler if added, None if not configured
    """
    cs = connection_string or os.environ.get("APPLICATIONINSIGHTS_CONNECTION_STRING")
    if not cs:
        return None

    handler = ApplicationInsightsHandler(connection_string=cs, role_name=role_name)
    target_logger = logger or logging.getLogger()
    target_logger.addHandler(handler)
    return handler
