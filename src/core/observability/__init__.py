# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.
"""
Observability module for the Weather Telemetry API.

Lifecycle tracing:
- ApplicationContext: configured application name, injected into the catalog
- MessageCatalog: checkpoint labels ("<app> Process Start: <name>", ...)
- ProcessTracer: Start / Warning / Success / Exception around a unit of work
- LoggingSink / RecordingSink: event destinations

Transport:
- ApplicationInsightsHandler: batches log records to Application Insights

Usage:
    from src.core.observability import TelemetrySettings, configure_telemetry

    telemetry = configure_telemetry(TelemetrySettings.from_env())
    result = telemetry.tracer.run_traced("Get", lambda scope: load())

"""

from src.core.observability.context import (
    ANONYMOUS_USER,
    DEFAULT_APPLICATION_NAME,
    ApplicationContext,
    ContextData,
    ContextVarProvider,
    IContextProvider,
    RequestScope,
    clear_context,
    get_correlation_id,
    get_request_context,
    get_user_id,
)

from src.core.observability.events import (
    ERROR_DATA_KEY,
    ErrorRecord,
    Severity,
    TraceEvent,
)

from src.core.observability.exceptions import (
    TelemetryConfigurationError,
    TelemetryError,
)

from src.core.observability.messages import (
    Checkpoint,
    MessageCatalog,
)

from src.core.observability.sinks import (
    LoggingSink,
    RecordingSink,
    TelemetrySink,
)

from src.core.observability.tracer import (
    ExceptionPolicy,
    Failed,
    Ok,
    ProcessTracer,
    TracedResult,
    TraceOutcome,
    TraceScope,
    traced,
)

from src.core.observability.logger import (
    ConsoleFormatter,
    JSONFormatter,
    LogFormatter,
    LoggerFactory,
    get_logger,
    initialize_logging,
)

from src.core.observability.app_insights import (
    ApplicationInsightsHandler,
    ConnectionSettings,
    TransportLogFilter,
    add_application_insights_handler,
    parse_connection_string,
)

from src.core.observability.settings import TelemetrySettings

from src.core.observability.bootstrap import (
    Telemetry,
    configure_telemetry,
)

from src.core.observability.middleware import (
    ObservabilityMiddleware,
    add_observability_middleware,
    CORRELATION_ID_HEADER,
    USER_ID_HEADER,
)


__all__ = [
    "ANONYMOUS_USER",
    "DEFAULT_APPLICATION_NAME",
    "ApplicationContext",
    "ContextData",
    "ContextVarProvider",
    "IContextProvider",
    "RequestScope",
    "clear_context",
    "get_correlation_id",
    "get_request_context",
    "get_user_id",
    "ERROR_DATA_KEY",
    "ErrorRecord",
    "Severity",
    "TraceEvent",
    "TelemetryConfigurationError",
    "TelemetryError",
    "Checkpoint",
    "MessageCatalog",
    "LoggingSink",
    "RecordingSink",
    "TelemetrySink",
    "ExceptionPolicy",
    "Failed",
    "Ok",
    "ProcessTracer",
    "TracedResult",
    "TraceOutcome",
    "TraceScope",
    "traced",
    "ConsoleFormatter",
    "JSONFormatter",
    "LogFormatter",
    "LoggerFactory",
    "get_logger",
    "initialize_logging",
    "ApplicationInsightsHandler",
    "ConnectionSettings",
    "TransportLogFilter",
    "add_application_insights_handler",
    "parse_connection_string",
    "TelemetrySettings",
    "Telemetry",
    "configure_telemetry",
    "ObservabilityMiddleware",
    "add_observability_middleware",
    "CORRELATION_ID_HEADER",
    "USER_ID_HEADER",
]
