# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.
"""
Startup wiring: settings in, configured tracer out.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
from src.core.observability.app_insights import ApplicationInsightsHandler
from src.core.observability.context import ApplicationContext
from src.core.observability.logger import get_logger, initialize_logging
from src.core.observability.messages import MessageCatalog
from src.core.observability.sinks import LoggingSink, TelemetrySink
from src.core.observability.tracer import ProcessTracer
from src.core.observability.settings import TelemetrySettings

logger = get_logger(__name__)


@dataclass
class Telemetry:
    """Objects built at startup and shared for the process lifetime."""

    context: ApplicationContext
    catalog: MessageCatalog
    tracer: ProcessTracer
    handler: Optional[ApplicationInsightsHandler] = None

    @property
    def exporting(self) -> bool:
        """True while records are shipped to Application Insights."""
        return self.handler is not None and self.handler.enabled

    def shutdown(self) -> None:
        """Flush and detach the Application Insights handler."""
        if self.handler is None:
            return
        get_logger().removeHandler(self.handler)
        self.handler.close()
        self.handler = None


def configure_telemetry(
    settings: TelemetrySettings,
    sink: Optional[TelemetrySink] = None,
    init_logging: bool = True,
) -> Telemetry:
    """Build the tracer and attach Application Insights when configured.

    :param settings: Telemetry settings
    :type settings: TelemetrySettings
    :param sink: Sink override, a LoggingSink by default
    :param init_logging: Install the console/JSON root handler
    :returns: Telemetry bundle
    :rtype: Telemetry
    """
    if init_logging:
        initialize_logging(level=settings.logging_level, log_format=settings.log_format)

    handler: Optional[ApplicationInsightsHandler] = None
    if settings.connection_string:
        handler = ApplicationInsightsHandler(
            connection_string=settings.connection_string,
            role_name=settings.application_name,
            batch_size=settings.batch_size,
            flush_interval=settings.flush_interval,
        )
        get_logger().addHandler(handler)
        logger.info("Application Insights telemetry enabled for %s", settings.application_name)
    else:
        logger.info("No Application Insights connection string, telemetry stays local")

    context = ApplicationContext(settings.application_name)
    catalog = MessageCatalog(context)
    tracer = ProcessTracer(
        sink=sink or LoggingSink(),
        catalog=catalog,
        policy=settings.exception_policy,
    )
    return Telemetry(context=context, catalog=catalog, tracer=tracer, handler=handler)
