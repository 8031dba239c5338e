# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Weather Telemetry API core.

This package provides:
- Process lifecycle tracing (start, warning, success, exception)
- Application Insights log transport
- Weather forecast models
"""

from src.core.models.weather import WeatherForecast, generate_forecasts
from src.core.observability.tracer import ProcessTracer, TracedResult, TraceOutcome

__all__ = [
    "WeatherForecast",
    "generate_forecasts",
    "ProcessTracer",
    "TracedResult",
    "TraceOutcome",
]
