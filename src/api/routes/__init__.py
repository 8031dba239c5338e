# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""API routes package."""

from src.api.routes.health import router as health_router
from src.api.routes.weather import (
    router as weather_router,
    set_forecast_provider,
    set_tracer,
)

__all__ = [
    "health_router",
    "weather_router",
    "set_forecast_provider",
    "set_tracer",
]
