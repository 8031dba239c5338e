# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
FastAPI application for the Weather Telemetry API.
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from src.core.observability import (
    ObservabilityMiddleware,
    Telemetry,
    TelemetrySettings,
    configure_telemetry,
    get_logger,
)
from src.api.routes import health_router, weather_router, set_tracer
from src.api.routes.health import API_VERSION, set_service_status

CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "http://localhost:3000,http://localhost:8000").split(
    ","
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown.

    Reads telemetry settings once, builds the tracer and shares it through
    app.state and the routes.

    :param app: FastAPI application instance.
    :type app: FastAPI
    :yields: None
    """
    telemetry: Optional[Telemetry] = None

    try:
        settings = TelemetrySettings.from_env()
        telemetry = configure_telemetry(settings)
        app.state.telemetry = telemetry
        set_tracer(telemetry.tracer)
        set_service_status("telemetry", True)
        set_service_status("application_insights", telemetry.exporting)
        logger.info("Weather Telemetry API started as %s", settings.application_name)
        yield

    except Exception as e:
        logger.error(f"Failed to initialize Weather Telemetry API: {e}", exc_info=True)
        raise

    finally:
        logger.info("Shutting down Weather Telemetry API...")
        set_service_status("telemetry", False)
        set_service_status("application_insights", False)
        if telemetry:
            telemetry.shutdown()
        logger.info("Weather Telemetry API shutdown complete")


app = FastAPI(
    title="Weather Telemetry API",
    description="Weather forecast API instrumented with lifecycle tracing",
    version=API_VERSION,
    lifespan=lifespan,
)
app.add_middleware(ObservabilityMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(health_router)
app.include_router(weather_router)
