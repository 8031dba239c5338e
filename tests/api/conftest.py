# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Fixtures for API tests."""

import datetime
from typing import Generator, List
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from src.api.routes import weather
from src.core.models.weather import WeatherForecast, generate_forecasts
from src.core.observability import (
    ApplicationContext,
    MessageCatalog,
    ObservabilityMiddleware,
    ProcessTracer,
    RecordingSink,
)


def create_test_app() -> FastAPI:
    """Create a minimal FastAPI app for testing."""
    from src.api.routes import health_router, weather_router

    app = FastAPI(title="Test API")
    app.add_middleware(ObservabilityMiddleware)
    app.include_router(health_router)
    app.include_router(weather_router)
    return app


def mild_forecasts(days: int) -> List[WeatherForecast]:
    """Forecasts without extreme summaries."""
    start = datetime.date(2024, 6, 1)
    return [
        WeatherForecast(
            date=start + datetime.timedelta(days=i),
            temperature_c=20,
            summary="Mild",
        )
        for i in range(1, days + 1)
    ]


@pytest.fixture
def sink() -> RecordingSink:
    """Provide a recording sink."""
    return RecordingSink()


@pytest.fixture
def tracer(sink: RecordingSink) -> ProcessTracer:
    """Provide a tracer labelled WeatherApp."""
    return ProcessTracer(sink=sink, catalog=MessageCatalog(ApplicationContext("WeatherApp")))


@pytest.fixture
def client(tracer: ProcessTracer) -> Generator[TestClient, None, None]:
    """Provide a test client with the tracer configured."""
    app = create_test_app()
    weather.set_tracer(tracer)
    weather.set_forecast_provider(mild_forecasts)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    weather.set_forecast_provider(generate_forecasts)
