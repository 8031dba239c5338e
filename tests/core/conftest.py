# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Shared fixtures for core module tests."""

from datetime import datetime, timezone
from typing import Generator
import pytest
from src.core.observability.context import ApplicationContext, clear_context
from src.core.observability.messages import MessageCatalog
from src.core.observability.sinks import RecordingSink
from src.core.observability.tracer import ProcessTracer

FIXED_NOW = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture(autouse=True)
def _clean_request_context() -> Generator[None, None, None]:
    clear_context()
    yield
    clear_context()


@pytest.fixture
def app_context() -> ApplicationContext:
    return ApplicationContext("WeatherApp")


@pytest.fixture
def catalog(app_context: ApplicationContext) -> MessageCatalog:
    return MessageCatalog(app_context)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def tracer(sink: RecordingSink, catalog: MessageCatalog) -> ProcessTracer:
    return ProcessTracer(sink=sink, catalog=catalog, clock=lambda: FIXED_NOW)
