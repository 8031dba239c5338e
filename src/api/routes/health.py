# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Health check endpoints."""

from datetime import datetime, timezone
from typing import Dict
from fastapi import APIRouter
from pydantic import BaseModel

API_VERSION = "1.0.0"

router = APIRouter(tags=["health"])
_service_status: Dict[str, bool] = {}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: str
    version: str
    services: Dict[str, bool] = {}


def set_service_status(name: str, running: bool) -> None:
    """Set a service's status for health check.

    :param name: Service name (e.g., "telemetry", "application_insights")
    :param running: Whether the service is running
    """
    _service_status[name] = running


@router.get("/healthz", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check API health status.

    :returns: Health status including all service states.
    :rtype: HealthResponse
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=API_VERSION,
        services=_service_status.copy(),
    )


@router.get("/")
async def root() -> dict:
    """Root endpoint.

    :returns: Service information and documentation link.
    :rtype: dict
    """
    return {
        "service": "Weather Telemetry API",
        "version": API_VERSION,
        "docs": "/docs",
    }
