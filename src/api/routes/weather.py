# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
Weather forecast API routes
"""

import json
from typing import Callable, List, Optional
from fastapi import APIRouter, HTTPException, Query
from src.core.models.weather import WeatherForecast, generate_forecasts
from src.core.observability import Ok, ProcessTracer, TraceScope

PROCESS_NAME = "Get"

router = APIRouter(prefix="/weatherforecast", tags=["weather"])
_tracer: Optional[ProcessTracer] = None
_forecast_provider: Callable[[int], List[WeatherForecast]] = generate_forecasts


def set_tracer(tracer: ProcessTracer) -> None:
    """Set the process tracer instance.

    :param tracer: ProcessTracer used for request tracing.
    :type tracer: ProcessTracer
    """
    global _tracer
    _tracer = tracer


def set_forecast_provider(provider: Callable[[int], List[WeatherForecast]]) -> None:
    """Set the function producing forecasts for a number of days.

    :param provider: Callable returning forecasts.
    :type provider: Callable[[int], List[WeatherForecast]]
    """
    global _forecast_provider
    _forecast_provider = provider


def get_tracer() -> ProcessTracer:
    """Get the process tracer instance.

    :returns: The configured ProcessTracer instance.
    :rtype: ProcessTracer
    :raises HTTPException: If tracer not initialized (503 error).
    """
    if _tracer is None:
        raise HTTPException(status_code=503, detail="Tracer not initialized")
    return _tracer


@router.get("", response_model=List[WeatherForecast])
async def get_weather_forecast(
    days: int = Query(5, ge=1, le=14, description="Number of days to forecast"),
) -> List[WeatherForecast]:
    """Get forecasts for the coming days, traced as process "Get".

    :param days: Number of days to forecast.
    :type days: int
    :returns: One forecast per day.
    :rtype: List[WeatherForecast]
    :raises HTTPException: If forecasting failed (500 error).
    """
    tracer = get_tracer()
    provider = _forecast_provider

    def work(scope: TraceScope) -> Ok[List[WeatherForecast]]:
        forecasts = provider(days)
        extreme = [f for f in forecasts if f.is_extreme]
        if extreme:
            scope.warning(
                attributes={"ExtremeDays": ",".join(f.date.isoformat() for f in extreme)},
                detail="Extreme weather in forecast",
            )
        return Ok(forecasts)

    result = tracer.run_traced(
        PROCESS_NAME,
        work,
        attributes={
            "RequestData": json.dumps({"days": days}),
            "RequestPath": "/weatherforecast",
            "Days": days,
        },
    )
    if not result.succeeded:
        raise HTTPException(status_code=500, detail="Forecast unavailable")
    return result.value
