# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Data models."""

from src.core.models.weather import WeatherForecast, generate_forecasts

__all__ = [
    "WeatherForecast",
    "generate_forecasts",
]
