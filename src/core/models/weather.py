# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Weather forecast models."""

import datetime
import random
from typing import Optional
from pydantic import BaseModel, ConfigDict, computed_field

SUMMARIES = [
    "Freezing",
    "Bracing",
    "Chilly",
    "Cool",
    "Mild",
    "Warm",
    "Balmy",
    "Hot",
    "Sweltering",
    "Scorching",
]
EXTREME_SUMMARIES = {"Freezing", "Scorching"}


class WeatherForecast(BaseModel):
    """Forecast for a single day."""

    model_config = ConfigDict(frozen=True)

    date: datetime.date
    temperature_c: int
    summary: Optional[str] = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def temperature_f(self) -> int:
        """Temperature in Fahrenheit."""
        return 32 + int(self.temperature_c / 0.5556)

    @property
    def is_extreme(self) -> bool:
        """True for summaries worth a warning."""
        return self.summary in EXTREME_SUMMARIES


def generate_forecasts(
    days: int = 5,
    start: Optional[datetime.date] = None,
    rng: Optional[random.Random] = None,
) -> list[WeatherForecast]:
    """Generate random forecasts for the days after start.

    :param days: Number of days
    :type days: int
    :param start: Reference day, today by default
    :param rng: Random source
    :returns: One forecast per day
    :rtype: list[WeatherForecast]
    """
    start = start or datetime.date.today()
    rng = rng or random.Random()
    return [
        WeatherForecast(
            date=start + datetime.timedelta(days=index),
            temperature_c=rng.randint(-20, 54),
            summary=rng.choice(SUMMARIES),
        )
        for index in range(1, days + 1)
    ]
