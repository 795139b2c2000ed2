"""
Demo weather forecast served by both services.
"""

import datetime
import random
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

SUMMARIES = [
    "Freezing", "Bracing", "Chilly", "Cool", "Mild",
    "Warm", "Balmy", "Hot", "Sweltering", "Scorching",
]


class WeatherForecast(BaseModel):
    """
    A single day's forecast, serialized with camelCase keys.
    """

    model_config = ConfigDict(populate_by_name=True)

    date: datetime.date = Field(..., description="Forecast day")
    temperature_c: int = Field(..., alias="temperatureC", description="Temperature in Celsius")
    summary: Optional[str] = Field(None, description="Short description")

    @computed_field(alias="temperatureF")
    @property
    def temperature_f(self) -> int:
        """Temperature in Fahrenheit, truncated toward zero."""
        return 32 + int(self.temperature_c / 0.5556)


def generate_forecasts(count: int = 5) -> List[WeatherForecast]:
    """
    Build forecasts for the next ``count`` days with random temperatures.
    """
    today = datetime.date.today()
    return [
        WeatherForecast(
            date=today + datetime.timedelta(days=index),
            temperature_c=random.randint(-20, 54),
            summary=random.choice(SUMMARIES),
        )
        for index in range(1, count + 1)
    ]
