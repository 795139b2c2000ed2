"""Models package initialization."""

from .forecast import WeatherForecast, generate_forecasts
from .user import AuthenticatedUser

__all__ = ["AuthenticatedUser", "WeatherForecast", "generate_forecasts"]
