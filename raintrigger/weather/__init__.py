"""Precipitation sources."""
from .base import WeatherProvider, mm_to_inches
from .fallback import FallbackWeatherProvider
from .noaa import NOAAProvider
from .openweathermap import OpenWeatherMapProvider

__all__ = [
    "WeatherProvider",
    "mm_to_inches",
    "FallbackWeatherProvider",
    "NOAAProvider",
    "OpenWeatherMapProvider",
]
