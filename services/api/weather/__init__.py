"""
Weather aggregation package.

City name -> normalized WeatherSnapshot via an ordered fallback chain
(Open-Meteo first, AccuWeather second), cached per lowercase city for
30 minutes, with an LLM-or-template summary on top.
"""

from services.api.weather.cache import RedisWeatherCache, WeatherCache
from services.api.weather.service import ForecastAggregator, ForecastSource
from services.api.weather.summary import SummaryGenerator

__all__ = [
    "ForecastAggregator",
    "ForecastSource",
    "RedisWeatherCache",
    "SummaryGenerator",
    "WeatherCache",
]
