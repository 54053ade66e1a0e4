"""Forecast provider adapters, in fallback order: Open-Meteo, then AccuWeather."""

from services.api.weather.providers.accuweather import AccuWeatherProvider
from services.api.weather.providers.base import ForecastProvider, select_hourly_window
from services.api.weather.providers.open_meteo import OpenMeteoProvider

__all__ = ["AccuWeatherProvider", "ForecastProvider", "OpenMeteoProvider", "select_hourly_window"]
