"""
Canonical weather model shared by every provider.

Both upstreams are mapped onto these types before anything else sees them.
Models are frozen and sequences are tuples; a cached snapshot is shared
read-only between requests.

JSON field names are camelCase (windSpeed, providerKey, aiSummary) to keep
the response shape the frontend already consumes.
"""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CanonicalModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Location(_CanonicalModel):
    name: str
    country: str = ""
    lat: float
    lon: float
    # AccuWeather location key; None unless AccuWeather served the result
    provider_key: str | None = None


class CurrentConditions(_CanonicalModel):
    temperature: float
    wind_speed: float
    wind_direction: float | None = None
    weather_code: int | None = None
    weather_text: str | None = None
    icon: str
    description: str
    is_day: bool = True


class HourlyForecast(_CanonicalModel):
    time: dt.datetime
    temperature: float | None = None
    feels_like: float | None = None
    humidity: float | None = None
    wind_speed: float | None = None
    precipitation_probability: float | None = None
    weather_code: int | None = None
    weather_text: str | None = None
    icon: str
    description: str


class DailyForecast(_CanonicalModel):
    date: dt.date
    max_temp: float | None = None
    min_temp: float | None = None
    precipitation_sum: float | None = None
    max_wind_speed: float | None = None
    sunrise: str | None = None
    sunset: str | None = None
    weather_code: int | None = None
    weather_text: str | None = None
    icon: str
    description: str


class WeatherSnapshot(_CanonicalModel):
    location: Location
    current: CurrentConditions
    hourly: tuple[HourlyForecast, ...] = ()
    daily: tuple[DailyForecast, ...] = ()


class Summary(_CanonicalModel):
    today: str
    tomorrow: str
    clothing: str


class WeatherSummaryResponse(WeatherSnapshot):
    ai_summary: Summary
