"""
AccuWeather forecast provider (secondary).

Requires an API key and the opaque location key produced by
AccuWeatherLocationResolver (Location.provider_key). Conditions arrive as
free-text phrases, not codes, and go through the phrase table.

Endpoints:
  /currentconditions/v1/{key}          -> [ {WeatherText, Temperature, Wind, IsDayTime, ...} ]
  /forecasts/v1/hourly/24hour/{key}    -> [ {DateTime, Temperature, IconPhrase, ...}, ... ]
  /forecasts/v1/daily/5day/{key}       -> {DailyForecasts: [ {Date, Temperature, Day, Sun, ...} ]}

Forecasts are requested with metric=true. Measurements that still come back
imperial ({"Value": 70, "Unit": "F"}) are converted, so everything leaving
this module is °C and km/h.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from services.api.weather.conditions import phrase_condition
from services.api.weather.errors import MisconfiguredError, UpstreamMalformedError
from services.api.weather.http import get_json
from services.api.weather.models import (
    CurrentConditions,
    DailyForecast,
    HourlyForecast,
    Location,
    WeatherSnapshot,
)
from services.api.weather.providers.base import Clock, best_effort, select_hourly_window, utcnow

logger = logging.getLogger(__name__)

_MPH_TO_KMH = 1.609344


def _metric(measure: Any) -> float | None:
    """
    Read an AccuWeather measurement as °C / km/h.

    Accepts {"Metric": {...}, "Imperial": {...}} pairs or a bare
    {"Value": ..., "Unit": ...}.
    """
    if not isinstance(measure, dict):
        return None
    if isinstance(measure.get("Metric"), dict):
        return _metric(measure["Metric"])
    value = measure.get("Value")
    if value is None:
        return None
    value = float(value)
    unit = (measure.get("Unit") or "").lower()
    if unit == "f":
        return round((value - 32.0) * 5.0 / 9.0, 1)
    if unit in ("mi/h", "mph"):
        return round(value * _MPH_TO_KMH, 1)
    return value


def _nested(data: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def parse_current(payload: Any) -> CurrentConditions:
    """Map currentconditions; raises UpstreamMalformedError if the block is missing."""
    current = payload[0] if isinstance(payload, list) and payload else None
    if not isinstance(current, dict):
        raise UpstreamMalformedError("No current data", source=AccuWeatherProvider.name)

    try:
        temperature = _metric(current.get("Temperature"))
        if temperature is None:
            raise UpstreamMalformedError("current conditions have no temperature", source=AccuWeatherProvider.name)
        text = current.get("WeatherText")
        condition = phrase_condition(text)
        return CurrentConditions(
            temperature=temperature,
            wind_speed=_metric(_nested(current, "Wind", "Speed")) or 0.0,
            wind_direction=_nested(current, "Wind", "Direction", "Degrees"),
            weather_text=text,
            icon=condition.icon,
            description=condition.description,
            is_day=bool(current.get("IsDayTime", True)),
        )
    except (TypeError, ValueError) as exc:
        raise UpstreamMalformedError(f"unreadable current conditions: {exc}", source=AccuWeatherProvider.name) from exc


def parse_hourly(payload: Any, *, fallback_phrase: str | None = None) -> list[HourlyForecast]:
    """Map the 24-hour forecast list; rows without a phrase reuse fallback_phrase."""
    if not isinstance(payload, list):
        raise UpstreamMalformedError("hourly forecast is not a list", source=AccuWeatherProvider.name)

    rows = []
    try:
        for item in payload:
            phrase = item.get("IconPhrase") or fallback_phrase
            condition = phrase_condition(phrase)
            temperature = _metric(item.get("Temperature"))
            feels_like = _metric(item.get("RealFeelTemperature"))
            rows.append(HourlyForecast(
                time=datetime.fromisoformat(item["DateTime"]),
                temperature=temperature,
                feels_like=temperature if feels_like is None else feels_like,
                humidity=item.get("RelativeHumidity"),
                wind_speed=_metric(_nested(item, "Wind", "Speed")),
                precipitation_probability=item.get("PrecipitationProbability") or 0,
                weather_text=phrase,
                icon=condition.icon,
                description=condition.description,
            ))
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise UpstreamMalformedError(f"unreadable hourly forecast: {exc}", source=AccuWeatherProvider.name) from exc
    return rows


def _daily_liquid(day: dict[str, Any]) -> float | None:
    amounts = [
        _metric(_nested(day, half, "TotalLiquid"))
        for half in ("Day", "Night")
    ]
    amounts = [a for a in amounts if a is not None]
    return round(sum(amounts), 1) if amounts else None


def parse_daily(payload: Any) -> list[DailyForecast]:
    """Map the 5-day forecast, today first. Dates stay in the location's local day."""
    forecasts = payload.get("DailyForecasts") if isinstance(payload, dict) else None
    if not isinstance(forecasts, list):
        raise UpstreamMalformedError("daily forecast has no DailyForecasts", source=AccuWeatherProvider.name)

    rows = []
    try:
        for item in forecasts:
            phrase = _nested(item, "Day", "IconPhrase") or _nested(item, "Day", "LongPhrase")
            condition = phrase_condition(phrase)
            rows.append(DailyForecast(
                date=datetime.fromisoformat(item["Date"]).date(),
                max_temp=_metric(_nested(item, "Temperature", "Maximum")),
                min_temp=_metric(_nested(item, "Temperature", "Minimum")),
                precipitation_sum=_daily_liquid(item),
                max_wind_speed=_metric(_nested(item, "Day", "Wind", "Speed")),
                sunrise=_nested(item, "Sun", "Rise"),
                sunset=_nested(item, "Sun", "Set"),
                weather_text=phrase,
                icon=condition.icon,
                description=condition.description,
            ))
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise UpstreamMalformedError(f"unreadable daily forecast: {exc}", source=AccuWeatherProvider.name) from exc
    return rows


class AccuWeatherProvider:
    """
    Usage:
        provider = AccuWeatherProvider(api_key="...", base_url="http://dataservice.accuweather.com",
                                       language="he", timeout_s=8.0)
        snapshot = await provider.fetch(location)   # location.provider_key required
    """

    name = "accuweather"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        language: str,
        timeout_s: float,
        clock: Clock = utcnow,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._language = language
        self._timeout_s = timeout_s
        self._clock = clock

    async def fetch(self, location: Location) -> WeatherSnapshot:
        if not self._api_key:
            raise MisconfiguredError("AccuWeather API key not configured (ACCUWEATHER_API_KEY)", source=self.name)
        if not location.provider_key:
            raise UpstreamMalformedError(f"no AccuWeather location key for {location.name}", source=self.name)

        current = await self.fetch_current(location)
        hourly = await best_effort(
            lambda: self.fetch_hourly(location, fallback_phrase=current.weather_text),
            provider=self.name,
            what="hourly",
            location=location,
        )
        daily = await best_effort(
            lambda: self.fetch_daily(location), provider=self.name, what="daily", location=location
        )
        logger.debug(
            "accuweather fetched %s (key=%s): %d hourly, %d daily",
            location.name,
            location.provider_key,
            len(hourly),
            len(daily),
        )
        return WeatherSnapshot(location=location, current=current, hourly=hourly, daily=daily)

    async def fetch_current(self, location: Location) -> CurrentConditions:
        payload = await self._get(
            f"/currentconditions/v1/{location.provider_key}", {"details": "true"}
        )
        return parse_current(payload)

    async def fetch_hourly(
        self, location: Location, *, fallback_phrase: str | None = None
    ) -> tuple[HourlyForecast, ...]:
        payload = await self._get(
            f"/forecasts/v1/hourly/24hour/{location.provider_key}",
            {"metric": "true", "details": "true"},
        )
        rows = parse_hourly(payload, fallback_phrase=fallback_phrase)
        return select_hourly_window(rows, self._clock())

    async def fetch_daily(self, location: Location) -> tuple[DailyForecast, ...]:
        payload = await self._get(
            f"/forecasts/v1/daily/5day/{location.provider_key}",
            {"metric": "true", "details": "true"},
        )
        return tuple(parse_daily(payload))

    async def _get(self, path: str, extra: dict[str, Any]) -> Any:
        params = {"apikey": self._api_key, "language": self._language, **extra}
        return await get_json(
            f"{self._base_url}{path}", params=params, timeout_s=self._timeout_s, source=self.name
        )
