"""
Open-Meteo forecast provider (primary).

Keyed by lat/lon, no credentials. Current conditions, hourly and daily
series are requested separately so a broken series only costs that series.

Open-Meteo returns columnar series:
  {
    "utc_offset_seconds": 10800,
    "hourly": {"time": ["2026-10-19T00:00", ...], "temperature_2m": [21.3, ...], ...},
    "daily":  {"time": ["2026-10-19", ...], "temperature_2m_max": [27.1, ...], ...}
  }
Times carry no offset. Daily dates are local to the location (timezone=auto);
the hourly series is requested in GMT, and the payload's utc_offset_seconds
is attached to every sample before windowing.

Units are already metric: °C and km/h.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any

from services.api.weather.conditions import wmo_condition
from services.api.weather.errors import UpstreamMalformedError
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

_HOURLY_FIELDS = [
    "temperature_2m",
    "relative_humidity_2m",
    "wind_speed_10m",
    "weathercode",
    "precipitation_probability",
    "apparent_temperature",
]

_DAILY_FIELDS = [
    "temperature_2m_max",
    "temperature_2m_min",
    "weathercode",
    "precipitation_sum",
    "wind_speed_10m_max",
    "sunrise",
    "sunset",
]


def _column_value(block: dict[str, Any], field: str, i: int) -> Any:
    column = block.get(field)
    if not isinstance(column, list):
        return None
    return column[i] if i < len(column) else None


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _local_tz(payload: dict[str, Any]) -> timezone:
    return timezone(timedelta(seconds=int(payload.get("utc_offset_seconds") or 0)))


def parse_current(payload: dict[str, Any]) -> CurrentConditions:
    """Map the current_weather block; raises UpstreamMalformedError if absent."""
    current = payload.get("current_weather") if isinstance(payload, dict) else None
    if not isinstance(current, dict) or current.get("temperature") is None:
        raise UpstreamMalformedError("response has no current_weather block", source=OpenMeteoProvider.name)

    try:
        code = _optional_int(current.get("weathercode"))
        condition = wmo_condition(code)
        return CurrentConditions(
            temperature=float(current["temperature"]),
            wind_speed=float(current.get("windspeed") or 0.0),
            wind_direction=current.get("winddirection"),
            weather_code=code,
            icon=condition.icon,
            description=condition.description,
            is_day=current.get("is_day") == 1,
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise UpstreamMalformedError(f"unreadable current_weather: {exc}", source=OpenMeteoProvider.name) from exc


def parse_hourly(payload: dict[str, Any]) -> list[HourlyForecast]:
    """Map the columnar hourly block to HourlyForecast rows (unwindowed)."""
    block = payload.get("hourly") if isinstance(payload, dict) else None
    if not isinstance(block, dict) or not isinstance(block.get("time"), list):
        raise UpstreamMalformedError("response has no hourly block", source=OpenMeteoProvider.name)

    rows = []
    try:
        tz = _local_tz(payload)
        for i, raw_time in enumerate(block["time"]):
            code = _optional_int(_column_value(block, "weathercode", i))
            condition = wmo_condition(code)
            rows.append(HourlyForecast(
                time=datetime.fromisoformat(raw_time).replace(tzinfo=tz),
                temperature=_column_value(block, "temperature_2m", i),
                feels_like=_column_value(block, "apparent_temperature", i),
                humidity=_column_value(block, "relative_humidity_2m", i),
                wind_speed=_column_value(block, "wind_speed_10m", i),
                precipitation_probability=_column_value(block, "precipitation_probability", i),
                weather_code=code,
                icon=condition.icon,
                description=condition.description,
            ))
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise UpstreamMalformedError(f"unreadable hourly series: {exc}", source=OpenMeteoProvider.name) from exc
    return rows


def parse_daily(payload: dict[str, Any]) -> list[DailyForecast]:
    """Map the columnar daily block to DailyForecast rows, today first."""
    block = payload.get("daily") if isinstance(payload, dict) else None
    if not isinstance(block, dict) or not isinstance(block.get("time"), list):
        raise UpstreamMalformedError("response has no daily block", source=OpenMeteoProvider.name)

    rows = []
    try:
        for i, raw_date in enumerate(block["time"]):
            code = _optional_int(_column_value(block, "weathercode", i))
            condition = wmo_condition(code)
            rows.append(DailyForecast(
                date=date.fromisoformat(raw_date),
                max_temp=_column_value(block, "temperature_2m_max", i),
                min_temp=_column_value(block, "temperature_2m_min", i),
                precipitation_sum=_column_value(block, "precipitation_sum", i),
                max_wind_speed=_column_value(block, "wind_speed_10m_max", i),
                sunrise=_column_value(block, "sunrise", i),
                sunset=_column_value(block, "sunset", i),
                weather_code=code,
                icon=condition.icon,
                description=condition.description,
            ))
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise UpstreamMalformedError(f"unreadable daily series: {exc}", source=OpenMeteoProvider.name) from exc
    return rows


class OpenMeteoProvider:
    """
    Usage:
        provider = OpenMeteoProvider(url="https://api.open-meteo.com/v1/forecast", timeout_s=8.0)
        snapshot = await provider.fetch(location)
    """

    name = "open-meteo"

    def __init__(
        self,
        *,
        url: str,
        timeout_s: float,
        forecast_days: int = 7,
        clock: Clock = utcnow,
    ) -> None:
        self._url = url
        self._timeout_s = timeout_s
        self._forecast_days = forecast_days
        self._clock = clock

    async def fetch(self, location: Location) -> WeatherSnapshot:
        current = await self.fetch_current(location)
        hourly = await best_effort(
            lambda: self.fetch_hourly(location), provider=self.name, what="hourly", location=location
        )
        daily = await best_effort(
            lambda: self.fetch_daily(location), provider=self.name, what="daily", location=location
        )
        logger.debug(
            "open-meteo fetched %s: %d hourly, %d daily", location.name, len(hourly), len(daily)
        )
        return WeatherSnapshot(
            location=location.model_copy(update={"provider_key": None}),
            current=current,
            hourly=hourly,
            daily=daily,
        )

    async def fetch_current(self, location: Location) -> CurrentConditions:
        payload = await self._get(location, {"current_weather": "true"})
        return parse_current(payload)

    async def fetch_hourly(self, location: Location) -> tuple[HourlyForecast, ...]:
        # A single utc_offset_seconds is wrong across a DST switch; keep hourly in UTC
        payload = await self._get(location, {"hourly": ",".join(_HOURLY_FIELDS), "timezone": "GMT"})
        return select_hourly_window(parse_hourly(payload), self._clock())

    async def fetch_daily(self, location: Location) -> tuple[DailyForecast, ...]:
        payload = await self._get(location, {"daily": ",".join(_DAILY_FIELDS)})
        return tuple(parse_daily(payload))

    async def _get(self, location: Location, extra: dict[str, Any]) -> Any:
        params = {
            "latitude": location.lat,
            "longitude": location.lon,
            "timezone": "auto",
            "forecast_days": self._forecast_days,
            **extra,
        }
        return await get_json(self._url, params=params, timeout_s=self._timeout_s, source=self.name)
