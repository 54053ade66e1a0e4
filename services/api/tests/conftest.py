"""
Shared test fixtures for the weather API test suite.

Provides:
- async FastAPI test client (no upstream services needed)
- factory functions for the canonical weather models
- canned Open-Meteo / AccuWeather payloads
- a scripted get_json stand-in keyed by URL fragment
"""

import os
from datetime import date, datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure test env vars before any app imports
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("SENTRY_DSN", "")
os.environ.setdefault("ACCUWEATHER_API_KEY", "")
os.environ.setdefault("ANTHROPIC_API_KEY", "")

from services.api.weather.models import (  # noqa: E402
    CurrentConditions,
    DailyForecast,
    HourlyForecast,
    Location,
    Summary,
    WeatherSnapshot,
)

NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# FastAPI test client — aggregator + summary generator are mocks
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_aggregator():
    aggregator = MagicMock()
    aggregator.get_weather = AsyncMock(return_value=make_snapshot())
    aggregator.source_names = ["open-meteo", "accuweather"]
    return aggregator


@pytest.fixture
def mock_summary_generator():
    generator = MagicMock()
    generator.summarize = AsyncMock(return_value=make_summary())
    return generator


@pytest.fixture
async def app(mock_aggregator, mock_summary_generator):
    """Create a test FastAPI app with mocked dependencies."""
    from services.api.config import settings
    from services.api.main import app as _app

    _app.state.redis = None
    _app.state.settings = settings
    _app.state.forecast_aggregator = mock_aggregator
    _app.state.summary_generator = mock_summary_generator
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP client bound to the test app."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Factory functions — one per canonical model
# ---------------------------------------------------------------------------

def make_location(**overrides: Any) -> Location:
    base = {"name": "Haifa", "country": "Israel", "lat": 32.794, "lon": 34.9896}
    base.update(overrides)
    return Location(**base)


def make_current(**overrides: Any) -> CurrentConditions:
    base = {
        "temperature": 22.0,
        "wind_speed": 12.5,
        "wind_direction": 270.0,
        "weather_code": 1,
        "icon": "🌤️",
        "description": "בהיר בעיקר",
        "is_day": True,
    }
    base.update(overrides)
    return CurrentConditions(**base)


def make_hourly(time: datetime | None = None, **overrides: Any) -> HourlyForecast:
    base = {
        "time": time or NOW,
        "temperature": 21.0,
        "feels_like": 20.5,
        "humidity": 60,
        "wind_speed": 10.0,
        "precipitation_probability": 5,
        "weather_code": 0,
        "icon": "☀️",
        "description": "שמיים בהירים",
    }
    base.update(overrides)
    return HourlyForecast(**base)


def make_daily(day: date | None = None, **overrides: Any) -> DailyForecast:
    base = {
        "date": day or NOW.date(),
        "max_temp": 26.0,
        "min_temp": 18.0,
        "precipitation_sum": 0.0,
        "max_wind_speed": 20.0,
        "sunrise": "2026-10-19T06:12",
        "sunset": "2026-10-19T17:35",
        "weather_code": 1,
        "icon": "🌤️",
        "description": "בהיר בעיקר",
    }
    base.update(overrides)
    return DailyForecast(**base)


def make_snapshot(days: int = 2, hours: int = 3, **overrides: Any) -> WeatherSnapshot:
    base = {
        "location": make_location(),
        "current": make_current(),
        "hourly": tuple(make_hourly(NOW + timedelta(hours=i)) for i in range(hours)),
        "daily": tuple(make_daily(NOW.date() + timedelta(days=i)) for i in range(days)),
    }
    base.update(overrides)
    return WeatherSnapshot(**base)


def make_summary(**overrides: Any) -> Summary:
    base = {
        "today": "היום נעים ובהיר.",
        "tomorrow": "מחר דומה.",
        "clothing": "לבוש קל.",
    }
    base.update(overrides)
    return Summary(**base)


# ---------------------------------------------------------------------------
# Canned upstream payloads
# ---------------------------------------------------------------------------

def open_meteo_geocoding(name: str = "Haifa", **overrides: Any) -> dict:
    hit = {
        "name": name,
        "latitude": 32.81841,
        "longitude": 34.9885,
        "country": "Israel",
        "timezone": "Asia/Jerusalem",
    }
    hit.update(overrides)
    return {"results": [hit]}


def open_meteo_current(code: int = 1, temperature: float = 22.4) -> dict:
    return {
        "utc_offset_seconds": 10800,
        "current_weather": {
            "temperature": temperature,
            "windspeed": 11.2,
            "winddirection": 250,
            "weathercode": code,
            "is_day": 1,
            "time": "2026-10-19T12:00",
        },
    }


def open_meteo_hourly(start: datetime, hours: int, utc_offset_seconds: int = 0) -> dict:
    """Columnar hourly block starting at `start` (naive local times in the payload)."""
    local = start + timedelta(seconds=utc_offset_seconds)
    times = [(local + timedelta(hours=i)).strftime("%Y-%m-%dT%H:%M") for i in range(hours)]
    return {
        "utc_offset_seconds": utc_offset_seconds,
        "hourly": {
            "time": times,
            "temperature_2m": [20.0 + (i % 5) for i in range(hours)],
            "relative_humidity_2m": [60] * hours,
            "wind_speed_10m": [10.0] * hours,
            "weathercode": [0] * hours,
            "precipitation_probability": [0] * hours,
            "apparent_temperature": [19.5] * hours,
        },
    }


def open_meteo_daily(days: int = 7, start: date | None = None) -> dict:
    start = start or NOW.date()
    dates = [(start + timedelta(days=i)).isoformat() for i in range(days)]
    return {
        "utc_offset_seconds": 10800,
        "daily": {
            "time": dates,
            "temperature_2m_max": [27.0] * days,
            "temperature_2m_min": [19.0] * days,
            "weathercode": [61] + [1] * (days - 1),
            "precipitation_sum": [3.2] + [0.0] * (days - 1),
            "wind_speed_10m_max": [25.0] * days,
            "sunrise": [f"{d}T06:12" for d in dates],
            "sunset": [f"{d}T17:35" for d in dates],
        },
    }


def open_meteo_forecast(code: int = 1, temperature: float = 22.4, hourly_start: datetime = NOW) -> dict:
    """One payload carrying current, hourly and daily blocks; each parser reads its own."""
    payload = open_meteo_current(code=code, temperature=temperature)
    payload.update(open_meteo_hourly(hourly_start, 48))
    payload.update({k: v for k, v in open_meteo_daily().items() if k == "daily"})
    payload["utc_offset_seconds"] = 0
    return payload


UPSTREAM_GEOCODING = "geocoding-api"
UPSTREAM_OPEN_METEO = "/v1/forecast"
UPSTREAM_ACCU_SEARCH = "/cities/search"
UPSTREAM_ACCU_GEOPOSITION = "/geoposition/search"
UPSTREAM_ACCU_CURRENT = "/currentconditions/"
UPSTREAM_ACCU_HOURLY = "/hourly/"
UPSTREAM_ACCU_DAILY = "/daily/"


def accuweather_city_search(key: str = "213181", name: str = "Haifa") -> list:
    return [{
        "Key": key,
        "LocalizedName": name,
        "EnglishName": name,
        "Country": {"ID": "IL", "LocalizedName": "Israel", "EnglishName": "Israel"},
        "GeoPosition": {"Latitude": 32.8, "Longitude": 34.99},
    }]


def accuweather_current(text: str = "Partly sunny", celsius: float = 23.0) -> list:
    return [{
        "WeatherText": text,
        "WeatherIcon": 3,
        "IsDayTime": True,
        "Temperature": {
            "Metric": {"Value": celsius, "Unit": "C"},
            "Imperial": {"Value": round(celsius * 9 / 5 + 32), "Unit": "F"},
        },
        "Wind": {
            "Direction": {"Degrees": 270},
            "Speed": {"Metric": {"Value": 14.8, "Unit": "km/h"}, "Imperial": {"Value": 9.2, "Unit": "mi/h"}},
        },
    }]


def accuweather_hourly(start: datetime, hours: int = 12, phrase: str | None = "Sunny") -> list:
    rows = []
    for i in range(hours):
        row = {
            "DateTime": (start + timedelta(hours=i)).isoformat(),
            "Temperature": {"Value": 70, "Unit": "F"},
            "RelativeHumidity": 55,
            "PrecipitationProbability": 10,
            "Wind": {"Speed": {"Value": 10.0, "Unit": "mi/h"}},
        }
        if phrase is not None:
            row["IconPhrase"] = phrase
        rows.append(row)
    return rows


def accuweather_daily(days: int = 5, start: date | None = None) -> dict:
    start = start or NOW.date()
    return {
        "DailyForecasts": [
            {
                "Date": f"{(start + timedelta(days=i)).isoformat()}T07:00:00+03:00",
                "Temperature": {
                    "Minimum": {"Value": 18.0, "Unit": "C"},
                    "Maximum": {"Value": 27.0, "Unit": "C"},
                },
                "Day": {
                    "IconPhrase": "Showers" if i == 0 else "Sunny",
                    "TotalLiquid": {"Value": 2.0, "Unit": "mm"},
                    "Wind": {"Speed": {"Value": 20.0, "Unit": "km/h"}},
                },
                "Night": {"IconPhrase": "Clear", "TotalLiquid": {"Value": 0.5, "Unit": "mm"}},
                "Sun": {"Rise": "2026-10-19T06:12:00+03:00", "Set": "2026-10-19T17:35:00+03:00"},
            }
            for i in range(days)
        ]
    }


class ScriptedUpstream:
    """
    Stand-in for weather.http.get_json. Routes by URL fragment, records calls.

    routes: {"fragment": payload | Exception}
    The longest matching fragment wins, so "/geoposition/search" beats "/search".
    """

    def __init__(self, routes: dict[str, Any]) -> None:
        self.routes = dict(routes)
        self.calls: list[tuple[str, dict | None]] = []

    async def __call__(self, url: str, *, params=None, timeout_s: float, source: str) -> Any:
        self.calls.append((url, params))
        matches = [f for f in self.routes if f in url]
        if not matches:
            raise AssertionError(f"unexpected upstream call: {url}")
        result = self.routes[max(matches, key=len)]
        if isinstance(result, Exception):
            raise result
        return result

    def count(self, fragment: str) -> int:
        return sum(1 for url, _ in self.calls if fragment in url)
