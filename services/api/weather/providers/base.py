"""
Shared provider plumbing: the adapter contract, hourly windowing, and the
best-effort wrapper for forecast sub-fetches.

A provider fetch is three independent sub-fetches against one backend:
  current  mandatory: failure raises and the aggregator moves on
  hourly   best-effort: failure degrades to ()
  daily    best-effort: failure degrades to ()
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Iterable, Protocol, TypeVar

from services.api.weather.errors import WeatherError
from services.api.weather.models import HourlyForecast, Location, WeatherSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")

HOURLY_WINDOW = timedelta(hours=24)
MAX_HOURLY_SAMPLES = 24

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ForecastProvider(Protocol):
    name: str

    async def fetch(self, location: Location) -> WeatherSnapshot: ...


def select_hourly_window(
    samples: Iterable[HourlyForecast], now: datetime
) -> tuple[HourlyForecast, ...]:
    """
    Keep samples timestamped within [now, now + 24h], chronological, at most 24.

    Samples must carry timezone-aware times; `now` must be aware too.
    """
    end = now + HOURLY_WINDOW
    in_window = [s for s in samples if now <= s.time <= end]
    in_window.sort(key=lambda s: s.time)
    return tuple(in_window[:MAX_HOURLY_SAMPLES])


async def best_effort(
    fetch: Callable[[], Awaitable[tuple[T, ...]]],
    *,
    provider: str,
    what: str,
    location: Location,
) -> tuple[T, ...]:
    """Run a forecast sub-fetch; a WeatherError degrades it to an empty tuple."""
    try:
        return await fetch()
    except WeatherError as exc:
        logger.warning(
            "%s %s forecast unavailable for %s (%s); continuing without it",
            provider,
            what,
            location.name,
            exc,
        )
        return ()
