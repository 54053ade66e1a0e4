"""
ForecastAggregator — city name -> WeatherSnapshot through an ordered
fallback chain of forecast sources, with a write-through cache.

Order of operations for get_weather(city):
  1. Cache (key = city.lower()). A live entry is returned with no upstream calls.
  2. Sources in fixed order, one at a time, never in parallel:
       Open-Meteo   (geocoding + WMO-coded forecast)
       AccuWeather  (own location search + phrase-based forecast)
     A source succeeds when its resolver returns a Location and its provider
     returns current conditions. Hourly/daily may be empty (degraded) and
     still count as success.
  3. First success is cached (fixed TTL) and returned.
  4. All sources failed:
       every source misconfigured           -> MisconfiguredError
       every attempted source failed to
       resolve the city                     -> NotFoundError
       anything else                        -> UpstreamUnavailableError

Only WeatherError is treated as a source failure. Anything else is a bug and
propagates.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Sequence

from services.api.weather.cache import ResultCache
from services.api.weather.errors import (
    MisconfiguredError,
    NotFoundError,
    UpstreamUnavailableError,
    WeatherError,
)
from services.api.weather.geocoding import LocationResolver
from services.api.weather.models import WeatherSnapshot
from services.api.weather.providers.base import ForecastProvider

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60


@dataclass(frozen=True)
class ForecastSource:
    """One link in the fallback chain: a resolver paired with the provider it feeds."""
    name: str
    resolver: LocationResolver
    provider: ForecastProvider


@dataclass(frozen=True)
class SourceFailure:
    source: str
    error: WeatherError
    during_resolution: bool


def cache_key(city: str) -> str:
    return city.lower()


class ForecastAggregator:
    """
    Usage:
        aggregator = ForecastAggregator(
            sources=[open_meteo_source, accuweather_source],
            cache=WeatherCache(),
        )
        snapshot = await aggregator.get_weather("Haifa")
    """

    def __init__(
        self,
        sources: Sequence[ForecastSource],
        cache: ResultCache,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        """
        Args:
            sources:     Fallback chain, tried in the given order.
            cache:       WeatherCache or RedisWeatherCache.
            ttl_seconds: Lifetime of a cached snapshot.
        """
        if not sources:
            raise ValueError("ForecastAggregator needs at least one source")
        self._sources = tuple(sources)
        self._cache = cache
        self._ttl_seconds = ttl_seconds

    @property
    def source_names(self) -> list[str]:
        return [s.name for s in self._sources]

    async def get_weather(self, city: str, use_cache: bool = True) -> WeatherSnapshot:
        key = cache_key(city)

        if use_cache:
            cached = await self._cache.get(key)
            if cached is not None:
                return cached

        failures: list[SourceFailure] = []
        for source in self._sources:
            start = time.monotonic()
            try:
                location = await source.resolver.resolve(city)
            except WeatherError as exc:
                failures.append(SourceFailure(source.name, exc, during_resolution=True))
                logger.warning("%s could not resolve %r: %s", source.name, city, exc)
                continue

            try:
                snapshot = await source.provider.fetch(location)
            except WeatherError as exc:
                failures.append(SourceFailure(source.name, exc, during_resolution=False))
                logger.warning("%s could not serve %r: %s", source.name, city, exc)
                continue

            latency_ms = int((time.monotonic() - start) * 1000)
            if failures:
                logger.info(
                    "Weather for %r served by fallback source %s in %dms (after: %s)",
                    city,
                    source.name,
                    latency_ms,
                    ", ".join(f.source for f in failures),
                )
            else:
                logger.info("Weather for %r served by %s in %dms", city, source.name, latency_ms)

            await self._cache.set(key, snapshot, self._ttl_seconds)
            return snapshot

        raise self._exhausted(city, failures)

    @staticmethod
    def _exhausted(city: str, failures: list[SourceFailure]) -> WeatherError:
        detail = "; ".join(f"{f.source}: {f.error}" for f in failures)
        attempted = [f for f in failures if not isinstance(f.error, MisconfiguredError)]

        if not attempted:
            error: WeatherError = MisconfiguredError(
                f'No weather provider is configured to serve "{city}"'
            )
        elif all(f.during_resolution for f in attempted):
            error = NotFoundError(f'City "{city}" not found')
        else:
            error = UpstreamUnavailableError(f'No weather provider could serve "{city}"')

        logger.error("All weather sources failed for %r -> %s (%s)", city, error.code, detail)
        error.__cause__ = failures[-1].error if failures else None
        return error
