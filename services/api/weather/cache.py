"""
Weather result cache — normalized WeatherSnapshots keyed by lowercase city.

TTL:        30 minutes (settings.weather_cache_ttl_s), one window only
Negative:   none, failed lookups are never cached

Two backends with the same async interface (get / set / invalidate):

  WeatherCache       in-process dict, lazy expiry on read, LRU-bounded.
  RedisWeatherCache  JSON in Redis under weather:{key} with EX ttl, shared
                     across workers. Redis errors degrade to misses.

Entries are never mutated. A write swaps in a complete new CacheEntry, so a
concurrent reader sees either the old entry, the new one, or nothing.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from pydantic import ValidationError

from services.api.weather.models import WeatherSnapshot

logger = logging.getLogger(__name__)

_DEFAULT_MAX_ENTRIES = 512


class ResultCache(Protocol):
    async def get(self, key: str) -> WeatherSnapshot | None: ...

    async def set(self, key: str, value: WeatherSnapshot, ttl_seconds: int) -> None: ...

    async def invalidate(self, key: str) -> None: ...


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: WeatherSnapshot
    expires_at: float  # monotonic seconds


class WeatherCache:
    """
    In-process TTL cache with an LRU bound.

    Usage:
        cache = WeatherCache(max_entries=512)
        snapshot = await cache.get("haifa")
        if snapshot is None:
            snapshot = await fetch(...)
            await cache.set("haifa", snapshot, ttl_seconds=1800)
    """

    def __init__(
        self,
        max_entries: int = _DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._max_entries = max_entries
        self._clock = clock

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> WeatherSnapshot | None:
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Weather cache miss: %s", key)
            return None
        if entry.expires_at <= self._clock():
            # Only drop it if nobody replaced it in the meantime
            if self._entries.get(key) is entry:
                del self._entries[key]
            logger.debug("Weather cache expired: %s", key)
            return None
        self._entries.move_to_end(key)
        logger.debug("Weather cache hit: %s", key)
        return entry.value

    async def set(self, key: str, value: WeatherSnapshot, ttl_seconds: int) -> None:
        self._entries[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl_seconds)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Weather cache evicted (LRU): %s", evicted)
        logger.debug("Weather cached: key=%s ttl=%ds", key, ttl_seconds)

    async def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)


def _redis_key(key: str) -> str:
    return f"weather:{key}"


class RedisWeatherCache:
    """
    Redis-backed weather cache.

    Usage:
        cache = RedisWeatherCache(redis_client)
    """

    def __init__(self, redis: Any) -> None:
        """
        Args:
            redis: An async Redis client (redis.asyncio compatible).
                   May be None; all operations degrade gracefully to cache misses.
        """
        self._redis = redis

    async def get(self, key: str) -> WeatherSnapshot | None:
        if self._redis is None:
            return None

        redis_key = _redis_key(key)
        try:
            raw = await self._redis.get(redis_key)
        except Exception:
            logger.warning("Weather cache GET failed for key=%s", redis_key, exc_info=True)
            return None

        if raw is None:
            logger.debug("Weather cache miss: %s", redis_key)
            return None
        try:
            snapshot = WeatherSnapshot.model_validate_json(raw)
        except ValidationError:
            logger.warning("Weather cache entry unreadable, ignoring: %s", redis_key)
            return None
        logger.debug("Weather cache hit: %s", redis_key)
        return snapshot

    async def set(self, key: str, value: WeatherSnapshot, ttl_seconds: int) -> None:
        if self._redis is None:
            return

        redis_key = _redis_key(key)
        try:
            await self._redis.set(redis_key, value.model_dump_json(by_alias=True), ex=ttl_seconds)
            logger.debug("Weather cached: key=%s ttl=%ds", redis_key, ttl_seconds)
        except Exception:
            logger.warning("Weather cache SET failed for key=%s", redis_key, exc_info=True)

    async def invalidate(self, key: str) -> None:
        """Force-evict a city's cache entry (useful in tests)."""
        if self._redis is None:
            return

        redis_key = _redis_key(key)
        try:
            await self._redis.delete(redis_key)
            logger.debug("Weather cache invalidated: %s", redis_key)
        except Exception:
            logger.warning("Weather cache DELETE failed for key=%s", redis_key, exc_info=True)
