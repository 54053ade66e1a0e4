"""
Location resolution — free-text city name -> Location.

Two resolvers share one contract (`resolve(city) -> Location`):

  OpenMeteoGeocoder             Open-Meteo geocoding search, no credentials.
  AccuWeatherLocationResolver   AccuWeather city search (cheap path), then
                                Open-Meteo coordinates + AccuWeather
                                geoposition lookup (expensive path). Yields
                                the opaque location key AccuWeather forecasts
                                are keyed by.

Both backends fuzzy-match and localize, so a query can come back as a
different city altogether. reconcile_name() keeps the backend's display name
only when it still contains the query; otherwise the query is echoed back.
Coordinates and country are trusted either way.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Protocol

from services.api.weather.errors import (
    MisconfiguredError,
    NotFoundError,
    UpstreamMalformedError,
    UpstreamUnavailableError,
)
from services.api.weather.http import get_json
from services.api.weather.models import Location

logger = logging.getLogger(__name__)

_NAME_NOISE = re.compile(r"[\s\-.,]")


class LocationResolver(Protocol):
    async def resolve(self, city: str) -> Location: ...


def normalize_name(name: str | None) -> str:
    """'Tel-Aviv, Yafo' -> 'telavivyafo'"""
    return _NAME_NOISE.sub("", (name or "").lower())


def reconcile_name(display_name: str | None, query: str) -> str:
    """Return display_name if it contains the query (normalized), else the query."""
    norm_query = normalize_name(query)
    if not display_name:
        return query
    if norm_query and norm_query not in normalize_name(display_name):
        return query
    return display_name


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise UpstreamMalformedError(f"expected a coordinate, got {value!r}") from exc


class OpenMeteoGeocoder:
    """Open-Meteo geocoding search. "No results" is a NotFoundError, not a failure."""

    source = "open-meteo-geocoding"

    def __init__(self, *, url: str, language: str, timeout_s: float) -> None:
        self._url = url
        self._language = language
        self._timeout_s = timeout_s

    async def lookup(self, city: str) -> dict[str, Any] | None:
        """Return the best raw geocoding hit for city, or None."""
        payload = await get_json(
            self._url,
            params={"name": city, "count": 1, "language": self._language, "format": "json"},
            timeout_s=self._timeout_s,
            source=self.source,
        )
        if not isinstance(payload, dict):
            raise UpstreamMalformedError("geocoding response is not an object", source=self.source)
        results = payload.get("results") or []
        if not isinstance(results, list) or not results:
            return None
        hit = results[0]
        if not isinstance(hit, dict):
            raise UpstreamMalformedError("geocoding hit is not an object", source=self.source)
        return hit

    async def resolve(self, city: str) -> Location:
        hit = await self.lookup(city)
        if hit is None:
            raise NotFoundError(f'City "{city}" not found', source=self.source)

        location = Location(
            name=reconcile_name(hit.get("name"), city),
            country=hit.get("country") or "",
            lat=_float(hit.get("latitude")),
            lon=_float(hit.get("longitude")),
        )
        logger.debug("Geocoded %r -> %s (%.4f, %.4f)", city, location.name, location.lat, location.lon)
        return location


class AccuWeatherLocationResolver:
    """
    Resolves a city to an AccuWeather location key.

    Usage:
        resolver = AccuWeatherLocationResolver(
            api_key="...", base_url="http://dataservice.accuweather.com",
            language="he", timeout_s=8.0, geocoder=OpenMeteoGeocoder(...),
        )
        location = await resolver.resolve("Haifa")   # location.provider_key set
    """

    source = "accuweather-locations"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        language: str,
        timeout_s: float,
        geocoder: OpenMeteoGeocoder,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._language = language
        self._timeout_s = timeout_s
        self._geocoder = geocoder

    async def resolve(self, city: str) -> Location:
        if not self._api_key:
            raise MisconfiguredError(
                "AccuWeather API key not configured (ACCUWEATHER_API_KEY)", source=self.source
            )

        # Cheap path: AccuWeather's own search. Only transport / payload
        # failures fall through; anything else is a bug and propagates.
        try:
            location = await self._search(city)
        except (UpstreamUnavailableError, UpstreamMalformedError) as exc:
            logger.warning(
                "AccuWeather city search failed for %r (%s); trying geoposition lookup",
                city,
                exc,
            )
        else:
            if location is not None:
                return location
            logger.info("AccuWeather city search found no match for %r; trying geoposition lookup", city)

        return await self._resolve_by_geoposition(city)

    async def _search(self, city: str) -> Location | None:
        payload = await get_json(
            f"{self._base_url}/locations/v1/cities/search",
            params={"apikey": self._api_key, "q": city, "language": self._language},
            timeout_s=self._timeout_s,
            source=self.source,
        )
        if not isinstance(payload, list):
            raise UpstreamMalformedError("city search response is not a list", source=self.source)
        if not payload:
            return None

        hit = payload[0]
        if not isinstance(hit, dict) or not hit.get("Key"):
            raise UpstreamMalformedError("city search hit has no Key", source=self.source)
        geo = hit.get("GeoPosition")
        if not isinstance(geo, dict):
            raise UpstreamMalformedError("city search hit has no GeoPosition", source=self.source)
        return Location(
            name=reconcile_name(hit.get("LocalizedName") or hit.get("EnglishName"), city),
            country=_country_name(hit),
            lat=_float(geo.get("Latitude")),
            lon=_float(geo.get("Longitude")),
            provider_key=str(hit["Key"]),
        )

    async def _resolve_by_geoposition(self, city: str) -> Location:
        hit = await self._geocoder.lookup(city)
        if hit is None:
            raise NotFoundError(f'City "{city}" not found', source=self.source)

        lat = _float(hit.get("latitude"))
        lon = _float(hit.get("longitude"))
        payload = await get_json(
            f"{self._base_url}/locations/v1/cities/geoposition/search",
            params={"apikey": self._api_key, "q": f"{lat},{lon}", "language": self._language},
            timeout_s=self._timeout_s,
            source=self.source,
        )
        if not isinstance(payload, dict) or not payload.get("Key"):
            raise NotFoundError(f'City "{city}" not found', source=self.source)

        display = payload.get("LocalizedName") or payload.get("EnglishName") or hit.get("name")
        return Location(
            name=reconcile_name(display, city),
            country=_country_name(payload) or hit.get("country") or "",
            lat=lat,
            lon=lon,
            provider_key=str(payload["Key"]),
        )


def _country_name(hit: dict[str, Any]) -> str:
    country = hit.get("Country")
    if not isinstance(country, dict):
        return ""
    return country.get("LocalizedName") or country.get("EnglishName") or ""
