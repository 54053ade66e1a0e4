"""
Typed failures raised by the weather package.

  NotFoundError             no geocoding match on any reachable backend
  MisconfiguredError        a required credential is absent
  UpstreamUnavailableError  transport error, timeout or non-2xx from a backend
  UpstreamMalformedError    2xx response missing required fields

Each class carries the HTTP status and envelope code the API layer reports.
"""

from __future__ import annotations


class WeatherError(Exception):
    status_code: int = 500
    code: str = "WEATHER_ERROR"

    def __init__(self, message: str, *, source: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.source = source


class NotFoundError(WeatherError):
    status_code = 404
    code = "CITY_NOT_FOUND"


class MisconfiguredError(WeatherError):
    status_code = 503
    code = "PROVIDER_MISCONFIGURED"


class UpstreamUnavailableError(WeatherError):
    status_code = 502
    code = "UPSTREAM_UNAVAILABLE"


class UpstreamMalformedError(WeatherError):
    status_code = 502
    code = "UPSTREAM_MALFORMED"
