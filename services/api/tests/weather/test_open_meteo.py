"""
Tests for the Open-Meteo provider.

Coverage targets:
  - Columnar payload -> canonical rows
  - Hourly window: [now, now+24h], chronological, at most 24
  - Current is mandatory; hourly / daily degrade to ()
  - Resulting location carries no provider key
"""

from __future__ import annotations

from datetime import timedelta, timezone

import pytest

from services.api.tests.conftest import (
    NOW,
    UPSTREAM_OPEN_METEO,
    make_hourly,
    make_location,
    open_meteo_current,
    open_meteo_daily,
    open_meteo_forecast,
    open_meteo_hourly,
)
from services.api.weather.errors import UpstreamMalformedError, UpstreamUnavailableError
from services.api.weather.providers.base import select_hourly_window
from services.api.weather.providers.open_meteo import (
    OpenMeteoProvider,
    parse_current,
    parse_daily,
    parse_hourly,
)


@pytest.fixture
def provider():
    return OpenMeteoProvider(
        url="https://api.open-meteo.com/v1/forecast", timeout_s=5.0, clock=lambda: NOW
    )


class TestParseCurrent:
    def test_maps_fields(self):
        current = parse_current(open_meteo_current(code=61, temperature=17.3))
        assert current.temperature == 17.3
        assert current.wind_speed == 11.2
        assert current.wind_direction == 250
        assert current.weather_code == 61
        assert current.description == "גשם קל"
        assert current.is_day is True

    def test_unknown_code_gets_placeholder(self):
        current = parse_current(open_meteo_current(code=42))
        assert current.description == "לא ידוע"

    def test_missing_block_is_malformed(self):
        with pytest.raises(UpstreamMalformedError):
            parse_current({"hourly": {}})


class TestParseHourly:
    def test_attaches_utc_offset(self):
        rows = parse_hourly(open_meteo_hourly(NOW, 2, utc_offset_seconds=10800))
        assert rows[0].time.utcoffset() == timedelta(hours=3)
        # Local 12:00 at +03:00 is 09:00 UTC
        assert rows[0].time.astimezone(timezone.utc) == NOW

    def test_short_columns_fill_none(self):
        payload = open_meteo_hourly(NOW, 3)
        payload["hourly"]["temperature_2m"] = [20.0]
        rows = parse_hourly(payload)
        assert rows[0].temperature == 20.0
        assert rows[2].temperature is None

    def test_missing_block_is_malformed(self):
        with pytest.raises(UpstreamMalformedError):
            parse_hourly({"current_weather": {}})


class TestParseDaily:
    def test_maps_fields(self):
        rows = parse_daily(open_meteo_daily(days=7))
        assert len(rows) == 7
        assert rows[0].date == NOW.date()
        assert rows[0].max_temp == 27.0
        assert rows[0].min_temp == 19.0
        assert rows[0].precipitation_sum == 3.2
        assert rows[0].weather_code == 61
        assert rows[0].sunrise == f"{NOW.date()}T06:12"

    def test_bad_date_is_malformed(self):
        payload = open_meteo_daily(days=1)
        payload["daily"]["time"] = ["not-a-date"]
        with pytest.raises(UpstreamMalformedError):
            parse_daily(payload)


class TestHourlyWindow:
    def test_48_samples_from_an_hour_ago(self):
        samples = [make_hourly(NOW - timedelta(hours=1) + timedelta(hours=i)) for i in range(48)]
        window = select_hourly_window(samples, NOW)
        assert len(window) == 24
        assert window[0].time == NOW
        assert all(NOW <= s.time <= NOW + timedelta(hours=24) for s in window)

    def test_chronological_even_if_input_is_not(self):
        samples = [make_hourly(NOW + timedelta(hours=h)) for h in (5, 1, 3)]
        window = select_hourly_window(samples, NOW)
        assert [s.time for s in window] == sorted(s.time for s in samples)

    def test_all_past_samples_give_empty_window(self):
        samples = [make_hourly(NOW - timedelta(hours=h)) for h in range(1, 5)]
        assert select_hourly_window(samples, NOW) == ()

    def test_window_end_is_inclusive(self):
        samples = [make_hourly(NOW + timedelta(hours=24)), make_hourly(NOW + timedelta(hours=25))]
        assert len(select_hourly_window(samples, NOW)) == 1


class TestOpenMeteoProviderFetch:
    @pytest.mark.asyncio
    async def test_full_snapshot(self, provider, upstream):
        upstream.routes[UPSTREAM_OPEN_METEO] = open_meteo_forecast(
            hourly_start=NOW - timedelta(hours=1)
        )
        snapshot = await provider.fetch(make_location())

        assert snapshot.location.name == "Haifa"
        assert snapshot.current.weather_code == 1
        assert len(snapshot.hourly) == 24
        assert snapshot.hourly[0].time == NOW
        assert len(snapshot.daily) == 7
        assert upstream.count(UPSTREAM_OPEN_METEO) == 3

    @pytest.mark.asyncio
    async def test_request_params(self, provider, upstream):
        upstream.routes[UPSTREAM_OPEN_METEO] = open_meteo_forecast()
        await provider.fetch(make_location(lat=32.0, lon=35.0))
        params = [p for _, p in upstream.calls]
        assert params[0]["current_weather"] == "true"
        assert "temperature_2m" in params[1]["hourly"]
        assert "temperature_2m_max" in params[2]["daily"]
        assert all(p["latitude"] == 32.0 and p["timezone"] == "auto" for p in params)

    @pytest.mark.asyncio
    async def test_drops_provider_key(self, provider, upstream):
        upstream.routes[UPSTREAM_OPEN_METEO] = open_meteo_forecast()
        snapshot = await provider.fetch(make_location(provider_key="213181"))
        assert snapshot.location.provider_key is None

    @pytest.mark.asyncio
    async def test_current_failure_raises(self, provider, upstream):
        upstream.routes[UPSTREAM_OPEN_METEO] = UpstreamUnavailableError("503")
        with pytest.raises(UpstreamUnavailableError):
            await provider.fetch(make_location())

    @pytest.mark.asyncio
    async def test_missing_series_degrade_to_empty(self, provider, upstream):
        # current_weather only: hourly and daily parsers find nothing
        upstream.routes[UPSTREAM_OPEN_METEO] = open_meteo_current()
        snapshot = await provider.fetch(make_location())
        assert snapshot.current.temperature == 22.4
        assert snapshot.hourly == ()
        assert snapshot.daily == ()


class TestMalformedSeries:
    def test_non_list_column_reads_as_none(self):
        payload = open_meteo_hourly(NOW, 2)
        payload["hourly"]["temperature_2m"] = "n/a"
        rows = parse_hourly(payload)
        assert [r.temperature for r in rows] == [None, None]

    def test_bad_utc_offset_is_malformed(self):
        payload = open_meteo_hourly(NOW, 2)
        payload["utc_offset_seconds"] = "n/a"
        with pytest.raises(UpstreamMalformedError):
            parse_hourly(payload)

    def test_non_string_time_is_malformed(self):
        payload = open_meteo_hourly(NOW, 1)
        payload["hourly"]["time"] = [{"t": 1}]
        with pytest.raises(UpstreamMalformedError):
            parse_hourly(payload)

    def test_non_string_date_is_malformed(self):
        payload = open_meteo_daily(days=1)
        payload["daily"]["time"] = [None]
        with pytest.raises(UpstreamMalformedError):
            parse_daily(payload)

    @pytest.mark.asyncio
    async def test_bad_utc_offset_degrades_hourly_only(self, provider, upstream):
        payload = open_meteo_forecast()
        payload["utc_offset_seconds"] = "n/a"
        upstream.routes[UPSTREAM_OPEN_METEO] = payload

        snapshot = await provider.fetch(make_location())

        assert snapshot.hourly == ()
        assert len(snapshot.daily) == 7
        assert snapshot.current.temperature == 22.4

    @pytest.mark.asyncio
    async def test_hourly_requested_in_gmt(self, provider, upstream):
        upstream.routes[UPSTREAM_OPEN_METEO] = open_meteo_forecast()
        await provider.fetch(make_location())
        params = [p for _, p in upstream.calls]
        assert params[1]["timezone"] == "GMT"
        assert params[0]["timezone"] == "auto"
        assert params[2]["timezone"] == "auto"
