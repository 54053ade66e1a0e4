"""Weather package fixtures — every upstream call goes through ScriptedUpstream."""

import pytest

from services.api.tests.conftest import ScriptedUpstream

_GET_JSON_TARGETS = (
    "services.api.weather.geocoding.get_json",
    "services.api.weather.providers.open_meteo.get_json",
    "services.api.weather.providers.accuweather.get_json",
)


@pytest.fixture
def upstream(monkeypatch):
    """
    Usage:
        upstream.routes[UPSTREAM_GEOCODING] = open_meteo_geocoding()
        ...
        assert upstream.count(UPSTREAM_OPEN_METEO) == 3
    """
    scripted = ScriptedUpstream({})
    for target in _GET_JSON_TARGETS:
        monkeypatch.setattr(target, scripted)
    return scripted
