"""
Weather endpoints — GET /weather, GET /weather/summary

Both return the normalized snapshot as the response body (camelCase JSON).
Failures raise WeatherError and are rendered by the envelope handler in main.
"""

from fastapi import APIRouter, Query, Request

from services.api.weather.models import WeatherSnapshot, WeatherSummaryResponse

router = APIRouter(prefix="/weather", tags=["weather"])


def _city_or_default(request: Request, city: str | None) -> str:
    city = (city or "").strip()
    return city or request.app.state.settings.default_city


@router.get("", response_model=WeatherSnapshot)
async def get_weather(
    request: Request,
    city: str | None = Query(None, max_length=100, description="City name (default: Haifa)"),
) -> WeatherSnapshot:
    aggregator = request.app.state.forecast_aggregator
    return await aggregator.get_weather(_city_or_default(request, city))


@router.get("/summary", response_model=WeatherSummaryResponse)
async def get_weather_summary(
    request: Request,
    city: str | None = Query(None, max_length=100, description="City name (default: Haifa)"),
) -> WeatherSummaryResponse:
    aggregator = request.app.state.forecast_aggregator
    generator = request.app.state.summary_generator

    snapshot = await aggregator.get_weather(_city_or_default(request, city))
    summary = await generator.summarize(snapshot)
    return WeatherSummaryResponse(**dict(snapshot), ai_summary=summary)
