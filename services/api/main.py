"""
Weather API — normalized forecasts with provider fallback and AI summaries.

Entrypoint: uvicorn services.api.main:app --host 0.0.0.0 --port 3001
        or: python -m services.api.main
"""

import logging
import uuid
from contextlib import asynccontextmanager

import anthropic
import redis.asyncio as aioredis
import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from services.api.config import Settings, settings
from services.api.middleware.cors import setup_cors
from services.api.middleware.sentry import setup_sentry
from services.api.routers import health, weather
from services.api.weather.cache import RedisWeatherCache, WeatherCache
from services.api.weather.errors import WeatherError
from services.api.weather.geocoding import AccuWeatherLocationResolver, OpenMeteoGeocoder
from services.api.weather.providers import AccuWeatherProvider, OpenMeteoProvider
from services.api.weather.service import ForecastAggregator, ForecastSource
from services.api.weather.summary import SummaryGenerator

logger = logging.getLogger(__name__)


def build_sources(config: Settings) -> list[ForecastSource]:
    """Fallback chain in priority order. AccuWeather without a key stays in the
    chain and reports itself misconfigured."""
    geocoder = OpenMeteoGeocoder(
        url=config.open_meteo_geocoding_url,
        language=config.weather_language,
        timeout_s=config.weather_api_timeout_s,
    )
    accuweather_key = config.accuweather_api_key if config.accuweather_enabled else ""

    return [
        ForecastSource(
            name="open-meteo",
            resolver=geocoder,
            provider=OpenMeteoProvider(
                url=config.open_meteo_forecast_url,
                timeout_s=config.weather_api_timeout_s,
                forecast_days=config.weather_forecast_days,
            ),
        ),
        ForecastSource(
            name="accuweather",
            resolver=AccuWeatherLocationResolver(
                api_key=accuweather_key,
                base_url=config.accuweather_base_url,
                language=config.weather_language,
                timeout_s=config.weather_api_timeout_s,
                geocoder=geocoder,
            ),
            provider=AccuWeatherProvider(
                api_key=accuweather_key,
                base_url=config.accuweather_base_url,
                language=config.weather_language,
                timeout_s=config.weather_api_timeout_s,
            ),
        ),
    ]


def build_summary_generator(config: Settings) -> SummaryGenerator:
    client = None
    if config.llm_enabled:
        client = anthropic.AsyncAnthropic(api_key=config.anthropic_api_key)
    return SummaryGenerator(
        client,
        model=config.summary_model,
        max_tokens=config.summary_max_tokens,
        timeout_s=config.summary_timeout_s,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    setup_sentry()

    # Redis is optional: without it the cache lives in-process
    redis_client = None
    if settings.redis_url:
        try:
            redis_client = aioredis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
            )
            await redis_client.ping()
        except Exception as e:
            logger.warning("Redis unavailable, using in-process weather cache: %s", e)
            redis_client = None

    if redis_client is not None:
        cache = RedisWeatherCache(redis_client)
    else:
        cache = WeatherCache(max_entries=settings.weather_cache_max_entries)

    app.state.redis = redis_client
    app.state.settings = settings
    app.state.forecast_aggregator = ForecastAggregator(
        sources=build_sources(settings),
        cache=cache,
        ttl_seconds=settings.weather_cache_ttl_s,
    )
    app.state.summary_generator = build_summary_generator(settings)

    logger.info(
        "Weather API ready: sources=%s accuweather=%s llm=%s cache=%s",
        ",".join(app.state.forecast_aggregator.source_names),
        "on" if settings.accuweather_enabled else "off",
        "on" if settings.llm_enabled else "off",
        "redis" if redis_client is not None else "memory",
    )

    yield

    if redis_client:
        await redis_client.aclose()


app = FastAPI(
    title="Weather API",
    version=settings.app_version,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# -- Middleware (order matters: last added = outermost in Starlette) --

app.include_router(health.router)
app.include_router(weather.router)

# CORS (needs to be outermost to handle preflight)
setup_cors(app)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# -- Exception Handlers --

def _error_response(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    request_id = getattr(request.state, "request_id", str(uuid.uuid4()))
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {"code": code, "message": message},
            "requestId": request_id,
        },
        headers={"X-Request-ID": request_id},
    )


@app.exception_handler(WeatherError)
async def weather_error_handler(request: Request, exc: WeatherError) -> JSONResponse:
    return _error_response(request, exc.status_code, exc.code, exc.message)


@app.exception_handler(404)
async def not_found_handler(request: Request, exc) -> JSONResponse:
    return _error_response(request, 404, "NOT_FOUND", "Resource not found.")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(request, 422, "VALIDATION_ERROR", str(exc.errors()))


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc) -> JSONResponse:
    logger.error("Unhandled error on %s", request.url.path, exc_info=exc)
    return _error_response(request, 500, "INTERNAL_ERROR", "An unexpected error occurred.")


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
