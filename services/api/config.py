"""
Application configuration via pydantic-settings.
All config read from environment variables with sensible defaults for local dev.

Assembled once at import time; main.py hands plain values from here to each
resolver / provider constructor so nothing below the app layer reads the
environment directly.
"""

from pydantic_settings import BaseSettings
from pydantic import Field

# Values shipped in example .env files that mean "not configured"
_PLACEHOLDER_SUFFIX = "_here"


class Settings(BaseSettings):
    # App
    app_name: str = "weather-api"
    app_version: str = "0.1.0"
    environment: str = Field(default="development", pattern=r"^(development|staging|production)$")
    debug: bool = False
    port: int = 3001

    # CORS
    frontend_url: str = "http://localhost:3000"
    cors_origins: list[str] = Field(default=[])

    # Redis (empty -> in-process cache)
    redis_url: str = ""

    # Sentry
    sentry_dsn: str = ""
    sentry_traces_sample_rate: float = Field(default=0.1, ge=0.0, le=1.0)

    # Secondary forecast provider (AccuWeather). Empty key disables it.
    accuweather_api_key: str = ""

    # Summary LLM (Anthropic). Empty key means "skip AI", not an error.
    anthropic_api_key: str = ""
    summary_model: str = "claude-haiku-4-5"
    summary_max_tokens: int = 300
    summary_timeout_s: float = 10.0

    # Weather
    default_city: str = "Haifa"
    weather_language: str = "he"
    weather_forecast_days: int = Field(default=7, ge=2, le=16)
    weather_api_timeout_s: float = Field(default=8.0, gt=0.0)
    weather_cache_ttl_s: int = Field(default=1800, gt=0)  # 30 minutes
    weather_cache_max_entries: int = Field(default=512, gt=0)

    # Upstream base URLs
    open_meteo_forecast_url: str = "https://api.open-meteo.com/v1/forecast"
    open_meteo_geocoding_url: str = "https://geocoding-api.open-meteo.com/v1/search"
    accuweather_base_url: str = "http://dataservice.accuweather.com"

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}

    @property
    def accuweather_enabled(self) -> bool:
        return _is_real_key(self.accuweather_api_key)

    @property
    def llm_enabled(self) -> bool:
        return _is_real_key(self.anthropic_api_key)

    @property
    def allowed_origins(self) -> list[str]:
        origins = [self.frontend_url, *self.cors_origins]
        return list(dict.fromkeys(o for o in origins if o))


def _is_real_key(value: str) -> bool:
    key = (value or "").strip()
    return bool(key) and not key.lower().endswith(_PLACEHOLDER_SUFFIX)


settings = Settings()
