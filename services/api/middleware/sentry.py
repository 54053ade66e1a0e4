"""
Sentry instrumentation for the weather API.
Server-side only. Strips sensitive headers and provider keys before sending.
"""

from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from services.api.config import settings

SENSITIVE_HEADERS = {"authorization", "cookie", "set-cookie", "x-api-key"}
# AccuWeather takes its key as a query parameter
SENSITIVE_PARAMS = ("apikey=",)


def _scrub_headers(headers: Any) -> None:
    if isinstance(headers, dict):
        for key in list(headers.keys()):
            if key.lower() in SENSITIVE_HEADERS:
                headers[key] = "[FILTERED]"


def _scrub_url(url: Any) -> Any:
    if not isinstance(url, str) or "?" not in url:
        return url
    base, query = url.split("?", 1)
    parts = [
        p.split("=", 1)[0] + "=[FILTERED]" if p.lower().startswith(SENSITIVE_PARAMS) else p
        for p in query.split("&")
    ]
    return f"{base}?{'&'.join(parts)}"


def _strip_sensitive_data(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    """before_send hook: strip auth headers, cookies and apikey query params."""
    if "breadcrumbs" in event:
        for breadcrumb in event["breadcrumbs"].get("values", []):
            data = breadcrumb.get("data", {})
            if isinstance(data, dict):
                _scrub_headers(data.get("headers", {}))
                if "url" in data:
                    data["url"] = _scrub_url(data["url"])
    request = event.get("request", {})
    if isinstance(request, dict):
        _scrub_headers(request.get("headers", {}))
        if "url" in request:
            request["url"] = _scrub_url(request["url"])
    return event


def setup_sentry() -> None:
    if not settings.sentry_dsn:
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"{settings.app_name}@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        before_send=_strip_sensitive_data,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        send_default_pii=False,
    )
