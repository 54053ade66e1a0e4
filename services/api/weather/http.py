"""
Outbound JSON GET shared by every geocoder and forecast provider.

One place decides how upstream failures are classified:
  - non-2xx status, connection errors, timeouts  -> UpstreamUnavailableError
  - 2xx with a body that is not JSON              -> UpstreamMalformedError

Each call is bounded twice: the httpx timeout covers connect/read phases and
asyncio.wait_for caps the whole exchange.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from services.api.weather.errors import UpstreamMalformedError, UpstreamUnavailableError

logger = logging.getLogger(__name__)


async def get_json(
    url: str,
    *,
    params: dict[str, Any] | None = None,
    timeout_s: float,
    source: str,
) -> Any:
    """GET url and return the decoded JSON body."""
    try:
        async with httpx.AsyncClient(timeout=timeout_s) as client:
            resp = await asyncio.wait_for(client.get(url, params=params), timeout=timeout_s)
            resp.raise_for_status()
            return resp.json()
    except httpx.HTTPStatusError as exc:
        logger.warning(
            "%s returned %d for %s: %s",
            source,
            exc.response.status_code,
            url,
            exc.response.text[:200],
        )
        raise UpstreamUnavailableError(
            f"{source} returned HTTP {exc.response.status_code}", source=source
        ) from exc
    except (httpx.TimeoutException, asyncio.TimeoutError) as exc:
        logger.warning("%s timed out after %.1fs: %s", source, timeout_s, url)
        raise UpstreamUnavailableError(f"{source} timed out", source=source) from exc
    except httpx.HTTPError as exc:
        logger.warning("%s request failed: %s (%s)", source, url, exc)
        raise UpstreamUnavailableError(f"{source} request failed", source=source) from exc
    except ValueError as exc:
        logger.warning("%s returned a non-JSON body: %s", source, url)
        raise UpstreamMalformedError(f"{source} returned a non-JSON body", source=source) from exc
