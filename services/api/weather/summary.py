"""
SummaryGenerator — WeatherSnapshot -> Summary {today, tomorrow, clothing}.

Tier order:
  1. LLM summary via the Anthropic Messages API (timeout: settings.summary_timeout_s)
  2. Deterministic template summary (no key configured, fewer than two daily
     entries, LLM timeout / API error / unparseable reply)

summarize() never raises. A result is entirely LLM-written or entirely
template-written; a reply missing any of the three fields is discarded whole.

Fallback clothing classification, first match wins:
  rainy    current WMO code in RAIN_CODES (or a rain phrase when there is no code)
  hot      temperature > 28°C
  cold     temperature < 15°C
  neutral  otherwise
"""

from __future__ import annotations

import asyncio
import json
import logging
import time

import anthropic

from services.api.weather.conditions import RAIN_CODES, is_rain_phrase
from services.api.weather.models import CurrentConditions, DailyForecast, Summary, WeatherSnapshot

logger = logging.getLogger(__name__)

SUMMARY_PROMPT_VERSION = "summary-v1.0"
DEFAULT_MODEL = "claude-haiku-4-5"
DEFAULT_MAX_TOKENS = 300
DEFAULT_TIMEOUT_S = 10.0

HOT_ABOVE_C = 28
COLD_BELOW_C = 15

SUMMARY_FIELDS = frozenset({"today", "tomorrow", "clothing"})

CLOTHING = {
    "rainy": "☂️ קח מטרייה ומעיל עמיד למים!",
    "hot": "👕 לבוש קל ונוח, אל תשכח קרם הגנה!",
    "cold": "🧥 שכבות חמות מומלצות, מעיל חובה!",
    "neutral": "👔 לבוש נוח ונייטרלי, טמפרטורה נעימה!",
}


def _fmt(value: float | None) -> str:
    """21.0 -> '21', 21.34 -> '21.3', None -> '?'"""
    if value is None:
        return "?"
    return f"{round(value, 1):g}"


# ---------------------------------------------------------------------------
# Deterministic fallback
# ---------------------------------------------------------------------------

def classify_conditions(current: CurrentConditions) -> str:
    """Return 'rainy' | 'hot' | 'cold' | 'neutral'. Rain wins over temperature."""
    if current.weather_code is not None:
        rainy = current.weather_code in RAIN_CODES
    else:
        rainy = is_rain_phrase(current.weather_text)
    if rainy:
        return "rainy"
    if current.temperature > HOT_ABOVE_C:
        return "hot"
    if current.temperature < COLD_BELOW_C:
        return "cold"
    return "neutral"


def fallback_summary(snapshot: WeatherSnapshot) -> Summary:
    """Template summary, fully reproducible from the snapshot."""
    current = snapshot.current
    name = snapshot.location.name
    today = snapshot.daily[0] if len(snapshot.daily) > 0 else None
    tomorrow = snapshot.daily[1] if len(snapshot.daily) > 1 else None

    today_text = f"כיום ב{name} {current.description} עם {_fmt(current.temperature)}°C."
    if today is not None:
        today_text += f" הטמפרטורות ינועו בין {_fmt(today.min_temp)}° ל-{_fmt(today.max_temp)}°."

    if tomorrow is not None:
        tomorrow_text = (
            f"מחר צפוי {tomorrow.description} עם מקסימום של {_fmt(tomorrow.max_temp)}°C "
            f"ומינימום של {_fmt(tomorrow.min_temp)}°C."
        )
    else:
        tomorrow_text = "אין תחזית זמינה למחר."

    return Summary(
        today=today_text,
        tomorrow=tomorrow_text,
        clothing=CLOTHING[classify_conditions(current)],
    )


# ---------------------------------------------------------------------------
# LLM path
# ---------------------------------------------------------------------------

def _day_line(label: str, day: DailyForecast) -> str:
    return f"{label}: מקסימום {_fmt(day.max_temp)}°C, מינימום {_fmt(day.min_temp)}°C, {day.description}."


def build_prompt(snapshot: WeatherSnapshot) -> str:
    """Single prompt embedding now / today / tomorrow. Needs two daily entries."""
    current = snapshot.current
    return "\n".join([
        "אתה מנחה מזג אוויר ישראלי ידידותי.",
        f"מזג האוויר כעת ב{snapshot.location.name}: {current.description}, "
        f'{_fmt(current.temperature)}°C, רוח {_fmt(current.wind_speed)} קמ"ש.',
        _day_line("היום", snapshot.daily[0]),
        _day_line("מחר", snapshot.daily[1]),
        "",
        "ענה בפורמט JSON בלבד (בלי markdown, בלי קוד blocks):",
        "{",
        '  "today": "2 שורות על מזג האוויר כעת והיום",',
        '  "tomorrow": "2 שורות על מחר",',
        '  "clothing": "המלצה קצרה מה ללבוש עכשיו"',
        "}",
    ])


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        text = text.rsplit("```", 1)[0]
    return text.strip()


def parse_summary(raw_text: str) -> Summary:
    """
    Parse the LLM reply into a Summary.

    Raises:
        ValueError unless the reply is a flat JSON object with exactly
        today / tomorrow / clothing, each a non-empty string.
    """
    try:
        parsed = json.loads(_strip_code_fence(raw_text))
    except json.JSONDecodeError as exc:
        raise ValueError("LLM returned non-JSON summary") from exc

    if not isinstance(parsed, dict) or set(parsed) != SUMMARY_FIELDS:
        raise ValueError(f"LLM summary has wrong fields: {sorted(parsed) if isinstance(parsed, dict) else type(parsed).__name__}")
    if not all(isinstance(parsed[f], str) and parsed[f].strip() for f in SUMMARY_FIELDS):
        raise ValueError("LLM summary has empty or non-string fields")
    return Summary(**{f: parsed[f].strip() for f in SUMMARY_FIELDS})


class SummaryGenerator:
    """
    Usage:
        generator = SummaryGenerator(client=anthropic.AsyncAnthropic(api_key=...))
        summary = await generator.summarize(snapshot)   # never raises

        SummaryGenerator(client=None)  # template-only
    """

    def __init__(
        self,
        client: anthropic.AsyncAnthropic | None,
        *,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        self._client = client
        self._model = model
        self._max_tokens = max_tokens
        self._timeout_s = timeout_s

    async def summarize(self, snapshot: WeatherSnapshot) -> Summary:
        if self._client is None:
            logger.info("Summary method: template (no LLM key configured)")
            return fallback_summary(snapshot)
        if len(snapshot.daily) < 2:
            logger.warning(
                "Summary method: template (only %d daily entries for %s)",
                len(snapshot.daily),
                snapshot.location.name,
            )
            return fallback_summary(snapshot)

        try:
            summary = await self._summarize_with_llm(snapshot)
            logger.info("Summary method: llm")
            return summary
        except asyncio.TimeoutError:
            logger.warning("LLM summary timed out after %.1fs, using template", self._timeout_s)
        except (anthropic.APIError, anthropic.APIConnectionError, ValueError) as exc:
            logger.warning("LLM summary failed (%s), using template", exc)
        except Exception:
            logger.exception("LLM summary failed unexpectedly, using template")

        return fallback_summary(snapshot)

    async def _summarize_with_llm(self, snapshot: WeatherSnapshot) -> Summary:
        start = time.monotonic()
        response = await asyncio.wait_for(
            self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                messages=[{"role": "user", "content": build_prompt(snapshot)}],
            ),
            timeout=self._timeout_s,
        )
        latency_ms = int((time.monotonic() - start) * 1000)

        blocks = getattr(response, "content", None) or []
        raw_text = "".join(getattr(b, "text", "") for b in blocks)
        if not raw_text.strip():
            raise ValueError("LLM returned an empty summary")

        summary = parse_summary(raw_text)
        usage = getattr(response, "usage", None)
        logger.info(
            "LLM summary complete for %s in %dms (prompt=%s in=%s out=%s)",
            snapshot.location.name,
            latency_ms,
            SUMMARY_PROMPT_VERSION,
            getattr(usage, "input_tokens", "?"),
            getattr(usage, "output_tokens", "?"),
        )
        return summary
