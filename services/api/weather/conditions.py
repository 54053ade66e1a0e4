"""
Weather condition tables — provider-native code/phrase -> {icon, description}.

Open-Meteo reports WMO integer codes; AccuWeather reports free-text phrases
("Partly sunny", "Light rain", "Thunderstorms"). Each gets its own table, both
map onto the same glyph set and the same localized (Hebrew) descriptions.

Lookups never raise and never return an empty description: anything not in a
table resolves to UNKNOWN.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class WeatherCondition:
    icon: str
    description: str


UNKNOWN = WeatherCondition("🌡️", "לא ידוע")

# WMO codes that count as rain for the clothing recommendation
RAIN_CODES: frozenset[int] = frozenset({51, 53, 55, 61, 63, 65, 80, 81, 82})

WMO_CONDITIONS: dict[int, WeatherCondition] = {
    0:  WeatherCondition("☀️", "שמיים בהירים"),
    1:  WeatherCondition("🌤️", "בהיר בעיקר"),
    2:  WeatherCondition("⛅", "מעונן חלקית"),
    3:  WeatherCondition("☁️", "מעונן"),
    45: WeatherCondition("🌫️", "ערפל"),
    48: WeatherCondition("🌫️", "ערפל קפוא"),
    51: WeatherCondition("🌦️", "טפטוף קל"),
    53: WeatherCondition("🌦️", "טפטוף מתון"),
    55: WeatherCondition("🌧️", "טפטוף כבד"),
    61: WeatherCondition("🌧️", "גשם קל"),
    63: WeatherCondition("🌧️", "גשם מתון"),
    65: WeatherCondition("🌧️", "גשם כבד"),
    71: WeatherCondition("❄️", "שלג קל"),
    73: WeatherCondition("❄️", "שלג מתון"),
    75: WeatherCondition("❄️", "שלג כבד"),
    77: WeatherCondition("🌨️", "גרגרי שלג"),
    80: WeatherCondition("🌦️", "מטר קל"),
    81: WeatherCondition("🌧️", "מטר מתון"),
    82: WeatherCondition("⛈️", "מטר כבד"),
    85: WeatherCondition("🌨️", "מטר שלג קל"),
    86: WeatherCondition("🌨️", "מטר שלג כבד"),
    95: WeatherCondition("⛈️", "סופת רעמים"),
    96: WeatherCondition("⛈️", "סופת רעמים עם ברד"),
    99: WeatherCondition("⛈️", "סופת רעמים עם ברד כבד"),
}


def wmo_condition(code: int | None) -> WeatherCondition:
    """Look up a WMO weather code; unknown or missing codes map to UNKNOWN."""
    if code is None:
        return UNKNOWN
    try:
        return WMO_CONDITIONS.get(int(code), UNKNOWN)
    except (TypeError, ValueError):
        return UNKNOWN


# ---------------------------------------------------------------------------
# AccuWeather phrases
# ---------------------------------------------------------------------------

_RAIN_WORDS = ("rain", "shower", "drizzle")

# Ordered rules, first match wins. A rule matches when every group has at
# least one of its words in the lowercased phrase. Precipitation comes before
# sky cover so "Mostly cloudy w/ showers" reads as rain, not clouds.
_PHRASE_RULES: list[tuple[tuple[tuple[str, ...], ...], WeatherCondition]] = [
    ((("thunder", "storm"),),                      WeatherCondition("⛈️", "סופת רעמים")),
    ((("ice", "freezing"),),                       WeatherCondition("❄️", "כפור/קפיאה")),
    ((("snow", "sleet", "flurr", "blizzard"),),    WeatherCondition("❄️", "שלג")),
    ((_RAIN_WORDS, ("light", "patchy", "isolated")), WeatherCondition("🌦️", "גשם קל")),
    ((_RAIN_WORDS, ("heavy", "moderate")),         WeatherCondition("🌧️", "גשם כבד")),
    ((_RAIN_WORDS,),                               WeatherCondition("🌧️", "גשם")),
    ((("fog", "mist", "haze"),),                   WeatherCondition("🌫️", "ערפל")),
    ((("partly", "intermittent"), ("cloud", "sun")), WeatherCondition("⛅", "מעונן חלקית")),
    ((("mostly",), ("sun", "clear")),              WeatherCondition("🌤️", "בהיר בעיקר")),
    ((("sun", "clear"),),                          WeatherCondition("☀️", "שמיים בהירים")),
    ((("cloud", "overcast", "dreary"),),           WeatherCondition("☁️", "מעונן")),
    ((("wind",),),                                 WeatherCondition("💨", "רוחות חזקות")),
    ((("hot",),),                                  WeatherCondition("☀️", "חם")),
    ((("cold",),),                                 WeatherCondition("🌡️", "קר")),
]


def phrase_condition(text: str | None) -> WeatherCondition:
    """Map an AccuWeather phrase (IconPhrase / WeatherText) to a condition."""
    phrase = (text or "").lower()
    if not phrase:
        return UNKNOWN
    for groups, condition in _PHRASE_RULES:
        if all(any(word in phrase for word in group) for group in groups):
            return condition
    return UNKNOWN


def is_rain_phrase(text: str | None) -> bool:
    phrase = (text or "").lower()
    return any(word in phrase for word in _RAIN_WORDS)
