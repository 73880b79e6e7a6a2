from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Dict, Optional, Union

logger = logging.getLogger(__name__)


def _normalize(raw: str) -> str:
    # "Full Moon" -> "full", "waxingGibbous" -> "waxing_gibbous", "heat-wave" -> "heat_wave"
    text = re.sub(r"(?<=[a-z])(?=[A-Z])", "_", raw.strip())
    text = re.sub(r"[\s\-]+", "_", text).lower()
    if text.endswith("_moon"):
        text = text[: -len("_moon")]
    return text


class _ParsableEnum(Enum):
    @classmethod
    def parse(cls, raw):
        """Accept an enum member or any reasonable spelling of its value."""
        if isinstance(raw, cls):
            return raw
        return cls(_normalize(str(raw)))

    @classmethod
    def try_parse(cls, raw):
        try:
            return cls.parse(raw)
        except ValueError:
            return None


class Season(_ParsableEnum):
    SPRING = "spring"
    SUMMER = "summer"
    FALL = "fall"
    WINTER = "winter"

    @property
    def opposite(self) -> "Season":
        return _OPPOSITE_SEASONS[self]


_OPPOSITE_SEASONS: Dict[Season, Season] = {
    Season.SPRING: Season.FALL,
    Season.SUMMER: Season.WINTER,
    Season.FALL: Season.SPRING,
    Season.WINTER: Season.SUMMER,
}


class MoonPhase(_ParsableEnum):
    NEW = "new"
    WAXING_CRESCENT = "waxing_crescent"
    FIRST_QUARTER = "first_quarter"
    WAXING_GIBBOUS = "waxing_gibbous"
    FULL = "full"
    WANING_GIBBOUS = "waning_gibbous"
    LAST_QUARTER = "last_quarter"
    WANING_CRESCENT = "waning_crescent"


class WeatherCondition(_ParsableEnum):
    """Ambient weather reported by the environment scheduler."""

    CLEAR = "clear"
    CLOUDY = "cloudy"
    RAINY = "rainy"
    STORMY = "stormy"
    SNOWY = "snowy"
    WINDY = "windy"
    FOGGY = "foggy"
    SUNNY = "sunny"


class WeatherEventType(_ParsableEnum):
    """Discrete whole-garden weather events (see weather_events)."""

    RAIN = "rain"
    STORM = "storm"
    DROUGHT = "drought"
    HEAT_WAVE = "heat_wave"
    FROST = "frost"
    FOG = "fog"
    HAIL = "hail"
    DEFAULT = "default"


PREFERRED_SEASON_MULTIPLIER = 1.3
OPPOSITE_SEASON_MULTIPLIER = 0.7
NEUTRAL_SEASON_MULTIPLIER = 1.0

WEATHER_EFFECT_MULTIPLIERS: Dict[WeatherCondition, float] = {
    WeatherCondition.CLEAR: 1.0,
    WeatherCondition.CLOUDY: 0.9,
    WeatherCondition.RAINY: 1.3,
    WeatherCondition.STORMY: 0.7,
    WeatherCondition.SNOWY: 0.5,
    WeatherCondition.WINDY: 0.8,
    WeatherCondition.FOGGY: 0.85,
    WeatherCondition.SUNNY: 1.2,
}

LUNAR_POTENCY: Dict[MoonPhase, float] = {
    MoonPhase.NEW: 0.8,
    MoonPhase.WAXING_CRESCENT: 0.9,
    MoonPhase.FIRST_QUARTER: 1.0,
    MoonPhase.WAXING_GIBBOUS: 1.1,
    MoonPhase.FULL: 1.3,
    MoonPhase.WANING_GIBBOUS: 1.1,
    MoonPhase.LAST_QUARTER: 1.0,
    MoonPhase.WANING_CRESCENT: 0.9,
}

SeasonLike = Union[Season, str]
MoonLike = Union[MoonPhase, str]
WeatherLike = Union[WeatherCondition, str]


def seasonal_modifier(preferred: Optional[SeasonLike], current: Optional[SeasonLike]) -> float:
    """Growth affinity of a variety for the current season.

    1.3 in the preferred season, 0.7 in its opposite, 1.0 otherwise or when
    either side is unknown.
    """
    pref = Season.try_parse(preferred) if preferred is not None else None
    cur = Season.try_parse(current) if current is not None else None
    if pref is None or cur is None:
        return NEUTRAL_SEASON_MULTIPLIER
    if pref is cur:
        return PREFERRED_SEASON_MULTIPLIER
    if pref.opposite is cur:
        return OPPOSITE_SEASON_MULTIPLIER
    return NEUTRAL_SEASON_MULTIPLIER


def weather_modifier(weather: Optional[WeatherLike]) -> float:
    cond = WeatherCondition.try_parse(weather) if weather is not None else None
    if cond is None:
        logger.debug("Unknown weather %r; using neutral multiplier", weather)
        return 1.0
    return WEATHER_EFFECT_MULTIPLIERS[cond]


def lunar_modifier(phase: Optional[MoonLike]) -> float:
    moon = MoonPhase.try_parse(phase) if phase is not None else None
    if moon is None:
        logger.debug("Unknown moon phase %r; using neutral potency", phase)
        return 1.0
    return LUNAR_POTENCY[moon]


def combined_modifier(
    preferred: Optional[SeasonLike],
    season: Optional[SeasonLike],
    weather: Optional[WeatherLike],
    moon: Optional[MoonLike],
) -> float:
    """Product of the seasonal, weather and lunar multipliers, in that order."""
    return seasonal_modifier(preferred, season) * weather_modifier(weather) * lunar_modifier(moon)


__all__ = [
    "Season",
    "MoonPhase",
    "WeatherCondition",
    "WeatherEventType",
    "WEATHER_EFFECT_MULTIPLIERS",
    "LUNAR_POTENCY",
    "seasonal_modifier",
    "weather_modifier",
    "lunar_modifier",
    "combined_modifier",
]
