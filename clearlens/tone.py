"""
ClearLens — Pressure / Tone Resolver  (clearlens/tone.py)

Combines the stored pressure preference, the remembered feedback sentiment and
the current intent into the coaching settings the prompt is written against.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from clearlens.intent import Intent
from clearlens.metrics import num


PRESSURE_LOW    = "low"
PRESSURE_MEDIUM = "medium"
PRESSURE_HIGH   = "high"

TONES = ("neutral", "warm", "sharp")

SENTIMENT_TOO_MUCH = "too_much_pressure"
SENTIMENT_GOOD     = "good"

_DOWNGRADE = {
    PRESSURE_HIGH:   PRESSURE_MEDIUM,
    PRESSURE_MEDIUM: PRESSURE_LOW,
    PRESSURE_LOW:    PRESSURE_LOW,
}

_SHARPNESS = {
    PRESSURE_LOW:    "direct",
    PRESSURE_MEDIUM: "spicy",
    PRESSURE_HIGH:   "savage",
}


@dataclass(frozen=True)
class CoachSettings:
    pressure:    str
    tone:        str
    sharpness:   str
    pop_culture: bool = False
    humor:       bool = True


def base_pressure(preference: Any) -> str:
    level = num(preference)
    if level == 1:
        return PRESSURE_LOW
    if level == 3:
        return PRESSURE_HIGH
    return PRESSURE_MEDIUM


def resolve_tone(preferences: Optional[Mapping[str, Any]]) -> str:
    raw = (preferences or {}).get("tone")
    tone = raw.strip().lower() if isinstance(raw, str) else ""
    return tone if tone in TONES else "neutral"


def resolve_pressure(preference: Any, last_sentiment: Optional[str],
                     intent: Intent, on_track: bool) -> str:
    pressure = base_pressure(preference)

    if last_sentiment == SENTIMENT_TOO_MUCH:
        pressure = _DOWNGRADE[pressure]

    if intent in (Intent.NUMBERS, Intent.META_FEEDBACK):
        return PRESSURE_LOW
    if on_track and intent != Intent.MOTIVATION:
        return PRESSURE_LOW
    if on_track and pressure == PRESSURE_HIGH:
        return PRESSURE_MEDIUM
    return pressure


def sharpness_for(pressure: str) -> str:
    # Only read by the prompt when tone == "sharp".
    return _SHARPNESS.get(pressure, "spicy")


def resolve_settings(preferences: Optional[Mapping[str, Any]], last_sentiment: Optional[str],
                     intent: Intent, on_track: bool) -> CoachSettings:
    pressure = resolve_pressure((preferences or {}).get("pressure"), last_sentiment, intent, on_track)
    return CoachSettings(
        pressure=pressure,
        tone=resolve_tone(preferences),
        sharpness=sharpness_for(pressure),
    )
