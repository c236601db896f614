"""
ClearLens — Derived-Signal Calculator  (clearlens/signals.py)
=============================================================
Secondary signals computed from today's metrics and the 7-day baselines:

  - deltas        sleep / RHR / HRV vs their trailing averages
  - readiness     green | yellow | red
  - load          low | moderate | high   (7-day workout minutes)
  - on_track      majority vote over movement / sleep / nutrition / training
  - protein/meal  remaining protein spread over the meals left today

Public API:
  derive_signals(metrics, trends, local_hour) -> DerivedSignals
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from clearlens.metrics import NormalizedMetrics, Trends


READINESS_GREEN  = "green"
READINESS_YELLOW = "yellow"
READINESS_RED    = "red"

LOAD_LOW      = "low"
LOAD_MODERATE = "moderate"
LOAD_HIGH     = "high"

PROTEIN_MEAL_MIN = 25
PROTEIN_MEAL_MAX = 70


@dataclass(frozen=True)
class DerivedSignals:
    sleep_delta:       Optional[float]
    rhr_delta:         Optional[float]
    hrv_delta:         Optional[float]
    readiness:         str
    load:              str
    on_track:          bool
    protein_behind:    bool
    meals_left:        int
    protein_per_meal:  Optional[int]


# ──────────────────────────────────────────────
# HELPERS
# ──────────────────────────────────────────────

def _delta(value: Optional[float], baseline: Optional[float]) -> Optional[float]:
    if value is None or baseline is None:
        return None
    return round(value - baseline, 2)


def meals_left(local_hour: int) -> int:
    if local_hour < 11:
        return 3
    if local_hour < 21:
        return 2
    return 1


# ──────────────────────────────────────────────
# SIGNALS
# ──────────────────────────────────────────────

def readiness_hint(sleep_hours: Optional[float],
                   rhr_delta: Optional[float],
                   hrv_delta: Optional[float]) -> str:
    if sleep_hours is not None and sleep_hours < 6:
        return READINESS_RED
    if rhr_delta is not None and rhr_delta >= 6:
        return READINESS_RED
    if hrv_delta is not None and hrv_delta <= -10:
        return READINESS_RED
    if (sleep_hours is not None and sleep_hours >= 7
            and (rhr_delta is None or rhr_delta <= 0)
            and (hrv_delta is None or hrv_delta >= 0)):
        return READINESS_GREEN
    return READINESS_YELLOW


def load_hint(workout_minutes_7d: Optional[float]) -> str:
    if workout_minutes_7d is None:
        return LOAD_LOW
    if workout_minutes_7d >= 300:
        return LOAD_HIGH
    if workout_minutes_7d >= 150:
        return LOAD_MODERATE
    return LOAD_LOW


def protein_behind_pace(metrics: NormalizedMetrics, local_hour: int) -> bool:
    """Consumed protein is under 75% of where a steady day would be by now."""
    target, eaten = metrics.protein_target_g, metrics.dietary_protein_g
    if target is None or eaten is None or target <= 0:
        return False
    day_fraction = min(max((local_hour - 6) / 15, 0.0), 1.0)
    expected = target * day_fraction
    return eaten < 0.75 * expected


def is_on_track(metrics: NormalizedMetrics, trends: Trends, protein_behind: bool) -> bool:
    steps = metrics.steps

    if steps is None:
        movement = True
    elif trends.steps_avg is not None:
        movement = steps >= 0.8 * trends.steps_avg
    else:
        movement = steps >= 6000

    sleep = metrics.sleep_hours is None or metrics.sleep_hours >= 6.5

    nutrition = not protein_behind or not metrics.nutrition_logged

    if metrics.has_workout_data:
        training = True
    elif steps is not None:
        training = steps >= 10000
    else:
        training = True

    return sum((movement, sleep, nutrition, training)) >= 3


def protein_per_meal(remaining_g: Optional[float], local_hour: int) -> Optional[int]:
    if remaining_g is None:
        return None
    per_meal = remaining_g / meals_left(local_hour)
    return int(round(min(max(per_meal, PROTEIN_MEAL_MIN), PROTEIN_MEAL_MAX)))


def derive_signals(metrics: NormalizedMetrics, trends: Trends, local_hour: int) -> DerivedSignals:
    sleep_delta = _delta(metrics.sleep_hours, trends.sleep_avg)
    rhr_delta = _delta(metrics.resting_heart_rate, trends.rhr_avg)
    hrv_delta = _delta(metrics.hrv_sdnn, trends.hrv_avg)
    behind = protein_behind_pace(metrics, local_hour)

    return DerivedSignals(
        sleep_delta=sleep_delta,
        rhr_delta=rhr_delta,
        hrv_delta=hrv_delta,
        readiness=readiness_hint(metrics.sleep_hours, rhr_delta, hrv_delta),
        load=load_hint(trends.workout_minutes_7d),
        on_track=is_on_track(metrics, trends, behind),
        protein_behind=behind,
        meals_left=meals_left(local_hour),
        protein_per_meal=protein_per_meal(metrics.protein_remaining_g, local_hour),
    )
