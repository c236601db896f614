"""
ClearLens — Metric Normalizer  (clearlens/metrics.py)
=====================================================
Turns the loosely-typed metric / profile / trend bags a client posts into
typed optional numbers.  Anything that is missing, null, a non-numeric
string, NaN or infinite becomes None, never an exception.

Public API:
  num(value) -> Optional[float]
  normalize_metrics(raw) -> NormalizedMetrics
  normalize_trends(raw) -> Trends
  normalize_profile(raw) -> Profile
  cm_to_feet_inches(cm) -> str
  kg_to_lb(kg) -> int
"""
from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional


LB_PER_KG        = 2.2046226218
CM_PER_INCH      = 2.54
MIN_STEPS_AVG    = 2000        # below this the 7-day steps average is noise


# ──────────────────────────────────────────────
# PARSING
# ──────────────────────────────────────────────

def num(value: Any) -> Optional[float]:
    """
    Coerce a raw value to a finite float.

    '1234' -> 1234.0,  ' 7.5 ' -> 7.5,  'abc' -> None,  None -> None,
    float('nan') -> None,  True -> None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    result = float(value)
    return result if math.isfinite(result) else None


def _bag(raw: Any) -> Mapping[str, Any]:
    return raw if isinstance(raw, Mapping) else {}


def _first(bag: Mapping[str, Any], *keys: str) -> Optional[float]:
    """First key (in order) whose value parses, so legacy aliases can trail."""
    for key in keys:
        parsed = num(bag.get(key))
        if parsed is not None:
            return parsed
    return None


def display_number(value: Optional[float]) -> str:
    """7.0 -> '7', 7.25 -> '7.25'."""
    if value is None:
        return "—"
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


# ──────────────────────────────────────────────
# DATA MODEL
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class NormalizedMetrics:
    steps:                 Optional[float] = None
    active_calories:       Optional[float] = None
    basal_calories:        Optional[float] = None
    total_calories_burned: Optional[float] = None
    dietary_calories:      Optional[float] = None
    dietary_protein_g:     Optional[float] = None
    dietary_carbs_g:       Optional[float] = None
    dietary_fat_g:         Optional[float] = None
    dietary_fiber_g:       Optional[float] = None
    protein_target_g:      Optional[float] = None
    protein_remaining_g:   Optional[float] = None
    workout_minutes:       Optional[float] = None
    workout_count:         Optional[float] = None
    sleep_hours:           Optional[float] = None
    resting_heart_rate:    Optional[float] = None
    hrv_sdnn:              Optional[float] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    @property
    def nutrition_logged(self) -> bool:
        return self.dietary_calories is not None or self.dietary_protein_g is not None

    @property
    def has_workout_data(self) -> bool:
        return self.workout_minutes is not None or self.workout_count is not None

    @property
    def calories_out(self) -> Optional[float]:
        if self.total_calories_burned is not None:
            return self.total_calories_burned
        if self.active_calories is not None and self.basal_calories is not None:
            return self.active_calories + self.basal_calories
        return None

    @property
    def net_calories(self) -> Optional[float]:
        """Intake minus burn; positive means a surplus."""
        out = self.calories_out
        if self.dietary_calories is None or out is None:
            return None
        return self.dietary_calories - out


@dataclass(frozen=True)
class Trends:
    steps_avg:         Optional[float] = None
    sleep_avg:         Optional[float] = None
    rhr_avg:           Optional[float] = None
    hrv_avg:           Optional[float] = None
    workout_minutes_7d: Optional[float] = None


@dataclass(frozen=True)
class Profile:
    height_cm: Optional[float] = None
    weight_kg: Optional[float] = None
    age:       Optional[float] = None

    @property
    def height_display(self) -> Optional[str]:
        if self.height_cm is None or self.height_cm <= 0:
            return None
        return cm_to_feet_inches(self.height_cm)

    @property
    def weight_display(self) -> Optional[str]:
        if self.weight_kg is None or self.weight_kg <= 0:
            return None
        return f"{kg_to_lb(self.weight_kg)} lb"

    @property
    def age_display(self) -> Optional[str]:
        if self.age is None or self.age <= 0:
            return None
        return display_number(round(self.age))


# ──────────────────────────────────────────────
# NORMALIZERS
# ──────────────────────────────────────────────

def normalize_metrics(raw: Any) -> NormalizedMetrics:
    bag = _bag(raw)

    hrv = _first(bag, "hrvSdnn")
    if hrv == 0:
        hrv = None    # a zero HRV is a sensor artifact, not a reading

    protein = _first(bag, "dietaryProteinG")
    target = _first(bag, "proteinTargetG")
    remaining = _first(bag, "proteinRemainingG")
    if remaining is None and protein is not None and target is not None:
        remaining = max(target - protein, 0.0)

    return NormalizedMetrics(
        steps=_first(bag, "steps"),
        active_calories=_first(bag, "activeCalories", "calories"),
        basal_calories=_first(bag, "basalCalories"),
        total_calories_burned=_first(bag, "totalCaloriesBurned"),
        dietary_calories=_first(bag, "dietaryCalories"),
        dietary_protein_g=protein,
        dietary_carbs_g=_first(bag, "dietaryCarbsG"),
        dietary_fat_g=_first(bag, "dietaryFatG"),
        dietary_fiber_g=_first(bag, "dietaryFiberG"),
        protein_target_g=target,
        protein_remaining_g=remaining,
        workout_minutes=_first(bag, "workoutMinutes"),
        workout_count=_first(bag, "workoutCount"),
        sleep_hours=_first(bag, "sleepHours"),
        resting_heart_rate=_first(bag, "restingHeartRate"),
        hrv_sdnn=hrv,
    )


def normalize_trends(raw: Any) -> Trends:
    bag = _bag(raw)
    steps_avg = _first(bag, "steps7dAvg")
    if steps_avg is not None and steps_avg < MIN_STEPS_AVG:
        steps_avg = None
    return Trends(
        steps_avg=steps_avg,
        sleep_avg=_first(bag, "sleep7dAvg"),
        rhr_avg=_first(bag, "rhr7dAvg"),
        hrv_avg=_first(bag, "hrv7dAvg"),
        workout_minutes_7d=_first(bag, "workoutMinutes7d"),
    )


def normalize_profile(raw: Any) -> Profile:
    bag = _bag(raw)
    return Profile(
        height_cm=_first(bag, "heightCm"),
        weight_kg=_first(bag, "weightKg"),
        age=_first(bag, "age"),
    )


# ──────────────────────────────────────────────
# UNIT CONVERSIONS
# ──────────────────────────────────────────────

def cm_to_feet_inches(cm: float) -> str:
    """182.88 -> "6′ 0″",  170 -> "5′ 7″"."""
    total_inches = cm / CM_PER_INCH
    feet = int(total_inches // 12)
    inches = int(round(total_inches - feet * 12))
    if inches == 12:
        feet, inches = feet + 1, 0
    return f"{feet}′ {inches}″"


def kg_to_lb(kg: float) -> int:
    return int(round(kg * LB_PER_KG))
