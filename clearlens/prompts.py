"""
ClearLens — Prompt Composer  (clearlens/prompts.py)
===================================================
The system instruction is built from independent fragments, each a pure
function of the request data:

    persona     lens text + coaching ground rules
    settings    pressure / tone / sharpness / pop-culture
    memory      relationship facts from the longitudinal store
    astro       optional sun-sign flavour
    today       metrics relevant to the detected intent
    history     last 12 non-empty turns
    question    the user's words, verbatim

compose_prompt() only concatenates them.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Sequence

from clearlens.intent import Intent, IntentFlags
from clearlens.lenses import lens_prompt
from clearlens.metrics import NormalizedMetrics, display_number
from clearlens.session_memory import CoachMemory
from clearlens.signals import DerivedSignals
from clearlens.tone import CoachSettings


HISTORY_WINDOW = 12

COACH_RULES = """
Coaching ground rules:
- You have the user's metrics below. Never say you can't access their data or health numbers.
- If the user asks for a metric, put the exact value in the FIRST line.
- If a value is missing, say it's missing and what to connect or log to get it.
- Never open with "Great question", "Absolutely", "I hear you", "Alright", "Listen" or "Look".
- Pick exactly ONE mode for this reply and stay in it:
  reflective validation | directive guidance | factual information | light banter.
- Do not end with a follow-up question unless the user is actively planning something,
  you need a missing number from them, or they explicitly asked for options.
- Protein advice uses the single per-meal number given below, never a generic range.
- Not medical advice; if symptoms sound concerning, suggest a clinician.
""".strip()

_MACRO_MENTION = re.compile(r"\b(macros?|carbs?|fats?|fiber|protein)\b", re.IGNORECASE)

_SUN_SIGNS = [
    # (month, first day of the sign in that month, sign); walked in calendar order
    (1, 20, "innovative Aquarius"),
    (2, 19, "dreamy Pisces"),
    (3, 21, "bold Aries"),
    (4, 20, "steady Taurus"),
    (5, 21, "curious Gemini"),
    (6, 21, "nurturing Cancer"),
    (7, 23, "charismatic Leo"),
    (8, 23, "precise Virgo"),
    (9, 23, "harmonious Libra"),
    (10, 23, "intense Scorpio"),
    (11, 22, "adventurous Sagittarius"),
    (12, 22, "ambitious Capricorn"),
]


@dataclass
class PromptContext:
    question:    str
    lens:        Optional[str]
    settings:    CoachSettings
    intent:      Intent
    flags:       IntentFlags
    metrics:     NormalizedMetrics
    signals:     DerivedSignals
    memory:      CoachMemory
    history:     Sequence = field(default_factory=list)
    is_voice:    bool = False
    birth_date:  Optional[str] = None
    birth_time:  Optional[str] = None
    birth_place: Optional[str] = None


# ──────────────────────────────────────────────
# FRAGMENTS
# ──────────────────────────────────────────────

def persona_fragment(lens: Optional[str]) -> str:
    return f"{lens_prompt(lens)}\n\n{COACH_RULES}"


def settings_fragment(settings: CoachSettings) -> str:
    lines = [
        "SETTINGS:",
        f"- Pressure: {settings.pressure}",
        f"- Tone: {settings.tone}",
    ]
    if settings.tone == "sharp":
        lines.append(f"- Sharpness: {settings.sharpness}")
    if settings.pop_culture:
        lines.append("- One quick pop-culture reference is allowed if it lands naturally.")
    else:
        lines.append("- No pop-culture references this time.")
    if not settings.humor:
        lines.append("- No jokes. They sound low today; keep it steady and kind.")
    return "\n".join(lines)


def memory_fragment(memory: CoachMemory) -> str:
    facts = []
    if memory.days_active:
        facts.append(f"- Active with you on {memory.days_active} days")
    if memory.protein_streak_days:
        facts.append(f"- Protein streak: {memory.protein_streak_days} days")
    if memory.goal:
        facts.append(f"- Goal: {memory.goal}")
    if memory.favorite_snack:
        facts.append(f"- Favorite snack: {memory.favorite_snack}")
    if memory.workout_time_preference:
        facts.append(f"- Usually trains: {memory.workout_time_preference}")
    if memory.last_feedback_sentiment == "too_much_pressure":
        facts.append("- Last time they said you pushed too hard. Ease off.")
    if not facts:
        return "RELATIONSHIP: new user, no history yet."
    return "RELATIONSHIP:\n" + "\n".join(facts)


def sun_sign(birth: date) -> str:
    sign = "ambitious Capricorn"
    for month, first_day, name in _SUN_SIGNS:
        if (birth.month, birth.day) >= (month, first_day):
            sign = name
    return sign


def astro_fragment(birth_date: Optional[str], birth_time: Optional[str] = None,
                   birth_place: Optional[str] = None) -> str:
    if not birth_date or not isinstance(birth_date, str) or not birth_date.strip():
        return "No birth info provided. Avoid astrology references."
    try:
        parsed = date.fromisoformat(birth_date.strip())
    except ValueError:
        return "Invalid birth date provided. Keep insights general and non-astrological."
    extra = " (extra birth details provided)" if (birth_time or birth_place) else ""
    return (f"User has a {sun_sign(parsed)} Sun{extra}. "
            "Keep it light, non-deterministic, and only use it if it helps the question.")


def _metric_line(label: str, value: Optional[float], unit: str = "") -> Optional[str]:
    if value is None:
        return None
    return f"- {label}: {display_number(round(value, 1))}{unit}"


def _include_macros(ctx: PromptContext) -> bool:
    return (bool(_MACRO_MENTION.search(ctx.question))
            or ctx.intent == Intent.FOOD
            or ctx.flags.wants_quick_log
            or ctx.flags.likely_unlogged_food)


def _movement_lines(m: NormalizedMetrics) -> list:
    return [
        _metric_line("Steps today", m.steps),
        _metric_line("Active calories burned", m.active_calories, " kcal"),
        _metric_line("Basal calories burned", m.basal_calories, " kcal"),
        _metric_line("Total calories burned", m.total_calories_burned, " kcal"),
    ]


def _intake_lines(m: NormalizedMetrics, s: DerivedSignals) -> list:
    lines = [_metric_line("Calories eaten", m.dietary_calories, " kcal")]
    if m.net_calories is not None:
        direction = "surplus" if m.net_calories > 0 else "deficit"
        lines.append(f"- Net balance: {display_number(round(abs(m.net_calories)))} kcal {direction}")
    lines.append(_metric_line("Protein remaining", m.protein_remaining_g, " g"))
    if s.protein_per_meal is not None:
        lines.append(f"- Protein per meal target: {s.protein_per_meal} g ({s.meals_left} meals left)")
    if s.protein_behind:
        lines.append("- Protein is behind pace for this time of day")
    return lines


def _macro_lines(m: NormalizedMetrics) -> list:
    def logged(value: Optional[float]) -> str:
        return "not logged" if value is None else f"{display_number(round(value, 1))} g"

    protein = f"- Protein: {logged(m.dietary_protein_g)}"
    if m.protein_target_g is not None:
        protein += f" of {display_number(round(m.protein_target_g))} g target"
    return [
        "MACROS:",
        protein,
        f"- Carbs: {logged(m.dietary_carbs_g)}",
        f"- Fat: {logged(m.dietary_fat_g)}",
        f"- Fiber: {logged(m.dietary_fiber_g)}",
    ]


def _training_lines(m: NormalizedMetrics, s: DerivedSignals) -> list:
    return [
        _metric_line("Workout minutes", m.workout_minutes, " min"),
        _metric_line("Workouts", m.workout_count),
        f"- 7-day training load: {s.load}",
    ]


def _recovery_lines(m: NormalizedMetrics, s: DerivedSignals) -> list:
    lines = [
        _metric_line("Sleep", m.sleep_hours, " hours"),
        _metric_line("Resting heart rate", m.resting_heart_rate, " bpm"),
        _metric_line("HRV (SDNN)", m.hrv_sdnn, " ms"),
    ]
    if s.sleep_delta is not None:
        lines.append(f"- Sleep vs 7-day average: {s.sleep_delta:+g} h")
    if s.rhr_delta is not None:
        lines.append(f"- RHR vs 7-day average: {s.rhr_delta:+g} bpm")
    if s.hrv_delta is not None:
        lines.append(f"- HRV vs 7-day average: {s.hrv_delta:+g} ms")
    lines.append(f"- Readiness: {s.readiness}")
    return lines


_GROUPS_BY_INTENT = {
    Intent.META_FEEDBACK: (),
    Intent.NUMBERS:       ("movement", "intake", "training"),
    Intent.FOOD:          ("intake",),
    Intent.MOTIVATION:    ("movement", "intake", "training", "recovery"),
    Intent.PROGRESS:      ("movement", "intake", "training", "recovery"),
    Intent.GENERAL:       ("movement", "intake", "training", "recovery"),
}


def today_fragment(ctx: PromptContext) -> str:
    m, s = ctx.metrics, ctx.signals
    if m.is_empty():
        return ("TODAY: No health metrics were provided. If the user asks for a number you "
                "don't have, say what is missing and how to collect it.")

    lines: list = []
    for group in _GROUPS_BY_INTENT[ctx.intent]:
        if group == "movement":
            lines += _movement_lines(m)
        elif group == "intake":
            lines += _intake_lines(m, s)
        elif group == "training":
            lines += _training_lines(m, s)
        elif group == "recovery":
            lines += _recovery_lines(m, s)
    lines = [line for line in lines if line]

    if ctx.intent != Intent.META_FEEDBACK:
        lines.append(f"- On track today: {'yes' if s.on_track else 'not yet'}")
    if _include_macros(ctx):
        lines += _macro_lines(m)

    return ("TODAY'S METRICS (ground truth — use these exact numbers):\n" + "\n".join(lines))


def history_fragment(history: Sequence) -> str:
    rendered = []
    for turn in history or []:
        role = getattr(turn, "role", None)
        text = (getattr(turn, "text", None) or "").strip()
        if role not in ("user", "assistant") or not text:
            continue
        rendered.append(f"{role}: {text}")
    if not rendered:
        return ""
    return "RECENT CONVERSATION:\n" + "\n".join(rendered[-HISTORY_WINDOW:])


def voice_fragment(is_voice: bool) -> str:
    if not is_voice:
        return ""
    return "The question was dictated by voice; ignore small transcription errors."


def compose_prompt(ctx: PromptContext) -> str:
    fragments = [
        persona_fragment(ctx.lens),
        settings_fragment(ctx.settings),
        memory_fragment(ctx.memory),
        astro_fragment(ctx.birth_date, ctx.birth_time, ctx.birth_place),
        today_fragment(ctx),
        history_fragment(ctx.history),
        voice_fragment(ctx.is_voice),
        f"USER QUESTION:\n{ctx.question}",
    ]
    return "\n\n".join(fragment for fragment in fragments if fragment)
