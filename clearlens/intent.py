"""
ClearLens — Intent Classifier  (clearlens/intent.py)
====================================================
Maps the raw question text to exactly one Intent plus an independent set of
boolean flags.  Precedence is data: INTENT_RULES is walked top to bottom and
the first rule whose cues all match wins.

Public API:
  classify_intent(text) -> Intent
  detect_flags(text, metrics) -> IntentFlags
  allow_pop_culture(flags, intent, settings..., rng) -> bool
"""
from __future__ import annotations

import random
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from clearlens.metrics import NormalizedMetrics


class Intent(Enum):
    META_FEEDBACK = "meta_feedback"
    NUMBERS       = "numbers"
    FOOD          = "food"
    MOTIVATION    = "motivation"
    PROGRESS      = "progress"
    GENERAL       = "general"


POP_CULTURE_PROBABILITY = 0.35
UNLOGGED_CALORIE_FLOOR  = 800


# ══════════════════════════════════════════════
# CUE PATTERNS
# ══════════════════════════════════════════════

_META_CUE = re.compile(
    r"too harsh|stop roasting|same answers?|feedback|why are you|you keep saying|you always say"
)
_NUMBERS_CUE = re.compile(
    r"\b(calories?|kcal|macros?|deficit|surplus|tdee|math|numbers?|how many|burn(?:ed|t)?)\b"
)
_FOOD_CUE = re.compile(
    r"\b(breakfast|lunch|dinner|snacks?|meals?|recipe|hungry|what (?:should|can) i eat|what to eat)\b"
)
_MOTIVATION_CUE = re.compile(
    r"\b(roast(?: me)?|push me|motivat\w*|be harsh|be brutal|kick my|hype me|no excuses|lazy)\b"
)
_PROGRESS_CUE = re.compile(
    r"how am i doing|how(?:'s| is) my (?:day|week|progress)|\brecap\b|\bprogress\b|on track|\bsummary\b"
)

# (cues that must ALL match, resulting intent), first match wins.
INTENT_RULES: list[tuple[tuple[re.Pattern, ...], Intent]] = [
    ((_META_CUE,),                     Intent.META_FEEDBACK),
    ((_NUMBERS_CUE, _MOTIVATION_CUE),  Intent.MOTIVATION),
    ((_NUMBERS_CUE,),                  Intent.NUMBERS),
    ((_FOOD_CUE,),                     Intent.FOOD),
    ((_MOTIVATION_CUE,),               Intent.MOTIVATION),
    ((_PROGRESS_CUE,),                 Intent.PROGRESS),
]

_PROFILE_QUERY = re.compile(
    r"\bwhat(?:'s| is| are)\s+my\s+(?:current\s+)?(?:height|weight|age)\b"
    r"(?!\s+(?:goal|target|trend|loss|gain|change))"
    r"|\bhow tall am i\b|\bhow old am i\b|\bhow much do i weigh\b"
    r"|^(?:my\s+)?(?:current\s+)?(?:height|weight|age)\s*\??$"
)
_RECOVERY_TERM = re.compile(
    r"\b(sleep|slept|hrv|heart rate variability|rhr|resting heart rate|readiness|recover(?:y|ed)?)\b"
)
_ASKING = re.compile(r"\?|\b(how|what|did i|am i|was my|is my|should i)\b")
# the recovery term and the question cue must share a clause
_CLAUSE_BREAK = re.compile(r"(?<=\?)|[,;:.!]|\b(?:but|and|so|then)\b")
_QUICK_LOG = re.compile(
    r"\bquick log\b|\b(?:log|track|add)\b.*\b(?:ate|meal|food|snack|breakfast|lunch|dinner)\b|\bjust ate\b"
)
_ATE = re.compile(r"\b(ate|eaten|eating|just had|had (?:a|an|some|my)|snacked)\b")
_PLANNING_LATER = re.compile(
    r"\b(later|tonight|tomorrow|this evening|planning|plan to|going to|gonna|about to)\b"
)
_LOW_MOOD = re.compile(
    r"\b(tired|exhausted|stressed|anxious|overwhelmed|sad|down|depressed|drained|lonely|"
    r"burn(?:ed|t) out|rough day)\b"
)


@dataclass(frozen=True)
class IntentFlags:
    profile_query:         bool = False
    recovery_query:        bool = False
    wants_quick_log:       bool = False
    likely_unlogged_food:  bool = False
    planning_later:        bool = False
    low_mood:              bool = False


# ══════════════════════════════════════════════
# CLASSIFICATION
# ══════════════════════════════════════════════

def _normalize(text: str) -> str:
    return (text or "").lower().replace("’", "'").strip()


def classify_intent(text: str) -> Intent:
    lowered = _normalize(text)
    for cues, intent in INTENT_RULES:
        if all(cue.search(lowered) for cue in cues):
            return intent
    return Intent.GENERAL


def _asks_about_recovery(lowered: str) -> bool:
    return any(_RECOVERY_TERM.search(clause) and _ASKING.search(clause)
               for clause in _CLAUSE_BREAK.split(lowered))


def detect_flags(text: str, metrics: Optional[NormalizedMetrics] = None) -> IntentFlags:
    lowered = _normalize(text)
    metrics = metrics or NormalizedMetrics()

    dietary = metrics.dietary_calories
    unlogged = bool(_ATE.search(lowered)) and (dietary is None or dietary < UNLOGGED_CALORIE_FLOOR)

    return IntentFlags(
        profile_query=bool(_PROFILE_QUERY.search(lowered)),
        recovery_query=_asks_about_recovery(lowered),
        wants_quick_log=bool(_QUICK_LOG.search(lowered)),
        likely_unlogged_food=unlogged,
        planning_later=bool(_PLANNING_LATER.search(lowered)),
        low_mood=bool(_LOW_MOOD.search(lowered)),
    )


def allow_pop_culture(flags: IntentFlags, intent: Intent, tone: str, pressure: str,
                      rng: Optional[Callable[[], float]] = None,
                      probability: float = POP_CULTURE_PROBABILITY) -> bool:
    """
    The one deliberately random decision.  `rng` returns a float in [0, 1);
    it is only consulted once every deterministic condition already holds.
    """
    if flags.low_mood:
        return False
    if intent not in (Intent.MOTIVATION, Intent.PROGRESS):
        return False
    if tone != "sharp" and pressure == "low":
        return False
    draw = (rng or random.random)()
    return draw < probability
