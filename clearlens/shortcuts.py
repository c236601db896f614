"""
ClearLens — Deterministic Shortcut Responder  (clearlens/shortcuts.py)

Profile and recovery questions whose facts we already hold are answered from a
template; the completion service is never called for them.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from clearlens.intent import IntentFlags
from clearlens.metrics import NormalizedMetrics, Profile, display_number
from clearlens.signals import DerivedSignals


PROFILE_MISSING = (
    "I don't have your height, weight, or age yet — add them to your profile and I'll use them."
)
RECOVERY_NOT_READY = (
    "Your recovery metrics aren't ready yet — refresh your Health sync and ask again."
)


@dataclass(frozen=True)
class ShortcutResponse:
    kind: str       # "profile" | "recovery"
    text: str


def profile_answer(profile: Profile) -> str:
    parts = []
    if profile.height_display:
        parts.append(f"Height: {profile.height_display}")
    if profile.weight_display:
        parts.append(f"Weight: {profile.weight_display}")
    if profile.age_display:
        parts.append(f"Age: {profile.age_display}")
    if not parts:
        return PROFILE_MISSING
    return "Yep — " + " • ".join(parts) + "."


def _positive(value: Optional[float]) -> Optional[float]:
    return value if value is not None and value > 0 else None


def recovery_answer(metrics: NormalizedMetrics, signals: DerivedSignals) -> str:
    sleep = _positive(metrics.sleep_hours)
    rhr = _positive(metrics.resting_heart_rate)
    hrv = _positive(metrics.hrv_sdnn)

    if sleep is None and rhr is None and hrv is None:
        return RECOVERY_NOT_READY

    facts = []
    if sleep is not None:
        facts.append(f"Sleep: {display_number(round(sleep, 1))} h")
    if rhr is not None:
        facts.append(f"RHR: {display_number(round(rhr))} bpm")
    if hrv is not None:
        facts.append(f"HRV: {display_number(round(hrv))} ms")
    line = " • ".join(facts) + "."

    if signals.sleep_delta is not None and signals.sleep_delta <= -0.7 and sleep is not None:
        note = "That's below your usual sleep, so go lighter today."
    elif sleep is not None and sleep < 6.5:
        note = "That's a short night, so take it easier today."
    elif sleep is not None:
        note = "Sleep looks solid, so recovery seems decent."
        if hrv is None:
            note += " HRV isn't available, so this leans on sleep alone."
    elif rhr is not None:
        if signals.rhr_delta is not None and signals.rhr_delta >= 6:
            note = "Resting heart rate is above your baseline, so go easier today."
        else:
            note = "Resting heart rate looks okay."
    else:
        note = "Hard to judge recovery from that alone — resync your watch and check again."

    return f"{line} {note}"


def try_shortcut(flags: IntentFlags, profile: Profile, metrics: NormalizedMetrics,
                 signals: DerivedSignals) -> Optional[ShortcutResponse]:
    """Profile first, then recovery; None means run the full pipeline."""
    if flags.profile_query:
        return ShortcutResponse("profile", profile_answer(profile))
    if flags.recovery_query:
        return ShortcutResponse("recovery", recovery_answer(metrics, signals))
    return None
