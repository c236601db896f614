"""Deterministic profile / recovery answers."""

from clearlens.intent import IntentFlags
from clearlens.metrics import NormalizedMetrics, Trends, normalize_metrics, normalize_profile
from clearlens.shortcuts import PROFILE_MISSING, RECOVERY_NOT_READY, recovery_answer, try_shortcut
from clearlens.signals import derive_signals


def _signals(metrics, trends=Trends()):
    return derive_signals(metrics, trends, 9)


def test_profile_shortcut_lists_all_known_fields():
    profile = normalize_profile({"heightCm": 170, "weightKg": 70, "age": 30})
    metrics = NormalizedMetrics()
    result = try_shortcut(IntentFlags(profile_query=True), profile, metrics, _signals(metrics))
    assert result.kind == "profile"
    assert result.text == "Yep — Height: 5′ 7″ • Weight: 154 lb • Age: 30."


def test_profile_shortcut_only_known_fields():
    profile = normalize_profile({"weightKg": 70})
    metrics = NormalizedMetrics()
    result = try_shortcut(IntentFlags(profile_query=True), profile, metrics, _signals(metrics))
    assert result.text == "Yep — Weight: 154 lb."


def test_profile_shortcut_without_any_field():
    metrics = NormalizedMetrics()
    result = try_shortcut(IntentFlags(profile_query=True), normalize_profile({}), metrics, _signals(metrics))
    assert result.text == PROFILE_MISSING


def test_profile_wins_over_recovery():
    metrics = NormalizedMetrics(sleep_hours=8)
    flags = IntentFlags(profile_query=True, recovery_query=True)
    result = try_shortcut(flags, normalize_profile({"age": 40}), metrics, _signals(metrics))
    assert result.kind == "profile"


def test_recovery_not_ready_when_all_absent_or_zero():
    metrics = normalize_metrics({"sleepHours": 0, "restingHeartRate": None, "hrvSdnn": 0})
    assert recovery_answer(metrics, _signals(metrics)) == RECOVERY_NOT_READY


def test_recovery_below_usual_sleep():
    metrics = NormalizedMetrics(sleep_hours=6.8, resting_heart_rate=55, hrv_sdnn=40)
    text = recovery_answer(metrics, _signals(metrics, Trends(sleep_avg=7.6)))
    assert text.startswith("Sleep: 6.8 h • RHR: 55 bpm • HRV: 40 ms.")
    assert "below your usual sleep" in text


def test_recovery_short_night():
    metrics = NormalizedMetrics(sleep_hours=6.0)
    assert "short night" in recovery_answer(metrics, _signals(metrics))


def test_recovery_solid_sleep_flags_missing_hrv():
    metrics = NormalizedMetrics(sleep_hours=7.5, resting_heart_rate=52)
    text = recovery_answer(metrics, _signals(metrics))
    assert "Sleep looks solid" in text
    assert "HRV isn't available" in text


def test_recovery_falls_back_to_rhr():
    metrics = NormalizedMetrics(resting_heart_rate=66)
    above = recovery_answer(metrics, _signals(metrics, Trends(rhr_avg=58)))
    assert "above your baseline" in above
    fine = recovery_answer(metrics, _signals(metrics, Trends(rhr_avg=64)))
    assert "looks okay" in fine


def test_recovery_hrv_only_is_hard_to_judge():
    metrics = NormalizedMetrics(hrv_sdnn=45)
    assert "Hard to judge" in recovery_answer(metrics, _signals(metrics))


def test_no_shortcut_for_plain_questions():
    metrics = NormalizedMetrics(sleep_hours=8)
    assert try_shortcut(IntentFlags(), normalize_profile({}), metrics, _signals(metrics)) is None
