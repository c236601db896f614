"""Prompt fragments and composition."""

from datetime import date

from clearlens.api_models import ChatTurn
from clearlens.intent import Intent, IntentFlags, classify_intent, detect_flags
from clearlens.metrics import NormalizedMetrics, Trends, normalize_metrics
from clearlens.prompts import (
    HISTORY_WINDOW, PromptContext, astro_fragment, compose_prompt, history_fragment, memory_fragment,
    settings_fragment, sun_sign, today_fragment,
)
from clearlens.session_memory import CoachMemory
from clearlens.signals import derive_signals
from clearlens.tone import CoachSettings


SETTINGS = CoachSettings(pressure="medium", tone="neutral", sharpness="spicy")


def _context(question, metrics=None, hour=14, **kwargs):
    metrics = metrics or NormalizedMetrics()
    return PromptContext(
        question=question,
        lens=kwargs.pop("lens", None),
        settings=kwargs.pop("settings", SETTINGS),
        intent=classify_intent(question),
        flags=detect_flags(question, metrics),
        metrics=metrics,
        signals=derive_signals(metrics, Trends(), hour),
        memory=kwargs.pop("memory", CoachMemory()),
        **kwargs,
    )


def test_dinner_question_gets_per_meal_protein_and_macros():
    metrics = normalize_metrics({"dietaryProteinG": 40, "proteinTargetG": 150, "proteinRemainingG": 110})
    ctx = _context("What should I eat for dinner?", metrics, hour=19)
    assert ctx.intent == Intent.FOOD
    assert ctx.signals.protein_per_meal == 55

    prompt = compose_prompt(ctx)
    assert "Protein per meal target: 55 g" in prompt
    assert "MACROS:" in prompt
    assert "- Protein: 40 g of 150 g target" in prompt


def test_macros_omitted_when_not_relevant():
    metrics = normalize_metrics({"steps": 9000, "dietaryProteinG": 40, "dietaryCarbsG": 200})
    block = today_fragment(_context("Should I rest today?", metrics))
    assert "MACROS:" not in block
    assert "Steps today: 9000" in block


def test_macros_included_when_question_mentions_them():
    metrics = normalize_metrics({"dietaryCarbsG": 200})
    block = today_fragment(_context("Are my carbs too high?", metrics))
    assert "- Carbs: 200 g" in block


def test_food_intent_keeps_recovery_metrics_out():
    metrics = normalize_metrics({"sleepHours": 7, "dietaryCalories": 1200})
    block = today_fragment(_context("ideas for lunch", metrics))
    assert "Sleep" not in block
    assert "Calories eaten: 1200 kcal" in block


def test_empty_metrics_block_names_the_gap():
    block = today_fragment(_context("How am I doing?"))
    assert "No health metrics were provided" in block


def test_history_window_and_blank_turns():
    turns = [ChatTurn(role="user", text=f"q{i}") for i in range(20)]
    turns.insert(18, ChatTurn(role="assistant", text="   "))
    rendered = history_fragment(turns).splitlines()[1:]
    assert len(rendered) == HISTORY_WINDOW
    assert rendered[-1] == "user: q19"
    assert all(line.strip() != "assistant:" for line in rendered)
    assert history_fragment([]) == ""


def test_settings_fragment_sharp_only_lists_sharpness_when_sharp():
    sharp = CoachSettings(pressure="high", tone="sharp", sharpness="savage", pop_culture=True)
    text = settings_fragment(sharp)
    assert "Sharpness: savage" in text
    assert "pop-culture reference is allowed" in text
    assert "Sharpness" not in settings_fragment(SETTINGS)


def test_memory_fragment():
    assert "new user" in memory_fragment(CoachMemory())
    text = memory_fragment(CoachMemory(days_active=12, protein_streak_days=3,
                                       last_feedback_sentiment="too_much_pressure"))
    assert "12 days" in text
    assert "Protein streak: 3 days" in text
    assert "Ease off" in text


def test_sun_signs():
    assert sun_sign(date(1990, 1, 10)) == "ambitious Capricorn"
    assert sun_sign(date(1990, 1, 20)) == "innovative Aquarius"
    assert sun_sign(date(1990, 8, 1)) == "charismatic Leo"
    assert sun_sign(date(1990, 12, 30)) == "ambitious Capricorn"


def test_astro_fragment_variants():
    assert "Avoid astrology" in astro_fragment(None)
    assert "Invalid birth date" in astro_fragment("31/31/1990")
    assert "extra birth details" in astro_fragment("1990-08-01", birth_place="Lisbon")


def test_prompt_order_and_rules():
    ctx = _context("Should I train today?", lens="risk",
                   history=[ChatTurn(role="user", text="hi"), ChatTurn(role="assistant", text="hey")],
                   is_voice=True)
    prompt = compose_prompt(ctx)
    assert prompt.startswith("You are ClearLens — Risk.")
    assert "Never say you can't access" in prompt
    assert "exactly ONE mode" in prompt
    assert prompt.index("SETTINGS:") < prompt.index("RELATIONSHIP") < prompt.index("RECENT CONVERSATION")
    assert "dictated by voice" in prompt
    assert prompt.endswith("USER QUESTION:\nShould I train today?")


def test_unknown_lens_falls_back_to_strategic():
    prompt = compose_prompt(_context("hmm", lens="cosmic"))
    assert prompt.startswith("You are ClearLens — Strategic.")


def test_quick_log_flag_pulls_in_macros():
    metrics = NormalizedMetrics(dietary_calories=1500)
    ctx = _context("quick log: protein shake", metrics)
    ctx.flags = IntentFlags(wants_quick_log=True)
    assert "MACROS:" in today_fragment(ctx)
