"""Post-processing of completion text."""

from clearlens.api_models import ChatTurn
from clearlens.intent import Intent
from clearlens.metrics import NormalizedMetrics
from clearlens.sanitizer import (
    ACK_AFTER_ROAST, ACK_DEFAULT, EMPTY_FALLBACK, SanitizeContext, cap_sentences, last_assistant_was_roast,
    replace_protein_ranges, sanitize_response, strip_questions, strip_stock_openers, templated_roast,
)


def _history(*pairs):
    return [ChatTurn(role=role, text=text) for role, text in pairs]


ROAST_HISTORY = _history(("user", "roast me"), ("assistant", "4000 steps is a nap."))
PLAIN_HISTORY = _history(("user", "what should I eat?"), ("assistant", "Eggs and toast."))


# ============================================================================
# PROTEIN RANGES
# ============================================================================

def test_protein_range_replaced_with_per_meal_number():
    assert replace_protein_ranges("Aim for 25-40g per meal.", 55) == "Aim for 55 g per meal."
    assert replace_protein_ranges("Aim for 20 to 50 grams.", None) == "Aim for 30 g."
    assert replace_protein_ranges("Aim for 30–40 gm.", 42) == "Aim for 42 g."


def test_other_numbers_untouched():
    text = "Walk 20-40 minutes and eat 150 g of chicken."
    assert replace_protein_ranges(text, 55) == text


# ============================================================================
# QUESTIONS
# ============================================================================

def test_strip_questions_drops_only_question_sentences():
    assert strip_questions("Eat eggs. Want more ideas? Go walk.") == "Eat eggs. Go walk."


def test_strip_questions_keeps_decimals():
    assert strip_questions("You slept 7.5 hours. Tired?") == "You slept 7.5 hours."


def test_strip_questions_is_idempotent():
    text = "First line. Really?\nWhy not? Second line!\nThird."
    once = strip_questions(text)
    assert strip_questions(once) == once
    assert "?" not in once


def test_questions_kept_when_user_asked_one():
    ctx = SanitizeContext(question="Should I eat now?", intent=Intent.FOOD)
    assert sanitize_response("Yes. Want a snack idea?", ctx) == "Yes. Want a snack idea?"


def test_questions_stripped_when_user_did_not_ask():
    ctx = SanitizeContext(question="ideas for dinner", intent=Intent.FOOD, protein_per_meal=55)
    out = sanitize_response("Grab salmon for 25-40 g of protein. Want a recipe?", ctx)
    assert out == "Grab salmon for 55 g of protein."


# ============================================================================
# ROASTS
# ============================================================================

def test_roast_cut_at_softening_and_opener_removed():
    ctx = SanitizeContext(question="roast me", intent=Intent.MOTIVATION)
    raw = ("Alright, 4000 steps is a nap with extra walking. You ate like a raccoon at a buffet. "
           "But hey, you've got this!")
    assert sanitize_response(raw, ctx) == (
        "4000 steps is a nap with extra walking. You ate like a raccoon at a buffet."
    )


def test_short_roast_uses_template():
    metrics = NormalizedMetrics(steps=4000, protein_remaining_g=60)
    ctx = SanitizeContext(question="roast me", intent=Intent.MOTIVATION, metrics=metrics)
    assert sanitize_response("Hey, be kind to yourself.", ctx) == (
        "4000 steps is a warm-up, not a day. 60 g of protein is still missing, go fix that."
    )


def test_templated_roast_uses_net_calories():
    metrics = NormalizedMetrics(dietary_calories=2600, total_calories_burned=2200)
    text = templated_roast(metrics)
    assert text.startswith("No steps logged")
    assert "400 kcal over" in text


def test_roast_capped_at_two_sentences():
    ctx = SanitizeContext(question="push me", intent=Intent.MOTIVATION)
    raw = "Your couch has your outline now.\nYour shoes filed a missing person report. Go. Now."
    out = sanitize_response(raw, ctx)
    assert out == "Your couch has your outline now. Your shoes filed a missing person report."


def test_stock_openers_stripped_repeatedly():
    assert strip_stock_openers("Okay, listen — you skipped leg day.") == "You skipped leg day."
    assert strip_stock_openers("Solid day.") == "Solid day."


def test_cap_sentences():
    assert cap_sentences("One. Two! Three?") == "One. Two!"


# ============================================================================
# ACKNOWLEDGEMENTS
# ============================================================================

def test_last_assistant_was_roast():
    assert last_assistant_was_roast(ROAST_HISTORY) is True
    assert last_assistant_was_roast(PLAIN_HISTORY) is False
    assert last_assistant_was_roast(_history(("user", "hi"))) is None
    assert last_assistant_was_roast([]) is None


def test_negative_ack_after_roast_backs_off():
    ctx = SanitizeContext(question="meh", intent=Intent.GENERAL, history=ROAST_HISTORY)
    assert sanitize_response("Anything the model said.", ctx) == ACK_AFTER_ROAST


def test_neutral_ack_gets_default_reply():
    ctx = SanitizeContext(question="lol", intent=Intent.GENERAL, history=ROAST_HISTORY)
    assert sanitize_response("whatever", ctx) == ACK_DEFAULT
    ctx = SanitizeContext(question="Meh.", intent=Intent.GENERAL, history=PLAIN_HISTORY)
    assert sanitize_response("whatever", ctx) == ACK_DEFAULT


def test_ack_without_prior_assistant_turn_is_not_special():
    ctx = SanitizeContext(question="ok", intent=Intent.GENERAL)
    assert sanitize_response("Sure thing.", ctx) == "Sure thing."


# ============================================================================
# FALLBACK
# ============================================================================

def test_empty_result_falls_back():
    ctx = SanitizeContext(question="hi", intent=Intent.GENERAL)
    assert sanitize_response("Want to log dinner?", ctx) == EMPTY_FALLBACK
    assert sanitize_response("", ctx) == EMPTY_FALLBACK
