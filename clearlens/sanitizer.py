"""
ClearLens — Response Sanitizer  (clearlens/sanitizer.py)
========================================================
Deterministic post-processing of the raw completion, in order:

  0. short acknowledgement ("meh", "lol", "fair") after an assistant turn
     → fixed reply, steps 1–3 skipped
  1. generic protein ranges ("25–40 g") → the computed per-meal number
  2. user did not ask a question → drop every sentence ending in "?"
  3. roast requests → cut at the first softening pivot, strip stock openers,
     fall back to a templated roast, cap at two sentences/lines

Public API:
  sanitize_response(raw, ctx) -> str
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional, Sequence

from clearlens.intent import Intent, classify_intent
from clearlens.metrics import NormalizedMetrics, display_number


DEFAULT_PROTEIN_PER_MEAL = 30
MIN_ROAST_CHARS          = 25
MAX_ROAST_SENTENCES      = 2

ACK_AFTER_ROAST = "Fair. I'll ease off. Tell me what you want to tackle next."
ACK_DEFAULT     = "Got it. Say the word when you want the next move."
EMPTY_FALLBACK  = "Noted. Tell me what you want to do next."


# ══════════════════════════════════════════════
# PATTERNS
# ══════════════════════════════════════════════

_PROTEIN_RANGE = re.compile(
    r"\b(?:20|25|30)\s*(?:-|–|—|to)\s*(?:40|50)\s*(?:g\b|gm\b|grams?\b)",
    re.IGNORECASE,
)

# A sentence ends at terminal punctuation followed by whitespace or end of line,
# so decimals like "7.5" stay intact.
_SENTENCE = re.compile(r"\S.*?(?:[.!?]+(?=\s|$)|$)")

_SOFTENING_PIVOTS = [
    "but hey",
    "just remember",
    "but remember",
    "that said",
    "at the end of the day",
    "be kind to yourself",
    "you've got this",
    "you’ve got this",
]

_STOCK_OPENERS = re.compile(
    r"^\s*(?:alright|all right|okay|ok|listen|look|well|ah|oh|hey there|hey|"
    r"great question|absolutely|i hear you|let's be real|let's get real|"
    r"let me be honest|real talk)\b[\s,.!:;—-]*",
    re.IGNORECASE,
)

_ACK = re.compile(
    r"^(?:meh|lol|lmao|haha+|ha+|fair|fair enough|ok|okay|k|kk|sure|true|nah|ugh|eh|"
    r"whatever|fine|cool|bet|got it|yeah|yep|yup|nope|wow|noted|right)[.!]*$"
)
_NEGATIVE_ACK = re.compile(r"^(?:meh|nah|ugh|eh|whatever|nope)[.!]*$")


@dataclass
class SanitizeContext:
    question:          str
    intent:            Intent
    metrics:           NormalizedMetrics = field(default_factory=NormalizedMetrics)
    protein_per_meal:  Optional[int] = None
    history:           Sequence = field(default_factory=list)


# ══════════════════════════════════════════════
# ACKNOWLEDGEMENTS
# ══════════════════════════════════════════════

def _ack_key(question: str) -> str:
    return re.sub(r"\s+", " ", (question or "").strip().lower())


def is_acknowledgement(question: str) -> bool:
    return bool(_ACK.match(_ack_key(question)))


def _turns(history: Sequence) -> list:
    return [t for t in history or []
            if getattr(t, "role", None) in ("user", "assistant") and (getattr(t, "text", "") or "").strip()]


def last_assistant_was_roast(history: Sequence) -> Optional[bool]:
    """None when there is no prior assistant turn at all."""
    turns = _turns(history)
    for i in range(len(turns) - 1, -1, -1):
        if turns[i].role == "assistant":
            for j in range(i - 1, -1, -1):
                if turns[j].role == "user":
                    return classify_intent(turns[j].text) == Intent.MOTIVATION
            return False
    return None


def acknowledgement_reply(question: str, history: Sequence) -> Optional[str]:
    if not is_acknowledgement(question):
        return None
    was_roast = last_assistant_was_roast(history)
    if was_roast is None:
        return None
    if was_roast and _NEGATIVE_ACK.match(_ack_key(question)):
        return ACK_AFTER_ROAST
    return ACK_DEFAULT


# ══════════════════════════════════════════════
# TRANSFORMS
# ══════════════════════════════════════════════

def replace_protein_ranges(text: str, per_meal: Optional[int]) -> str:
    value = per_meal if per_meal is not None else DEFAULT_PROTEIN_PER_MEAL
    return _PROTEIN_RANGE.sub(f"{value} g", text)


def strip_questions(text: str) -> str:
    """Drop every sentence that ends in '?'.  Idempotent."""
    kept_lines = []
    for line in text.splitlines():
        sentences = [s.strip() for s in _SENTENCE.findall(line)]
        kept = [s for s in sentences if s and not s.endswith("?")]
        if kept:
            kept_lines.append(" ".join(kept))
    return "\n".join(kept_lines)


def strip_stock_openers(text: str) -> str:
    previous = None
    while previous != text:
        previous = text
        text = _STOCK_OPENERS.sub("", text, count=1)
    if text[:1].islower():
        text = text[0].upper() + text[1:]
    return text.strip()


def cut_at_softening(text: str) -> str:
    lowered = text.lower()
    hits = [lowered.find(p) for p in _SOFTENING_PIVOTS if p in lowered]
    if not hits:
        return text
    return text[:min(hits)].rstrip(" ,;:—-\n")


def cap_sentences(text: str, limit: int = MAX_ROAST_SENTENCES) -> str:
    pieces = []
    for line in text.splitlines():
        pieces += [s.strip() for s in _SENTENCE.findall(line) if s.strip()]
    return " ".join(pieces[:limit])


def templated_roast(metrics: NormalizedMetrics) -> str:
    if metrics.steps is not None:
        first = f"{display_number(round(metrics.steps))} steps is a warm-up, not a day."
    else:
        first = "No steps logged means no excuses either."

    net = metrics.net_calories
    if net is not None:
        direction = "over" if net > 0 else "under"
        second = f"You're {display_number(round(abs(net)))} kcal {direction} what you burned, so own it."
    elif metrics.protein_remaining_g is not None and metrics.protein_remaining_g > 0:
        second = f"{display_number(round(metrics.protein_remaining_g))} g of protein is still missing, go fix that."
    elif metrics.dietary_protein_g is not None:
        second = f"{display_number(round(metrics.dietary_protein_g))} g of protein so far is not a plan."
    else:
        second = "Get up and do one hard thing in the next hour."
    return f"{first} {second}"


def shape_roast(text: str, metrics: NormalizedMetrics) -> str:
    text = cut_at_softening(text)
    text = strip_stock_openers(text)
    if len(text) < MIN_ROAST_CHARS:
        text = templated_roast(metrics)
    return cap_sentences(text)


# ══════════════════════════════════════════════
# ENTRY POINT
# ══════════════════════════════════════════════

def sanitize_response(raw: str, ctx: SanitizeContext) -> str:
    ack = acknowledgement_reply(ctx.question, ctx.history)
    if ack is not None:
        return ack

    text = replace_protein_ranges(raw or "", ctx.protein_per_meal)

    if not (ctx.question or "").strip().endswith("?"):
        text = strip_questions(text)

    if ctx.intent == Intent.MOTIVATION:
        text = shape_roast(text, ctx.metrics)

    text = text.strip()
    return text or EMPTY_FALLBACK
