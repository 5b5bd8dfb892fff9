from __future__ import annotations

import random
from typing import Sequence

from .models import CheckinState

FALLBACK_QUESTION = "What are you doing right now?"

DEFAULT_QUESTIONS = (
    FALLBACK_QUESTION,
    "Is this work planned, or are you escaping something?",
    "Are you able to focus?",
    "Explain what you're doing in ten seconds.",
    "Are you zoning out?",
    "Is what you're doing really a priority?",
)

WANDERING_KEYWORDS = (
    "zoning out",
    "spacing out",
    "nothing",
    "not sure",
    "don't know",
    "dunno",
    "no idea",
    "bored",
    "somehow",
)

RESTING_KEYWORDS = (
    "break",
    "resting",
    "rest",
    "nap",
    "coffee",
    "lunch",
)


def pick_question(questions: Sequence[str], rng: random.Random | None = None) -> str:
    candidates = [q for q in questions if q.strip()]
    if not candidates:
        return FALLBACK_QUESTION
    return (rng or random).choice(candidates)


def classify_response(text: str) -> CheckinState:
    lowered = " ".join(text.lower().split())
    if any(keyword in lowered for keyword in WANDERING_KEYWORDS):
        return CheckinState.WANDERING
    words = set(lowered.replace(",", " ").replace(".", " ").split())
    if any(keyword in words for keyword in RESTING_KEYWORDS):
        return CheckinState.RESTING
    return CheckinState.FOCUSED
