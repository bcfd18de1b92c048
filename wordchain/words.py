"""Word helpers shared by the turn engine and the bot player.

Functions here are pure: normalisation for duplicate/prefix checks and the
single rule that turns a word into the next prompt.
"""
from __future__ import annotations

import random
import re
from dataclasses import dataclass
from typing import Optional

from wordchain.constants import (
    LONG_PREFIX,
    LONG_WORD_LENGTH,
    PROMPT_BONUS_MAX,
    PROMPT_MAX_POINTS,
    PROMPT_MIN_POINTS,
    SHORT_PREFIX,
    SHORT_WORD_LENGTH,
)

_NON_ALPHA = re.compile(r"[^a-z]")


@dataclass(frozen=True)
class CurrentWord:
    """The active prompt a player's answer must continue from."""
    display_prefix: str
    match_prefix: str
    point_value: int


def clean_word(word: str) -> str:
    """Lowercase a word and drop everything that is not a-z."""
    return _NON_ALPHA.sub("", (word or "").lower())


def normalized_forms(raw: str, lemma: Optional[str] = None) -> tuple[str, ...]:
    """Return every form of an answer that counts as "used".

    That is the trimmed lowercase answer, its cleaned form, and the same two
    forms of the dictionary lemma (the answer itself when no lemma is known).
    Empty forms are dropped and order is preserved.
    """
    raw_lower = (raw or "").lower().strip()
    lemma_lower = lemma.lower().strip() if lemma else raw_lower
    forms = []
    for form in (raw_lower, clean_word(raw_lower), lemma_lower, clean_word(lemma_lower)):
        if form and form not in forms:
            forms.append(form)
    return tuple(forms)


def extract_suffix(word: str) -> str:
    """Take the last 2-3 letters of a word as the next required prefix."""
    cleaned = clean_word(word)
    if len(cleaned) >= LONG_WORD_LENGTH:
        return cleaned[-LONG_PREFIX:]
    if len(cleaned) >= SHORT_WORD_LENGTH:
        return cleaned[-SHORT_PREFIX:]
    return cleaned


def derive_prompt(
    word: str,
    rng: random.Random,
    min_points: int = PROMPT_MIN_POINTS,
    max_points: int = PROMPT_MAX_POINTS,
    bonus_max: int = PROMPT_BONUS_MAX,
) -> CurrentWord:
    """Build the next prompt from a word.

    Used for the opening word, after every accepted answer and on rolls.

    Raises:
        ValueError: if the word has no letters to continue from
    """
    suffix = extract_suffix(word)
    if not suffix:
        raise ValueError(f"cannot derive a prompt from {word!r}")
    points = len(suffix) + rng.randint(0, bonus_max)
    points = max(min_points, min(max_points, points))
    return CurrentWord(display_prefix=suffix, match_prefix=suffix, point_value=points)
