"""Word search for the automated "Villain Bot" opponent.

The bot only decides WHAT to submit. Accepting the word, scoring it and
moving the turn on go through the same engine bookkeeping as a human answer.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Optional

from wordchain.constants import BOT_RANDOM_ATTEMPTS, BOT_SUFFIXES
from wordchain.exceptions import OracleError
from wordchain.words import clean_word, normalized_forms

if TYPE_CHECKING:
    from wordchain.oracle import WordOracle

logger = logging.getLogger('wordchain_bot.bot_player')


@dataclass(frozen=True)
class BotMove:
    """A word the bot found, with what the dictionary said about it."""
    word: str
    lemma: Optional[str] = None
    point_value: Optional[int] = None

    @property
    def forms(self) -> tuple[str, ...]:
        return normalized_forms(self.word, self.lemma)


class BotStrategy:
    """Two-phase search for a word continuing a prefix.

    1. Suffix guessing: prefix + each common ending, checked in order.
    2. Random probing: up to ``random_attempts`` random dictionary words,
       kept only if they continue the prefix.
    """

    def __init__(
        self,
        oracle: "WordOracle",
        suffixes: Iterable[str] = BOT_SUFFIXES,
        random_attempts: int = BOT_RANDOM_ATTEMPTS,
    ):
        self.oracle = oracle
        self.suffixes = tuple(suffixes)
        self.random_attempts = random_attempts

    async def find_word(self, prefix: str, used_answers: set[str]) -> Optional[BotMove]:
        """Return a fresh valid word starting with ``prefix``, or None."""
        prefix = clean_word(prefix)
        logger.info(f"Looking for word starting with: {prefix}")

        move = await self._guess_with_suffixes(prefix, used_answers)
        if move:
            logger.info(f"Found word with suffix strategy: {move.word}")
            return move

        logger.info("Suffix strategy failed, trying random search...")
        move = await self._try_random_words(prefix, used_answers)
        if move:
            return move

        logger.info(f"Could not find any valid word for '{prefix}'")
        return None

    async def _guess_with_suffixes(self, prefix: str, used_answers: set[str]) -> Optional[BotMove]:
        for suffix in self.suffixes:
            candidate = prefix + suffix
            try:
                lookup = await self.oracle.lookup(candidate)
            except OracleError as e:
                logger.debug(f"Lookup failed for {candidate}: {e}")
                continue

            if not lookup.valid:
                continue

            move = BotMove(word=candidate, lemma=lookup.canonical_form, point_value=lookup.point_value)
            if any(form in used_answers for form in move.forms):
                continue
            return move
        return None

    async def _try_random_words(self, prefix: str, used_answers: set[str]) -> Optional[BotMove]:
        for attempt in range(1, self.random_attempts + 1):
            try:
                random_word = await self.oracle.random_word()
            except OracleError as e:
                logger.debug(f"Random word attempt {attempt} failed: {e}")
                continue

            cleaned = clean_word(random_word.word)
            if not cleaned.startswith(prefix) or len(cleaned) <= len(prefix):
                continue

            move = BotMove(word=random_word.word, point_value=random_word.point_value)
            if any(form in used_answers for form in move.forms):
                continue

            logger.info(f"Found word with random search (attempt {attempt}): {move.word}")
            return move
        return None
