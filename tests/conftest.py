from __future__ import annotations

import asyncio
import random
from typing import Optional

import pytest

from wordchain.engine import EngineSettings, WordChainEngine
from wordchain.exceptions import OracleError
from wordchain.oracle import RandomWord, WordLookup

CHANNEL = "1001"


class FakeOracle:
    """Scripted stand-in for the KBBI client.

    Words registered with ``add_word`` are valid, everything else is not.
    Random words are served from a queue; an empty queue raises OracleError.
    Setting ``lookup_gate`` / ``random_gate`` to an asyncio.Event holds the
    call until the event is set.
    """

    def __init__(self):
        self.words: dict[str, WordLookup] = {}
        self.random_words: list[str] = []
        self.lookup_error: Optional[Exception] = None
        self.random_error: Optional[Exception] = None
        self.lookup_gate: Optional[asyncio.Event] = None
        self.random_gate: Optional[asyncio.Event] = None
        self.lookup_calls: list[str] = []
        self.random_calls = 0
        self.closed = False

    def add_word(self, word: str, lemma: Optional[str] = None, points: Optional[int] = None) -> None:
        self.words[word.lower()] = WordLookup(valid=True, canonical_form=lemma or word, point_value=points)

    def queue_random(self, *words: str) -> None:
        self.random_words.extend(words)

    async def lookup(self, word: str) -> WordLookup:
        self.lookup_calls.append(word)
        if self.lookup_gate is not None:
            await self.lookup_gate.wait()
        if self.lookup_error is not None:
            raise self.lookup_error
        return self.words.get(word.strip().lower(), WordLookup(valid=False))

    async def random_word(self) -> RandomWord:
        self.random_calls += 1
        if self.random_gate is not None:
            await self.random_gate.wait()
        if self.random_error is not None:
            raise self.random_error
        if not self.random_words:
            raise OracleError("no random words queued")
        return RandomWord(word=self.random_words.pop(0))

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def oracle() -> FakeOracle:
    return FakeOracle()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def engine_settings() -> EngineSettings:
    # No random bonus, so a 3-letter prefix is always worth 3 points
    return EngineSettings(prompt_bonus_max=0)


@pytest.fixture
def engine(oracle: FakeOracle, rng: random.Random, engine_settings: EngineSettings) -> WordChainEngine:
    return WordChainEngine(oracle, settings=engine_settings, rng=rng)


@pytest.fixture
def lobby(engine: WordChainEngine):
    """Return a factory opening a lobby with the given players, first one as master."""

    def _open(*names: str, channel_id: str = CHANNEL, **options):
        master = names[0] if names else None
        result = engine.create(channel_id, lobby_master_id=master, **options)
        assert result.success
        for name in names:
            assert engine.join(channel_id, name, name.title()).success
        return result.game

    return _open


@pytest.fixture
def started_game(engine: WordChainEngine, oracle: FakeOracle, lobby):
    """Return a coroutine factory: open a lobby, start it on "makan" (prefix "kan")."""

    async def _start(*names: str, opening: str = "makan", channel_id: str = CHANNEL, **options):
        game = lobby(*names, channel_id=channel_id, **options)
        oracle.queue_random(opening)
        result = await engine.start(channel_id)
        assert result.success, result.message
        return game

    return _start
