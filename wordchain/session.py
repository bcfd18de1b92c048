"""Session management for channel-scoped word chain games.

Key concepts:
- A GameSession is ONE game (lobby, in progress, or just finished) in ONE channel
- session key = channel_id; a channel never holds two sessions at once
- Sessions live only in memory and are dropped from the store when they end
- The GameStore is an ordinary object owned by the engine, so every test (or
  every bot instance) gets its own independent set of games
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional

from wordchain.constants import (
    DEFAULT_BOT_ENABLED,
    DEFAULT_DIFFICULTY,
    DEFAULT_LANGUAGE,
    DEFAULT_MAX_ROLLS,
    DEFAULT_TIME_LIMIT,
    DIFFICULTIES,
)
from wordchain.exceptions import ValidationError
from wordchain.results import GameResult, Reason
from wordchain.words import CurrentWord

logger = logging.getLogger('wordchain_bot')

SETTING_KEYS = ("difficulty", "time_limit_seconds", "max_rolls_per_player", "bot_opponent_enabled")
CREATE_KEYS = SETTING_KEYS + ("lobby_master_id", "language")


class GameStatus(str, Enum):
    LOBBY = "lobby"
    PLAYING = "playing"
    ENDED = "ended"


class PlayerStatus(str, Enum):
    ACTIVE = "active"
    GAVE_UP = "gave_up"


@dataclass
class Player:
    """A participant of one session."""
    user_id: str
    display_name: str
    points: int = 0
    status: PlayerStatus = PlayerStatus.ACTIVE
    is_lobby_master: bool = False
    is_bot: bool = False

    @property
    def is_active(self) -> bool:
        return self.status == PlayerStatus.ACTIVE


@dataclass
class GameSession:
    """All state of one word chain game.

    Attributes:
        channel_id: Discord channel this game runs in (unique key)
        status: lobby -> playing -> ended, never backwards
        players: join order, lobby master always first
        turn_index: index into the ACTIVE players, taken modulo their count
        current_word: prompt the current player must continue from
        used_answers: every normalised form accepted so far, only grows
        max_rolls_per_player: roll cap per player, None for unlimited
        player_roll_counts: user_id -> rolls consumed
        banned_player_ids: users who may not rejoin this session
        lobby_master_id: user allowed to start/configure/kick/cancel
        turn_timer: pending expiry task for the current turn
        turn_started_at: when the current turn's timer started
        turn_generation: bumped whenever a turn begins or resolves
        message_id: Discord message currently showing this game
    """
    channel_id: str
    status: GameStatus = GameStatus.LOBBY
    players: list[Player] = field(default_factory=list)
    turn_index: int = 0
    current_word: Optional[CurrentWord] = None
    used_answers: set[str] = field(default_factory=set)

    difficulty: str = DEFAULT_DIFFICULTY
    time_limit_seconds: float = DEFAULT_TIME_LIMIT
    max_rolls_per_player: Optional[int] = DEFAULT_MAX_ROLLS
    bot_opponent_enabled: bool = DEFAULT_BOT_ENABLED
    language: str = DEFAULT_LANGUAGE

    player_roll_counts: dict[str, int] = field(default_factory=dict)
    banned_player_ids: set[str] = field(default_factory=set)
    lobby_master_id: Optional[str] = None

    turn_timer: Optional[asyncio.Task] = field(default=None, repr=False)
    turn_started_at: Optional[float] = None
    turn_generation: int = 0

    message_id: Optional[int] = None
    created_at: float = field(default_factory=time.time)

    def find_player(self, user_id: str) -> Optional[Player]:
        for player in self.players:
            if player.user_id == user_id:
                return player
        return None

    def active_players(self) -> list[Player]:
        return [p for p in self.players if p.is_active]

    def current_player(self) -> Optional[Player]:
        """Player whose turn it is, None outside of play."""
        if self.status != GameStatus.PLAYING:
            return None
        active = self.active_players()
        if not active:
            return None
        return active[self.turn_index % len(active)]

    def is_player_turn(self, user_id: str) -> bool:
        current = self.current_player()
        return current is not None and current.user_id == user_id

    def is_used(self, forms: Iterable[str]) -> bool:
        return any(form in self.used_answers for form in forms)

    def rolls_used(self, user_id: str) -> int:
        return self.player_roll_counts.get(user_id, 0)

    @property
    def has_human_players(self) -> bool:
        return any(not p.is_bot for p in self.players)

    def __repr__(self) -> str:
        return f"GameSession(channel={self.channel_id}, status={self.status.value}, players={len(self.players)})"


def validate_settings(changes: dict[str, Any]) -> dict[str, Any]:
    """Check and canonicalise game settings.

    Raises:
        ValidationError: unknown key or out-of-range value
    """
    clean: dict[str, Any] = {}
    for key, value in changes.items():
        if key not in SETTING_KEYS:
            raise ValidationError(f"Unknown setting: {key}")

        if key == "difficulty":
            match = next((d for d in DIFFICULTIES if isinstance(value, str) and d.lower() == value.lower()), None)
            if match is None:
                raise ValidationError(f"Difficulty must be one of {', '.join(DIFFICULTIES)}")
            clean[key] = match
        elif key == "time_limit_seconds":
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ValidationError("Time limit must be a positive number of seconds")
            clean[key] = value
        elif key == "max_rolls_per_player":
            if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 0):
                raise ValidationError("Max rolls must be a non-negative number or unlimited")
            clean[key] = value
        elif key == "bot_opponent_enabled":
            if not isinstance(value, bool):
                raise ValidationError("Bot opponent must be enabled or disabled")
            clean[key] = value
    return clean


class GameStore:
    """Single source of truth mapping channel -> session.

    No locking: every mutation runs on the bot's event loop, and channels
    are independent of each other.
    """

    def __init__(self):
        self._games: dict[str, GameSession] = {}

    def create(self, channel_id: str, **options: Any) -> GameResult:
        """Create a lobby for a channel.

        Settings left out of ``options`` fall back to the defaults. Passing
        ``max_rolls_per_player=None`` explicitly means unlimited rolls.

        Returns:
            GameResult with ``game`` set on success; GAME_EXISTS if the
            channel already has a session (the existing one is untouched)
        """
        if channel_id in self._games:
            return GameResult.fail(
                Reason.GAME_EXISTS,
                "There is already an active word chain game in this channel!",
                game=self._games[channel_id],
            )

        unknown = set(options) - set(CREATE_KEYS)
        if unknown:
            return GameResult.fail(Reason.INVALID_SETTING, f"Unknown option: {', '.join(sorted(unknown))}")

        try:
            settings = validate_settings({k: v for k, v in options.items() if k in SETTING_KEYS})
        except ValidationError as e:
            return GameResult.fail(Reason.INVALID_SETTING, str(e))

        game = GameSession(
            channel_id=channel_id,
            lobby_master_id=options.get("lobby_master_id"),
            language=options.get("language") or DEFAULT_LANGUAGE,
            **settings,
        )
        self._games[channel_id] = game
        logger.info(f"Created word chain lobby: {game}")
        return GameResult.ok("Game created!", game=game)

    def get(self, channel_id: str) -> Optional[GameSession]:
        return self._games.get(channel_id)

    def remove(self, channel_id: str) -> Optional[GameSession]:
        """Drop a session unconditionally; returns it if there was one."""
        game = self._games.pop(channel_id, None)
        if game:
            logger.info(f"Removed word chain session: {game}")
        return game

    def all_sessions(self) -> list[GameSession]:
        return list(self._games.values())

    def __contains__(self, channel_id: object) -> bool:
        return channel_id in self._games

    def __len__(self) -> int:
        return len(self._games)
