"""Result objects returned by every engine operation.

Engine calls never raise for gameplay or precondition problems. They return
a GameResult whose ``reason`` names the exact cause of a failure, so the cog
can render any outcome without looking at engine internals.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from wordchain.session import GameSession, Player
    from wordchain.words import CurrentWord


class Reason(str, Enum):
    """Why an operation was refused."""
    GAME_NOT_FOUND = "game_not_found"
    GAME_EXISTS = "game_exists"
    ALREADY_STARTED = "already_started"
    NOT_PLAYING = "not_playing"
    NOT_IN_LOBBY = "not_in_lobby"
    BANNED = "banned"
    ALREADY_JOINED = "already_joined"
    LOBBY_FULL = "lobby_full"
    NOT_ENOUGH_PLAYERS = "not_enough_players"
    NOT_A_PLAYER = "not_a_player"
    ALREADY_GAVE_UP = "already_gave_up"
    NOT_YOUR_TURN = "not_your_turn"
    NOT_LOBBY_MASTER = "not_lobby_master"
    CANNOT_TARGET_SELF = "cannot_target_self"
    PLAYER_NOT_FOUND = "player_not_found"
    INVALID_WORD = "invalid_word"
    DUPLICATE_WORD = "duplicate_word"
    WRONG_PREFIX = "wrong_prefix"
    ROLL_LIMIT_REACHED = "roll_limit_reached"
    ORACLE_UNAVAILABLE = "oracle_unavailable"
    INVALID_SETTING = "invalid_setting"
    TURN_RESOLVED = "turn_resolved"
    NOT_BOT_TURN = "not_bot_turn"
    MASTER_CANNOT_LEAVE = "master_cannot_leave"


# Rejections that are part of normal play: the same player simply tries again
GAMEPLAY_REJECTIONS = frozenset({Reason.INVALID_WORD, Reason.DUPLICATE_WORD, Reason.WRONG_PREFIX})


class EndReason(str, Enum):
    """Why a game finished."""
    WIN_THRESHOLD = "win_threshold"
    LAST_PLAYER_STANDING = "last_player_standing"
    ALL_GAVE_UP = "all_gave_up"
    ALL_TIMED_OUT = "all_timed_out"

    @property
    def description(self) -> str:
        return {
            EndReason.WIN_THRESHOLD: "Reached the winning score",
            EndReason.LAST_PLAYER_STANDING: "Last player standing",
            EndReason.ALL_GAVE_UP: "All players gave up",
            EndReason.ALL_TIMED_OUT: "All players timed out",
        }[self]


@dataclass
class GameResult:
    """Outcome of an engine operation."""
    success: bool
    message: str
    reason: Optional[Reason] = None

    game: Optional["GameSession"] = None
    word: Optional["CurrentWord"] = None
    next_word: Optional["CurrentWord"] = None
    points: Optional[int] = None

    game_ended: bool = False
    winner: Optional["Player"] = None
    end_reason: Optional[EndReason] = None
    next_player: Optional["Player"] = None

    timeout: bool = False
    timed_out_player: Optional["Player"] = None

    bot_answer: Optional[str] = None
    bot_gave_up: bool = False

    rolls_used: Optional[int] = None
    max_rolls: Optional[int] = None
    target: Optional["Player"] = None

    @classmethod
    def ok(cls, message: str, **extra: Any) -> "GameResult":
        return cls(success=True, message=message, **extra)

    @classmethod
    def fail(cls, reason: Reason, message: str, **extra: Any) -> "GameResult":
        return cls(success=False, message=message, reason=reason, **extra)

    @property
    def is_gameplay_rejection(self) -> bool:
        """True for invalid, duplicate or wrong-prefix answers."""
        return not self.success and self.reason in GAMEPLAY_REJECTIONS

    def __bool__(self) -> bool:
        return self.success
