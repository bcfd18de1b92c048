"""Turn timer manager for word chain sessions.

Each playing session has at most one pending timer task, stored on the
session itself. When a timer fires it does not touch the session directly:
it emits a TurnExpired event for (channel, turn generation) and lets the
engine decide whether that turn is still live. A turn that was already
resolved by an answer or a give-up has a newer generation, so a late timer
is ignored.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Union

from wordchain.session import GameSession, GameStatus

if TYPE_CHECKING:
    from wordchain.results import GameResult
    from wordchain.session import GameStore

logger = logging.getLogger('wordchain_bot.timers')

ExpireCallback = Callable[["GameResult"], Union[Awaitable[Any], Any]]


def _current_task() -> Optional[asyncio.Task]:
    try:
        return asyncio.current_task()
    except RuntimeError:
        # Called from synchronous code with no running loop
        return None


@dataclass(frozen=True)
class TurnExpired:
    """A turn's time ran out."""
    channel_id: str
    generation: int


class TurnTimerManager:
    def __init__(self, store: "GameStore", resolve_expired: Callable[[TurnExpired], Optional["GameResult"]]):
        self.store = store
        self.resolve_expired = resolve_expired

    def start_turn_timer(self, channel_id: str, on_expire: Optional[ExpireCallback] = None) -> Optional[asyncio.Task]:
        """Start the countdown for the current turn of a playing session.

        Any previous timer of the session is cancelled first.

        Returns:
            The scheduled task, or None if there is no game in progress
        """
        game = self.store.get(channel_id)
        if not game or game.status != GameStatus.PLAYING:
            return None

        self.cancel(game)

        event = TurnExpired(channel_id=channel_id, generation=game.turn_generation)
        game.turn_started_at = time.time()
        game.turn_timer = asyncio.create_task(self._expire_after(game.time_limit_seconds, event, on_expire))
        logger.debug(f"Turn timer started for channel {channel_id} ({game.time_limit_seconds}s, generation {event.generation})")
        return game.turn_timer

    def clear_turn_timer(self, channel_id: str) -> None:
        """Cancel the pending timer of a channel, if any. Idempotent."""
        game = self.store.get(channel_id)
        if game:
            self.cancel(game)

    def cancel(self, game: GameSession) -> None:
        """Cancel a session's timer even if it is no longer in the store."""
        task = game.turn_timer
        game.turn_timer = None
        game.turn_started_at = None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()
            logger.debug(f"Turn timer cancelled for channel {game.channel_id}")

    def pending(self, channel_id: str) -> bool:
        game = self.store.get(channel_id)
        return bool(game and game.turn_timer is not None and not game.turn_timer.done())

    def remaining(self, channel_id: str) -> Optional[float]:
        """Seconds left on the current turn, None without a running timer."""
        game = self.store.get(channel_id)
        if not game or game.turn_started_at is None:
            return None
        return max(0.0, game.turn_started_at + game.time_limit_seconds - time.time())

    async def _expire_after(self, delay: float, event: TurnExpired, on_expire: Optional[ExpireCallback]) -> None:
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            return

        # Detach first so the callback can start the next turn's timer
        game = self.store.get(event.channel_id)
        if game is not None and game.turn_timer is asyncio.current_task():
            game.turn_timer = None
            game.turn_started_at = None

        try:
            result = self.resolve_expired(event)
        except Exception:
            logger.exception(f"Error resolving expired turn in channel {event.channel_id}")
            return

        if result is None:
            logger.debug(f"Ignoring stale turn timer for channel {event.channel_id} (generation {event.generation})")
            return

        if on_expire is None:
            return
        try:
            outcome = on_expire(result)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception(f"Error in turn timeout callback for channel {event.channel_id}")
