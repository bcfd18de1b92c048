"""Word chain game engine.

Lobby operations, turn handling, bot turns and turn timers for every
channel's game. All state lives in the engine's GameStore; callers look
games up by channel id on each call and never keep a session around.

Every public operation returns a GameResult instead of raising. Operations
that wait on the dictionary API re-check the game after the await: if the
game ended, or the turn moved on meanwhile (timeout, give-up), nothing is
committed and the call fails with TURN_RESOLVED or GAME_NOT_FOUND.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from wordchain.bot_player import BotStrategy
from wordchain.constants import (
    BOT_DISPLAY_NAME,
    BOT_RANDOM_ATTEMPTS,
    BOT_USER_ID,
    MAX_PLAYERS,
    PROMPT_BONUS_MAX,
    PROMPT_MAX_POINTS,
    PROMPT_MIN_POINTS,
    WIN_THRESHOLD,
)
from wordchain.exceptions import OracleError, ValidationError
from wordchain.results import EndReason, GameResult, Reason
from wordchain.session import (
    GameSession,
    GameStatus,
    GameStore,
    Player,
    PlayerStatus,
    validate_settings,
)
from wordchain.timers import ExpireCallback, TurnExpired, TurnTimerManager
from wordchain.words import CurrentWord, clean_word, derive_prompt, normalized_forms

if TYPE_CHECKING:
    from wordchain.config import Settings
    from wordchain.oracle import WordOracle

logger = logging.getLogger('wordchain_bot')


@dataclass(frozen=True)
class EngineSettings:
    """Tuning knobs of the game rules."""
    win_threshold: int = WIN_THRESHOLD
    prompt_min_points: int = PROMPT_MIN_POINTS
    prompt_max_points: int = PROMPT_MAX_POINTS
    prompt_bonus_max: int = PROMPT_BONUS_MAX
    bot_random_attempts: int = BOT_RANDOM_ATTEMPTS
    max_players: int = MAX_PLAYERS

    @classmethod
    def from_settings(cls, settings: "Settings") -> "EngineSettings":
        return cls(
            win_threshold=settings.win_threshold,
            prompt_min_points=settings.prompt_min_points,
            prompt_max_points=settings.prompt_max_points,
            prompt_bonus_max=settings.prompt_bonus_max,
            bot_random_attempts=settings.bot_random_attempts,
        )


class WordChainEngine:
    def __init__(
        self,
        oracle: "WordOracle",
        store: Optional[GameStore] = None,
        settings: Optional[EngineSettings] = None,
        rng: Optional[random.Random] = None,
        bot_strategy: Optional[BotStrategy] = None,
    ):
        self.oracle = oracle
        self.store = store if store is not None else GameStore()
        self.settings = settings or EngineSettings()
        self.rng = rng or random.Random()
        self.bot = bot_strategy or BotStrategy(oracle, random_attempts=self.settings.bot_random_attempts)
        self.timers = TurnTimerManager(self.store, self._resolve_expired_turn)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_game(self, channel_id: str) -> Optional[GameSession]:
        return self.store.get(channel_id)

    def get_current_player(self, channel_id: str) -> Optional[Player]:
        game = self.store.get(channel_id)
        return game.current_player() if game else None

    def is_player_turn(self, channel_id: str, user_id: str) -> bool:
        game = self.store.get(channel_id)
        return bool(game and game.is_player_turn(user_id))

    def player_list(self, channel_id: str) -> str:
        game = self.store.get(channel_id)
        if not game or not game.players:
            return "None"
        return "\n".join(f"{p.display_name} ({p.points} pts)" for p in game.players)

    def set_game_message(self, channel_id: str, message_id: Optional[int]) -> None:
        game = self.store.get(channel_id)
        if game:
            game.message_id = message_id

    # ------------------------------------------------------------------
    # Lobby
    # ------------------------------------------------------------------

    def create(self, channel_id: str, **options: Any) -> GameResult:
        """Open a lobby in a channel. Fails if the channel already has a game."""
        return self.store.create(channel_id, **options)

    def join(self, channel_id: str, user_id: str, display_name: str) -> GameResult:
        game = self.store.get(channel_id)
        if not game:
            return GameResult.fail(Reason.GAME_NOT_FOUND, "Game not found!")
        if game.status != GameStatus.LOBBY:
            return GameResult.fail(Reason.ALREADY_STARTED, "Game has already started!")
        if user_id in game.banned_player_ids:
            return GameResult.fail(Reason.BANNED, "You have been banned from this game!")
        if game.find_player(user_id):
            return GameResult.fail(Reason.ALREADY_JOINED, "You have already joined this game!")
        if len(game.players) >= self.settings.max_players:
            return GameResult.fail(
                Reason.LOBBY_FULL,
                f"Game is full! Maximum {self.settings.max_players} players allowed."
            )

        if user_id == game.lobby_master_id:
            game.players.insert(0, Player(user_id=user_id, display_name=display_name, is_lobby_master=True))
        else:
            game.players.append(Player(user_id=user_id, display_name=display_name))

        logger.info(f"{display_name} joined word chain lobby in channel {channel_id}")
        return GameResult.ok("Successfully joined the game!", game=game)

    def leave(self, channel_id: str, user_id: str) -> GameResult:
        game = self.store.get(channel_id)
        if not game:
            return GameResult.fail(Reason.GAME_NOT_FOUND, "Game not found!")
        if game.status != GameStatus.LOBBY:
            return GameResult.fail(Reason.NOT_IN_LOBBY, "You can only leave while the game is in the lobby!")
        player = game.find_player(user_id)
        if not player:
            return GameResult.fail(Reason.NOT_A_PLAYER, "You are not part of this game!")
        if player.is_lobby_master:
            return GameResult.fail(
                Reason.MASTER_CANNOT_LEAVE,
                "The lobby master cannot leave. Use Exit to cancel the game instead."
            )

        game.players.remove(player)
        return GameResult.ok("You left the game.", game=game, target=player)

    def kick(self, channel_id: str, requester_id: str, target_id: str) -> GameResult:
        return self._remove_from_lobby(channel_id, requester_id, target_id, ban=False)

    def ban(self, channel_id: str, requester_id: str, target_id: str) -> GameResult:
        return self._remove_from_lobby(channel_id, requester_id, target_id, ban=True)

    def _remove_from_lobby(self, channel_id: str, requester_id: str, target_id: str, ban: bool) -> GameResult:
        verb = "ban" if ban else "kick"
        game = self.store.get(channel_id)
        if not game:
            return GameResult.fail(Reason.GAME_NOT_FOUND, "Game not found!")
        if game.status != GameStatus.LOBBY:
            return GameResult.fail(Reason.NOT_IN_LOBBY, f"Can only {verb} players in lobby!")
        if game.lobby_master_id != requester_id:
            return GameResult.fail(Reason.NOT_LOBBY_MASTER, f"Only the lobby master can {verb} players!")
        if target_id == requester_id:
            return GameResult.fail(Reason.CANNOT_TARGET_SELF, f"Lobby master cannot {verb} themselves!")

        target = game.find_player(target_id)
        if not target:
            return GameResult.fail(Reason.PLAYER_NOT_FOUND, "Player not found in game!")

        game.players.remove(target)
        if ban:
            game.banned_player_ids.add(target_id)

        past = "banned" if ban else "kicked"
        logger.info(f"{target.display_name} was {past} from word chain lobby in channel {channel_id}")
        return GameResult.ok(f"{target.display_name} has been {past} from the game!", game=game, target=target)

    def update_settings(self, channel_id: str, requester_id: Optional[str] = None, **changes: Any) -> GameResult:
        """Merge new settings into a lobby; unspecified settings stay as they are."""
        game = self.store.get(channel_id)
        if not game:
            return GameResult.fail(Reason.GAME_NOT_FOUND, "Game not found!")
        if game.status != GameStatus.LOBBY:
            return GameResult.fail(Reason.NOT_IN_LOBBY, "Cannot change settings after game has started!")
        if requester_id is not None and requester_id != game.lobby_master_id:
            return GameResult.fail(Reason.NOT_LOBBY_MASTER, "Only the lobby master can change settings!")

        try:
            clean = validate_settings(changes)
        except ValidationError as e:
            return GameResult.fail(Reason.INVALID_SETTING, str(e))

        for key, value in clean.items():
            setattr(game, key, value)
        return GameResult.ok("Settings updated!", game=game)

    def exit(self, channel_id: str, requester_id: Optional[str] = None) -> GameResult:
        """Cancel a game. Without a requester the removal is unconditional."""
        game = self.store.get(channel_id)
        if not game:
            return GameResult.fail(Reason.GAME_NOT_FOUND, "No active game found!")
        if requester_id is not None and requester_id != game.lobby_master_id:
            return GameResult.fail(Reason.NOT_LOBBY_MASTER, "Only the lobby master can cancel the game!")

        self._discard(game)
        return GameResult.ok("Game cancelled successfully!", game=game)

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def start(self, channel_id: str, requester_id: Optional[str] = None) -> GameResult:
        game = self.store.get(channel_id)
        if not game:
            return GameResult.fail(Reason.GAME_NOT_FOUND, "Game not found!")
        if game.status != GameStatus.LOBBY:
            return GameResult.fail(Reason.ALREADY_STARTED, "Game has already started!")
        if requester_id is not None and requester_id != game.lobby_master_id:
            return GameResult.fail(Reason.NOT_LOBBY_MASTER, "Only the lobby master can start the game!")
        if not game.active_players():
            return GameResult.fail(Reason.NOT_ENOUGH_PLAYERS, "At least 1 player is required to start the game!")

        try:
            opening = await self._fetch_prompt()
        except OracleError as e:
            logger.error(f"Error fetching starting word from KBBI API: {e}")
            return GameResult.fail(
                Reason.ORACLE_UNAVAILABLE,
                "Failed to start game. Could not fetch starting word from the dictionary. Please try again."
            )

        # Lobby may have changed while waiting on the dictionary
        if self.store.get(channel_id) is not game:
            return GameResult.fail(Reason.GAME_NOT_FOUND, "Game not found!")
        if game.status != GameStatus.LOBBY:
            return GameResult.fail(Reason.ALREADY_STARTED, "Game has already started!")
        active = game.active_players()
        if not active:
            return GameResult.fail(Reason.NOT_ENOUGH_PLAYERS, "At least 1 player is required to start the game!")

        if (
            len(active) == 1
            and game.bot_opponent_enabled
            and not any(p.is_bot for p in game.players)
            and len(game.players) < self.settings.max_players
        ):
            game.players.append(Player(user_id=BOT_USER_ID, display_name=BOT_DISPLAY_NAME, is_bot=True))

        game.current_word = opening
        game.status = GameStatus.PLAYING
        game.turn_index = 0
        game.turn_generation += 1

        logger.info(f"Word chain started in channel {channel_id} with {len(game.players)} players, prefix '{opening.match_prefix}'")
        return GameResult.ok(
            "Game started successfully!",
            game=game,
            word=opening,
            next_player=game.current_player(),
        )

    async def submit_answer(self, channel_id: str, user_id: str, raw_answer: str) -> GameResult:
        game = self.store.get(channel_id)
        if not game:
            return GameResult.fail(Reason.GAME_NOT_FOUND, "Game not found!")
        if game.status != GameStatus.PLAYING:
            return GameResult.fail(Reason.NOT_PLAYING, "Game is not currently active!")
        player = game.find_player(user_id)
        if not player:
            return GameResult.fail(Reason.NOT_A_PLAYER, "You are not part of this game!")
        if not player.is_active:
            return GameResult.fail(Reason.ALREADY_GAVE_UP, "You have already given up!")
        if not game.is_player_turn(user_id):
            return self._not_your_turn(game, "It's not your turn! It's {name}'s turn.")

        answer = (raw_answer or "").strip()
        if not clean_word(answer):
            return GameResult.fail(Reason.INVALID_WORD, "Please answer with a word.")

        generation = game.turn_generation
        try:
            lookup = await self.oracle.lookup(answer)
        except OracleError as e:
            logger.error(f"Error validating answer {answer!r}: {e}")
            return GameResult.fail(
                Reason.ORACLE_UNAVAILABLE,
                "Could not reach the dictionary service. Please try again."
            )

        stale = self._check_turn_live(channel_id, game, user_id, generation)
        if stale is not None:
            return stale

        if not lookup.valid:
            return GameResult.fail(Reason.INVALID_WORD, f'"{answer}" is not a valid word. Please try again!')

        forms = normalized_forms(answer, lookup.canonical_form)
        if game.is_used(forms):
            return GameResult.fail(
                Reason.DUPLICATE_WORD,
                f'"{answer}" has already been used. Please try a different word!'
            )

        required = game.current_word.match_prefix
        if not clean_word(answer).startswith(required):
            return GameResult.fail(Reason.WRONG_PREFIX, f'Your word must start with "{required}". Please try again!')

        points = lookup.point_value or len(answer)
        return self._accept_answer(game, player, answer, forms, points, "Correct answer!")

    def give_up(self, channel_id: str, user_id: str) -> GameResult:
        """Concede. In the lobby anyone may; during play only the turn holder."""
        game = self.store.get(channel_id)
        if not game:
            return GameResult.fail(Reason.GAME_NOT_FOUND, "Game not found!")
        player = game.find_player(user_id)
        if not player:
            return GameResult.fail(Reason.NOT_A_PLAYER, "You are not part of this game!")
        if not player.is_active:
            return GameResult.fail(Reason.ALREADY_GAVE_UP, "You have already given up!")

        if game.status == GameStatus.LOBBY:
            player.status = PlayerStatus.GAVE_UP
            return GameResult.ok("You gave up before the game started.", game=game)
        if game.status != GameStatus.PLAYING:
            return GameResult.fail(Reason.NOT_PLAYING, "Game is not currently active!")
        if not game.is_player_turn(user_id):
            return self._not_your_turn(game, "It's not your turn! Only {name} can give up.")

        return self._concede(game, player, "You gave up! Better luck next time.", EndReason.ALL_GAVE_UP)

    async def roll_new_word(self, channel_id: str, user_id: str) -> GameResult:
        """Replace the prompt with a fresh random one without using up the turn."""
        game = self.store.get(channel_id)
        if not game:
            return GameResult.fail(Reason.GAME_NOT_FOUND, "No active game found!")
        if game.status != GameStatus.PLAYING:
            return GameResult.fail(Reason.NOT_PLAYING, "Game is not currently active!")
        player = game.find_player(user_id)
        if not player:
            return GameResult.fail(Reason.NOT_A_PLAYER, "You are not part of this game!")
        if not game.is_player_turn(user_id):
            return self._not_your_turn(game, "It's not your turn! Only {name} can roll.")

        cap = game.max_rolls_per_player
        if cap is not None and game.rolls_used(user_id) >= cap:
            return GameResult.fail(Reason.ROLL_LIMIT_REACHED, f"You have reached the maximum of {cap} rolls!")

        generation = game.turn_generation
        try:
            prompt = await self._fetch_prompt()
        except OracleError as e:
            logger.error(f"Error fetching random word from KBBI API: {e}")
            return GameResult.fail(
                Reason.ORACLE_UNAVAILABLE,
                "Failed to roll new word. Could not fetch a word from the dictionary."
            )

        stale = self._check_turn_live(channel_id, game, user_id, generation)
        if stale is not None:
            return stale
        # Another roll may have finished during the await
        if cap is not None and game.rolls_used(user_id) >= cap:
            return GameResult.fail(Reason.ROLL_LIMIT_REACHED, f"You have reached the maximum of {cap} rolls!")

        used = game.rolls_used(user_id) + 1
        game.player_roll_counts[user_id] = used
        game.current_word = prompt

        cap_text = "Unlimited" if cap is None else str(cap)
        return GameResult.ok(
            f"New word rolled! ({used}/{cap_text} rolls used)",
            game=game,
            word=prompt,
            rolls_used=used,
            max_rolls=cap,
        )

    async def play_bot_turn(self, channel_id: str) -> GameResult:
        """Let the bot opponent take its turn.

        The bot concedes like a human when it finds nothing, or when its
        search blows up.
        """
        game = self.store.get(channel_id)
        if not game or game.status != GameStatus.PLAYING:
            return GameResult.fail(Reason.NOT_PLAYING, "No active game!")
        bot_player = game.current_player()
        if not bot_player or not bot_player.is_bot:
            return GameResult.fail(Reason.NOT_BOT_TURN, "Not bot's turn!")

        generation = game.turn_generation
        prefix = game.current_word.match_prefix
        try:
            move = await self.bot.find_word(prefix, game.used_answers)
        except Exception:
            logger.exception(f"Error in bot turn for channel {channel_id}")
            move = None

        stale = self._check_turn_live(channel_id, game, bot_player.user_id, generation)
        if stale is not None:
            return stale

        if move is None or game.is_used(move.forms) or not clean_word(move.word).startswith(prefix):
            logger.info(f"{bot_player.display_name} gives up on prefix '{prefix}'")
            return self._concede(
                game,
                bot_player,
                f"{bot_player.display_name} couldn't find a valid word and gave up!",
                EndReason.ALL_GAVE_UP,
                bot_gave_up=True,
            )

        points = move.point_value or len(move.word)
        return self._accept_answer(
            game,
            bot_player,
            move.word,
            move.forms,
            points,
            f"{bot_player.display_name} answered: {move.word}",
            bot_answer=move.word,
        )

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def start_turn_timer(self, channel_id: str, on_expire: Optional[ExpireCallback] = None) -> GameResult:
        task = self.timers.start_turn_timer(channel_id, on_expire)
        if task is None:
            return GameResult.fail(Reason.NOT_PLAYING, "No game in progress!")
        return GameResult.ok("Turn timer started.", game=self.store.get(channel_id))

    def clear_turn_timer(self, channel_id: str) -> GameResult:
        self.timers.clear_turn_timer(channel_id)
        return GameResult.ok("Turn timer cleared.")

    def _resolve_expired_turn(self, event: TurnExpired) -> Optional[GameResult]:
        """Apply a timeout, or return None if that turn is already over."""
        game = self.store.get(event.channel_id)
        if not game or game.status != GameStatus.PLAYING or game.turn_generation != event.generation:
            return None
        current = game.current_player()
        if not current:
            return None

        logger.info(f"Turn timed out for {current.display_name} in channel {event.channel_id}")
        return self._concede(
            game,
            current,
            f"Time's up for {current.display_name}!",
            EndReason.ALL_TIMED_OUT,
            timeout=True,
            timed_out_player=current,
        )

    async def shutdown(self) -> None:
        """Cancel every pending timer and close the dictionary client."""
        for game in self.store.all_sessions():
            self.timers.cancel(game)
        await self.oracle.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _fetch_prompt(self) -> CurrentWord:
        random_word = await self.oracle.random_word()
        try:
            return derive_prompt(
                random_word.word,
                self.rng,
                self.settings.prompt_min_points,
                self.settings.prompt_max_points,
                self.settings.prompt_bonus_max,
            )
        except ValueError as e:
            raise OracleError(f"Unusable word from dictionary: {random_word.word!r}") from e

    def _not_your_turn(self, game: GameSession, template: str) -> GameResult:
        current = game.current_player()
        name = current.display_name if current else "someone else"
        return GameResult.fail(Reason.NOT_YOUR_TURN, template.format(name=name), next_player=current)

    def _check_turn_live(self, channel_id: str, game: GameSession, user_id: str, generation: int) -> Optional[GameResult]:
        """Failure result if the turn we awaited on is no longer current."""
        if self.store.get(channel_id) is not game:
            return GameResult.fail(Reason.GAME_NOT_FOUND, "The game ended while your move was being checked.")
        if (
            game.status != GameStatus.PLAYING
            or game.turn_generation != generation
            or not game.is_player_turn(user_id)
        ):
            return GameResult.fail(Reason.TURN_RESOLVED, "Your turn ended before your move was checked.")
        return None

    def _accept_answer(
        self,
        game: GameSession,
        player: Player,
        answer: str,
        forms: tuple[str, ...],
        points: int,
        message: str,
        **extra: Any,
    ) -> GameResult:
        self.timers.cancel(game)
        game.used_answers.update(forms)
        logger.info(f"Added to used answers: {', '.join(forms)}")

        player.points += points
        game.turn_generation += 1

        if player.points >= self.settings.win_threshold:
            return self._end_game(game, player, EndReason.WIN_THRESHOLD, message, points=points, **extra)

        next_word = derive_prompt(
            answer,
            self.rng,
            self.settings.prompt_min_points,
            self.settings.prompt_max_points,
            self.settings.prompt_bonus_max,
        )
        game.current_word = next_word
        active_count = len(game.active_players())
        game.turn_index = (game.turn_index % active_count + 1) % active_count

        return GameResult.ok(
            message,
            game=game,
            points=points,
            next_word=next_word,
            next_player=game.current_player(),
            **extra,
        )

    def _concede(
        self,
        game: GameSession,
        player: Player,
        message: str,
        all_out_reason: EndReason,
        **extra: Any,
    ) -> GameResult:
        self.timers.cancel(game)
        # Position of the conceding player among the active players before removal
        position = game.turn_index % len(game.active_players())
        player.status = PlayerStatus.GAVE_UP
        game.turn_generation += 1

        active = game.active_players()
        if not active:
            return self._end_game(game, None, all_out_reason, message, **extra)
        if len(active) == 1:
            return self._end_game(game, active[0], EndReason.LAST_PLAYER_STANDING, message, **extra)

        # The next player slides into the conceding player's slot
        game.turn_index = position % len(active)
        return GameResult.ok(message, game=game, next_player=game.current_player(), **extra)

    def _end_game(
        self,
        game: GameSession,
        winner: Optional[Player],
        end_reason: EndReason,
        message: str,
        **extra: Any,
    ) -> GameResult:
        game.status = GameStatus.ENDED
        self._discard(game)

        if winner:
            logger.info(f"Word chain in channel {game.channel_id} won by {winner.display_name} ({winner.points} pts)")
        else:
            logger.info(f"Word chain in channel {game.channel_id} ended with no winner: {end_reason.description}")
        return GameResult.ok(
            message,
            game=game,
            game_ended=True,
            winner=winner,
            end_reason=end_reason,
            **extra,
        )

    def _discard(self, game: GameSession) -> None:
        self.timers.cancel(game)
        if self.store.get(game.channel_id) is game:
            self.store.remove(game.channel_id)
