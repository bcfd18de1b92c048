"""Word chain cog - Discord side of the game.

This cog handles:
- ..wordchain / /wordchain: open a lobby in the current channel
- Lobby buttons: join, leave, start, exit, kick/ban, settings
- Gameplay buttons: give up, roll
- Chat answers from the player whose turn it is
- Turn timers for human players and delayed turns for the bot opponent

All game rules live in WordChainEngine; this cog only turns Discord events
into engine calls and engine results into messages.
"""
from __future__ import annotations

import asyncio
import functools
import logging
import random
from typing import TYPE_CHECKING, Optional

import discord
from discord import app_commands
from discord.ext import commands

from wordchain.constants import (
    BOT_THINK_MIN,
    BOT_THINK_SPREAD,
    BOT_USER_ID,
    COMMAND_DIFFICULTY,
    COMMAND_PREFIXES,
    CUSTOM_ID_BACK,
    CUSTOM_ID_BOT,
    CUSTOM_ID_DIFFICULTY,
    CUSTOM_ID_EXIT,
    CUSTOM_ID_GIVE_UP,
    CUSTOM_ID_JOIN,
    CUSTOM_ID_KICK,
    CUSTOM_ID_KICK_TARGET,
    CUSTOM_ID_LEAVE,
    CUSTOM_ID_ROLL,
    CUSTOM_ID_ROLLS,
    CUSTOM_ID_SETTINGS,
    CUSTOM_ID_START,
    CUSTOM_ID_TIME,
    DELETE_DELAY_ERROR,
    DELETE_DELAY_INFO,
    DIFFICULTIES,
    EMOJI_CHECK,
    EMOJI_CLOCK,
    EMOJI_CROSS,
    EMOJI_DICE,
    EMOJI_FLAG,
    EMOJI_ROBOT,
    MAX_ROLLS_CHOICES,
    TIME_LIMIT_CHOICES,
)
from wordchain.discord_utils import (
    safe_defer,
    safe_delete_message,
    safe_send_interaction,
    safe_send_message,
)
from wordchain.embeds import (
    create_end_embed,
    create_error_embed,
    create_gameplay_embed,
    create_lobby_embed,
    create_settings_embed,
    format_max_rolls,
)
from wordchain.results import GameResult, Reason
from wordchain.session import GameStatus

if TYPE_CHECKING:
    from wordchain.engine import WordChainEngine

logger = logging.getLogger('wordchain_bot')

UNLIMITED = "unlimited"


class LobbyView(discord.ui.View):
    """Buttons under the lobby embed."""

    def __init__(self, cog: "WordChain"):
        super().__init__(timeout=None)
        self.cog = cog

    @discord.ui.button(label="Join", style=discord.ButtonStyle.success, custom_id=CUSTOM_ID_JOIN, row=0)
    async def join_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.cog.handle_join(interaction)

    @discord.ui.button(label="Leave", style=discord.ButtonStyle.secondary, custom_id=CUSTOM_ID_LEAVE, row=0)
    async def leave_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.cog.handle_leave(interaction)

    @discord.ui.button(label="Start", style=discord.ButtonStyle.primary, custom_id=CUSTOM_ID_START, row=0)
    async def start_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.cog.handle_start(interaction)

    @discord.ui.button(label="Exit", style=discord.ButtonStyle.danger, custom_id=CUSTOM_ID_EXIT, row=0)
    async def exit_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.cog.handle_exit(interaction)

    @discord.ui.button(label="Kick", style=discord.ButtonStyle.secondary, custom_id=CUSTOM_ID_KICK, row=1)
    async def kick_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.cog.handle_kick_menu(interaction)

    @discord.ui.button(label="Settings", style=discord.ButtonStyle.primary, custom_id=CUSTOM_ID_SETTINGS, row=1)
    async def settings_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.cog.handle_settings_menu(interaction)


class GameplayView(discord.ui.View):
    """Buttons under the gameplay embed."""

    def __init__(self, cog: "WordChain"):
        super().__init__(timeout=None)
        self.cog = cog

    @discord.ui.button(label="Give Up", style=discord.ButtonStyle.danger, custom_id=CUSTOM_ID_GIVE_UP)
    async def give_up_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.cog.handle_give_up(interaction)

    @discord.ui.button(label="Roll", style=discord.ButtonStyle.secondary, custom_id=CUSTOM_ID_ROLL)
    async def roll_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.cog.handle_roll(interaction)


class KickView(discord.ui.View):
    """Ephemeral panel letting the lobby master kick or ban a player."""

    def __init__(self, cog: "WordChain", channel_id: str, players: list):
        super().__init__(timeout=120)
        self.cog = cog
        self.channel_id = channel_id
        self.target_id: Optional[str] = None

        self.target_select = discord.ui.Select(
            custom_id=CUSTOM_ID_KICK_TARGET,
            placeholder="Choose a player",
            options=[discord.SelectOption(label=p.display_name[:100], value=p.user_id) for p in players],
            row=0
        )
        self.target_select.callback = self.on_target_selected
        self.add_item(self.target_select)

    async def on_target_selected(self, interaction: discord.Interaction):
        self.target_id = self.target_select.values[0]
        await safe_defer(interaction)

    @discord.ui.button(label="Kick", style=discord.ButtonStyle.secondary, row=1)
    async def kick_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._remove(interaction, ban=False)

    @discord.ui.button(label="Ban", style=discord.ButtonStyle.danger, row=1)
    async def ban_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._remove(interaction, ban=True)

    async def _remove(self, interaction: discord.Interaction, ban: bool):
        if not self.target_id:
            await safe_send_interaction(interaction, "Choose a player first.")
            return

        engine = self.cog.engine
        requester = str(interaction.user.id)
        if ban:
            result = engine.ban(self.channel_id, requester, self.target_id)
        else:
            result = engine.kick(self.channel_id, requester, self.target_id)

        if not result:
            await safe_send_interaction(interaction, f"{EMOJI_CROSS} {result.message}")
            return

        for item in self.children:
            item.disabled = True
        try:
            await interaction.response.edit_message(content=f"{EMOJI_CHECK} {result.message}", view=self)
        except discord.HTTPException as e:
            logger.debug(f"Could not update kick panel: {e}")
        await self.cog.refresh_lobby_message(interaction.channel, result.game)


class SettingsView(discord.ui.View):
    """Ephemeral settings panel for the lobby master."""

    def __init__(self, cog: "WordChain", channel_id: str):
        super().__init__(timeout=300)
        self.cog = cog
        self.channel_id = channel_id
        game = cog.engine.get_game(channel_id)

        difficulty = discord.ui.Select(
            custom_id=CUSTOM_ID_DIFFICULTY,
            placeholder="Level",
            options=[
                discord.SelectOption(label=d, value=d, default=game is not None and game.difficulty == d)
                for d in DIFFICULTIES
            ],
            row=0
        )
        difficulty.callback = functools.partial(self._apply, "difficulty", difficulty, str)

        time_limit = discord.ui.Select(
            custom_id=CUSTOM_ID_TIME,
            placeholder="Time limit",
            options=[
                discord.SelectOption(label=f"{s} seconds", value=str(s), default=game is not None and game.time_limit_seconds == s)
                for s in TIME_LIMIT_CHOICES
            ],
            row=1
        )
        time_limit.callback = functools.partial(self._apply, "time_limit_seconds", time_limit, int)

        rolls = discord.ui.Select(
            custom_id=CUSTOM_ID_ROLLS,
            placeholder="Max rolls per player",
            options=[
                discord.SelectOption(
                    label=format_max_rolls(r),
                    value=UNLIMITED if r is None else str(r),
                    default=game is not None and game.max_rolls_per_player == r
                )
                for r in MAX_ROLLS_CHOICES
            ],
            row=2
        )
        rolls.callback = functools.partial(self._apply, "max_rolls_per_player", rolls, _parse_rolls)

        bot = discord.ui.Select(
            custom_id=CUSTOM_ID_BOT,
            placeholder="Bot opponent",
            options=[
                discord.SelectOption(label="Enabled", value="on", default=game is not None and game.bot_opponent_enabled),
                discord.SelectOption(label="Disabled", value="off", default=game is not None and not game.bot_opponent_enabled),
            ],
            row=3
        )
        bot.callback = functools.partial(self._apply, "bot_opponent_enabled", bot, lambda v: v == "on")

        for item in (difficulty, time_limit, rolls, bot):
            self.add_item(item)

    async def _apply(self, key: str, select: discord.ui.Select, parse, interaction: discord.Interaction):
        result = self.cog.engine.update_settings(
            self.channel_id,
            requester_id=str(interaction.user.id),
            **{key: parse(select.values[0])}
        )
        if not result:
            await safe_send_interaction(interaction, f"{EMOJI_CROSS} {result.message}")
            return

        try:
            await interaction.response.edit_message(embed=create_settings_embed(result.game), view=self)
        except discord.HTTPException as e:
            logger.debug(f"Could not update settings panel: {e}")
        await self.cog.refresh_lobby_message(interaction.channel, result.game)

    @discord.ui.button(label="Back to lobby", style=discord.ButtonStyle.secondary, custom_id=CUSTOM_ID_BACK, row=4)
    async def back_button(self, interaction: discord.Interaction, button: discord.ui.Button):
        try:
            await interaction.response.edit_message(content=f"{EMOJI_CHECK} Settings saved.", embed=None, view=None)
        except discord.HTTPException as e:
            logger.debug(f"Could not close settings panel: {e}")
        self.stop()


def _parse_rolls(value: str) -> Optional[int]:
    return None if value == UNLIMITED else int(value)


class WordChain(commands.Cog):
    """Cog that runs word chain games.

    Expects main `bot` to expose:
      - bot.engine (WordChainEngine instance)
    """

    def __init__(self, bot: commands.Bot, engine: "WordChainEngine"):
        self.bot = bot
        self.engine = engine
        # channel_id -> pending bot turn
        self._bot_turns: dict[str, asyncio.Task] = {}

    async def cog_unload(self) -> None:
        for task in self._bot_turns.values():
            task.cancel()
        self._bot_turns.clear()
        await self.engine.shutdown()
        logger.info("Word chain engine shut down")

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @commands.command(name="wordchain", aliases=["wc"])
    async def wordchain_command(self, ctx: commands.Context):
        """Open a word chain lobby in this channel."""
        error = await self.open_lobby(ctx.channel, ctx.author)
        if error:
            await ctx.reply(f"{EMOJI_CROSS} **|** {error}", delete_after=DELETE_DELAY_INFO)

    @app_commands.command(name="wordchain", description="Start a Word Chain game in this channel")
    async def wordchain_slash(self, interaction: discord.Interaction):
        await safe_defer(interaction, ephemeral=True)
        error = await self.open_lobby(interaction.channel, interaction.user)
        if error:
            await safe_send_interaction(interaction, f"{EMOJI_CROSS} {error}")
        else:
            await safe_send_interaction(interaction, "Lobby created! Press **Start** when everyone has joined.")

    async def open_lobby(self, channel: discord.abc.Messageable, author: discord.abc.User) -> Optional[str]:
        """Create a lobby with the author as lobby master. Returns an error message on failure."""
        channel_id = str(channel.id)
        user_id = str(author.id)

        result = self.engine.create(channel_id, lobby_master_id=user_id, difficulty=COMMAND_DIFFICULTY)
        if not result:
            return result.message
        self.engine.join(channel_id, user_id, author.display_name)

        message = await safe_send_message(channel, embed=create_lobby_embed(result.game), view=LobbyView(self))
        if message is None:
            self.engine.exit(channel_id)
            return "Could not post the game lobby in this channel."

        self.engine.set_game_message(channel_id, message.id)
        logger.info(f"{author} opened a word chain lobby in channel {channel_id}")
        return None

    # ------------------------------------------------------------------
    # Lobby buttons
    # ------------------------------------------------------------------

    async def handle_join(self, interaction: discord.Interaction):
        channel_id = str(interaction.channel_id)
        result = self.engine.join(channel_id, str(interaction.user.id), interaction.user.display_name)
        if not result:
            await safe_send_interaction(interaction, f"{EMOJI_CROSS} {result.message}")
            return
        await self._edit_lobby(interaction, result)

    async def handle_leave(self, interaction: discord.Interaction):
        channel_id = str(interaction.channel_id)
        result = self.engine.leave(channel_id, str(interaction.user.id))
        if not result:
            await safe_send_interaction(interaction, f"{EMOJI_CROSS} {result.message}")
            return
        await self._edit_lobby(interaction, result)

    async def handle_start(self, interaction: discord.Interaction):
        channel_id = str(interaction.channel_id)
        await safe_defer(interaction)

        result = await self.engine.start(channel_id, requester_id=str(interaction.user.id))
        if not result:
            await safe_send_interaction(interaction, f"{EMOJI_CROSS} {result.message}")
            return

        await self.post_game_state(interaction.channel)
        await self.begin_turn(interaction.channel)

    async def handle_exit(self, interaction: discord.Interaction):
        channel_id = str(interaction.channel_id)
        result = self.engine.exit(channel_id, requester_id=str(interaction.user.id))
        if not result:
            await safe_send_interaction(interaction, f"{EMOJI_CROSS} {result.message}")
            return

        self._cancel_bot_turn(channel_id)
        try:
            await interaction.response.edit_message(content=f"🚪 {result.message}", embed=None, view=None)
        except discord.HTTPException as e:
            logger.debug(f"Could not close lobby message: {e}")

    async def handle_kick_menu(self, interaction: discord.Interaction):
        channel_id = str(interaction.channel_id)
        game = self.engine.get_game(channel_id)
        if not game or game.status != GameStatus.LOBBY:
            await safe_send_interaction(interaction, f"{EMOJI_CROSS} Can only kick players in lobby!")
            return
        if game.lobby_master_id != str(interaction.user.id):
            await safe_send_interaction(interaction, f"{EMOJI_CROSS} Only the lobby master can kick players!")
            return

        targets = [p for p in game.players if not p.is_lobby_master]
        if not targets:
            await safe_send_interaction(interaction, "There is nobody else in the lobby.")
            return
        await safe_send_interaction(
            interaction,
            "Choose a player to kick or ban:",
            view=KickView(self, channel_id, targets)
        )

    async def handle_settings_menu(self, interaction: discord.Interaction):
        channel_id = str(interaction.channel_id)
        game = self.engine.get_game(channel_id)
        if not game or game.status != GameStatus.LOBBY:
            await safe_send_interaction(interaction, f"{EMOJI_CROSS} Cannot change settings after game has started!")
            return
        if game.lobby_master_id != str(interaction.user.id):
            await safe_send_interaction(interaction, f"{EMOJI_CROSS} Only the lobby master can change settings!")
            return
        await safe_send_interaction(interaction, embed=create_settings_embed(game), view=SettingsView(self, channel_id))

    async def _edit_lobby(self, interaction: discord.Interaction, result: GameResult):
        try:
            await interaction.response.edit_message(embed=create_lobby_embed(result.game), view=LobbyView(self))
        except discord.HTTPException as e:
            logger.debug(f"Could not update lobby message: {e}")

    async def refresh_lobby_message(self, channel: discord.abc.Messageable, game) -> None:
        """Redraw the lobby message after a change made from an ephemeral panel."""
        if not game or not game.message_id or game.status != GameStatus.LOBBY:
            return
        try:
            message = await channel.fetch_message(game.message_id)
            await message.edit(embed=create_lobby_embed(game), view=LobbyView(self))
        except discord.HTTPException as e:
            logger.debug(f"Could not refresh lobby message: {e}")

    # ------------------------------------------------------------------
    # Gameplay
    # ------------------------------------------------------------------

    async def handle_give_up(self, interaction: discord.Interaction):
        channel_id = str(interaction.channel_id)
        result = self.engine.give_up(channel_id, str(interaction.user.id))
        if not result:
            await safe_send_interaction(interaction, f"{EMOJI_CROSS} {result.message}")
            return

        await safe_send_interaction(interaction, result.message)
        await safe_send_message(interaction.channel, f"{EMOJI_FLAG} {interaction.user.display_name} gave up!")
        await self.after_resolution(interaction.channel, result)

    async def handle_roll(self, interaction: discord.Interaction):
        channel_id = str(interaction.channel_id)
        await safe_defer(interaction, ephemeral=True)

        result = await self.engine.roll_new_word(channel_id, str(interaction.user.id))
        if not result:
            await safe_send_interaction(interaction, f"{EMOJI_CROSS} {result.message}")
            return

        await safe_send_interaction(interaction, f"{EMOJI_DICE} {result.message}")
        # Same turn, same timer: only the prompt changes
        await self.post_game_state(interaction.channel)

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return

        channel_id = str(message.channel.id)
        game = self.engine.get_game(channel_id)
        if not game or game.status != GameStatus.PLAYING:
            return

        user_id = str(message.author.id)
        if not self.engine.is_player_turn(channel_id, user_id):
            return

        answer = (message.content or "").strip()
        if not answer or answer.startswith(self._command_prefixes()):
            return

        result = await self.engine.submit_answer(channel_id, user_id, answer)
        if not result:
            if result.reason in (Reason.TURN_RESOLVED, Reason.GAME_NOT_FOUND):
                logger.debug(f"Dropped late answer in channel {channel_id}: {result.message}")
                return
            await safe_send_message(message.channel, f"{EMOJI_CROSS} {result.message}", delete_after=DELETE_DELAY_ERROR)
            return

        await self.after_resolution(
            message.channel,
            result,
            last_answer=answer,
            last_player=message.author.display_name
        )

    def _command_prefixes(self) -> tuple[str, ...]:
        prefix = self.bot.command_prefix
        if isinstance(prefix, str):
            return COMMAND_PREFIXES + (prefix,)
        return COMMAND_PREFIXES

    async def after_resolution(
        self,
        channel: discord.abc.Messageable,
        result: GameResult,
        last_answer: Optional[str] = None,
        last_player: Optional[str] = None
    ) -> None:
        """Announce a resolved turn, then either finish the game or start the next turn."""
        if result.timeout and result.timed_out_player:
            await safe_send_message(channel, f"{EMOJI_CLOCK} Time's up for {result.timed_out_player.display_name}! Moving on...")
        if result.bot_gave_up:
            await safe_send_message(channel, f"{EMOJI_ROBOT} {result.message}")
        elif result.bot_answer:
            await safe_send_message(channel, f"{EMOJI_ROBOT} Bot answered: **{result.bot_answer}** (+{result.points} points)")
            bot_player = next((p for p in result.game.players if p.is_bot), None)
            last_answer = result.bot_answer
            last_player = bot_player.display_name if bot_player else None

        if result.game_ended:
            await self.finish_game(channel, result)
            return

        await self.post_game_state(channel, last_answer=last_answer, last_player=last_player)
        await self.begin_turn(channel)

    async def post_game_state(
        self,
        channel: discord.abc.Messageable,
        last_answer: Optional[str] = None,
        last_player: Optional[str] = None
    ) -> None:
        """Replace the previous game message with a fresh gameplay embed."""
        channel_id = str(channel.id)
        game = self.engine.get_game(channel_id)
        if not game or game.status != GameStatus.PLAYING:
            return

        await safe_delete_message(channel, game.message_id)
        message = await safe_send_message(
            channel,
            embed=create_gameplay_embed(game, last_answer=last_answer, last_player=last_player),
            view=GameplayView(self)
        )
        self.engine.set_game_message(channel_id, message.id if message else None)

    async def finish_game(self, channel: discord.abc.Messageable, result: GameResult) -> None:
        channel_id = str(channel.id)
        self._cancel_bot_turn(channel_id)
        await safe_delete_message(channel, result.game.message_id)
        await safe_send_message(channel, embed=create_end_embed(result.game, result.winner, result.end_reason))

    async def begin_turn(self, channel: discord.abc.Messageable) -> None:
        """Start the timer for a human turn, or schedule the bot's move."""
        channel_id = str(channel.id)
        current = self.engine.get_current_player(channel_id)
        if not current:
            return

        if current.is_bot:
            self._schedule_bot_turn(channel)
        else:
            self.engine.start_turn_timer(channel_id, functools.partial(self.after_resolution, channel))

    # ------------------------------------------------------------------
    # Bot opponent
    # ------------------------------------------------------------------

    def _schedule_bot_turn(self, channel: discord.abc.Messageable) -> None:
        channel_id = str(channel.id)
        game = self.engine.get_game(channel_id)
        if not game:
            return

        # Bot uses 30-70% of the time limit to feel more natural
        delay = game.time_limit_seconds * (BOT_THINK_MIN + random.random() * BOT_THINK_SPREAD)
        logger.info(f"Bot's turn in channel {channel_id}. Will respond in {delay:.1f}s")

        self._cancel_bot_turn(channel_id)
        self._bot_turns[channel_id] = asyncio.create_task(self._run_bot_turn(channel, delay))

    def _cancel_bot_turn(self, channel_id: str) -> None:
        task = self._bot_turns.pop(channel_id, None)
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _run_bot_turn(self, channel: discord.abc.Messageable, delay: float) -> None:
        channel_id = str(channel.id)
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            return
        if self._bot_turns.get(channel_id) is asyncio.current_task():
            self._bot_turns.pop(channel_id, None)

        try:
            result = await self.engine.play_bot_turn(channel_id)
            if not result:
                logger.info(f"Bot turn skipped in channel {channel_id}: {result.message}")
                return
            await self.after_resolution(channel, result)
        except Exception:
            logger.exception(f"Error in bot turn for channel {channel_id}")
            await safe_send_message(
                channel,
                embed=create_error_embed("Bot encountered an error. Moving to next player..."),
                delete_after=DELETE_DELAY_ERROR
            )
            await self._recover_bot_turn(channel)

    async def _recover_bot_turn(self, channel: discord.abc.Messageable) -> None:
        """Keep the game moving after a failed bot turn: the bot concedes if it still holds the turn."""
        channel_id = str(channel.id)
        try:
            result = self.engine.give_up(channel_id, BOT_USER_ID)
            if result:
                await self.after_resolution(channel, result)
            else:
                await self.begin_turn(channel)
        except Exception:
            logger.exception(f"Could not recover from failed bot turn in channel {channel_id}")


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(WordChain(bot, bot.engine))
