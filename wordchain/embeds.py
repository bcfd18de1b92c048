"""Embed builders for the word chain game.

Pure functions from a GameSession to a discord.Embed, kept apart from the
cog so they can be tested without a Discord connection.
"""
from __future__ import annotations

from typing import Optional

import discord

from wordchain.constants import (
    COLOR_ENDED,
    COLOR_ERROR,
    COLOR_LOBBY,
    COLOR_NO_WINNER,
    COLOR_PLAYING,
    COLOR_SETTINGS,
    EMOJI_BLANK,
    EMOJI_CROWN,
    EMOJI_FIRE,
    EMOJI_GAME,
    EMOJI_ROBOT,
    EMOJI_SKULL,
    EMOJI_TURN,
    FOOTER_TEXT,
    LOBBY_FOOTER,
    VERSION,
)
from wordchain.results import EndReason
from wordchain.session import GameSession, Player


def format_max_rolls(max_rolls: Optional[int]) -> str:
    return "Unlimited" if max_rolls is None else str(max_rolls)


def _player_name(player: Player) -> str:
    if player.is_bot:
        return f"{EMOJI_ROBOT} {player.display_name}"
    return f"@{player.display_name}"


def create_lobby_embed(game: GameSession) -> discord.Embed:
    """Lobby view: settings plus the list of joined players."""
    lines = []
    for player in game.players:
        line = _player_name(player)
        if player.is_lobby_master:
            line += f" {EMOJI_CROWN}"
        if not player.is_active:
            line += " (gave up)"
        lines.append(line)
    player_text = "\n".join(lines) if lines else "None"

    embed = discord.Embed(
        title=f"{EMOJI_GAME} Word Chain - Lobby",
        description=(
            f"**Level:** {game.difficulty}\n"
            f"**Language:** {game.language}\n"
            f"**Time Limit:** {game.time_limit_seconds:g}s per turn\n"
            f"**Max Rolls:** {format_max_rolls(game.max_rolls_per_player)} per player\n"
            f"**Bot Opponent:** {'Enabled' if game.bot_opponent_enabled else 'Disabled'}\n\n"
            f"**Player List [{len(game.players)}]**\n"
            f"{player_text}"
        ),
        color=COLOR_LOBBY
    )
    embed.set_footer(text=LOBBY_FOOTER)
    return embed


def create_gameplay_embed(game: GameSession, last_answer: Optional[str] = None, last_player: Optional[str] = None) -> discord.Embed:
    """Current prompt, whose turn it is, and the scoreboard."""
    current = game.current_player()
    word = game.current_word

    rows = []
    for player in game.players:
        marker = EMOJI_TURN if current and player.user_id == current.user_id else EMOJI_BLANK
        name = _player_name(player)
        if player.is_lobby_master:
            name += f" {EMOJI_CROWN}"
        if not player.is_active:
            name = f"~~{name}~~"
        rows.append(f"{marker} {name} [{player.points}] {EMOJI_FIRE}{player.points}")

    description = ""
    if last_answer and last_player:
        description += f"{last_player} answered **{last_answer}**\n\n"
    description += (
        f"**{word.display_prefix.upper()} +{word.point_value}**\n\n"
        f"**Turn | Player | Point**\n"
        + "\n".join(rows)
        + "\n\n"
        f"**Continue with a word starting with [ {word.match_prefix} ]**\n"
        f"**New word: Roll**"
    )

    embed = discord.Embed(description=description, color=COLOR_PLAYING)
    if current:
        embed.set_footer(text=f"{current.display_name}'s turn • {game.time_limit_seconds:g}s")
    return embed


def create_end_embed(
    game: GameSession,
    winner: Optional[Player],
    end_reason: Optional[EndReason] = None
) -> discord.Embed:
    """Final standings: winner crowned, everyone else ranked by points."""
    if winner:
        ranking = sorted(game.players, key=lambda p: p.points, reverse=True)
        lines = []
        for player in ranking:
            badge = EMOJI_CROWN if player.user_id == winner.user_id else EMOJI_SKULL
            lines.append(f"{_player_name(player)} [{player.points}] {badge}")

        description = "**Game Over**\n\n"
        if game.current_word:
            description += f"**{game.current_word.display_prefix.upper()} +{game.current_word.point_value}**\n\n"
        description += f"**The winner is {_player_name(winner)}**\n"
        if end_reason:
            description += f"*{end_reason.description}*\n"
        description += "\n" + "\n".join(lines)
        embed = discord.Embed(description=description, color=COLOR_ENDED)
    else:
        reason = end_reason.description if end_reason else "The game has ended."
        embed = discord.Embed(
            description=f"**Game Over**\n\nNo winner. {reason}.",
            color=COLOR_NO_WINNER
        )

    embed.set_footer(text=f"{FOOTER_TEXT} • v{VERSION}")
    embed.timestamp = discord.utils.utcnow()
    return embed


def create_settings_embed(game: GameSession) -> discord.Embed:
    embed = discord.Embed(
        title="⚙️ Word Chain Settings",
        description="Pick new values below. Changes apply to the lobby immediately.",
        color=COLOR_SETTINGS
    )
    embed.add_field(name="Level", value=game.difficulty, inline=True)
    embed.add_field(name="Time Limit", value=f"{game.time_limit_seconds:g}s", inline=True)
    embed.add_field(name="Max Rolls", value=format_max_rolls(game.max_rolls_per_player), inline=True)
    embed.add_field(name="Bot Opponent", value="Enabled" if game.bot_opponent_enabled else "Disabled", inline=True)
    return embed


def create_error_embed(message: str) -> discord.Embed:
    return discord.Embed(description=f"❌ {message}", color=COLOR_ERROR)
