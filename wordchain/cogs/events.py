"""Event handlers cog - handles Discord.py events.

This cog handles:
- on_ready: slash command sync and presence
- on_command_error: ignore unknown commands, report the rest
"""
from __future__ import annotations

import logging

import discord
from discord.ext import commands

from wordchain.constants import DELETE_DELAY_ERROR, EMOJI_CROSS, VERSION

logger = logging.getLogger('wordchain_bot')


class EventHandlers(commands.Cog):
    """Cog that handles Discord.py events."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self._synced = False

    @commands.Cog.listener()
    async def on_ready(self):
        """Handle bot ready event."""
        logger.info(f"Bot connected as {self.bot.user} (v{VERSION})")

        # on_ready fires again after reconnects
        if not self._synced:
            try:
                synced = await self.bot.tree.sync()
                self._synced = True
                logger.info(f"Synced {len(synced)} slash command(s)")
            except Exception as e:
                logger.error(f"Failed to sync slash commands: {e}")

        prefix = self.bot.command_prefix if isinstance(self.bot.command_prefix, str) else ""
        await self.bot.change_presence(activity=discord.Game(name=f"Sambung Kata | {prefix}wordchain"))

    @commands.Cog.listener()
    async def on_command_error(self, ctx: commands.Context, error: commands.CommandError):
        """Suppress CommandNotFound, since chat answers share the channel with commands."""
        if isinstance(error, commands.CommandNotFound):
            return
        if isinstance(error, commands.NoPrivateMessage):
            await ctx.send(f"{EMOJI_CROSS} **|** This command only works in a server.", delete_after=DELETE_DELAY_ERROR)
            return
        logger.error(f"Error in command {ctx.command}: {error}", exc_info=error)


async def setup(bot: commands.Bot):
    await bot.add_cog(EventHandlers(bot))
