"""Discord interaction and message utilities.

Helper functions to reduce duplication when working with Discord.py interactions.
"""
from __future__ import annotations

import logging
from typing import Optional

import discord

logger = logging.getLogger('wordchain_bot')


async def safe_send_interaction(
    interaction: discord.Interaction,
    content: str = None,
    embed: discord.Embed = None,
    view: discord.ui.View = None,
    ephemeral: bool = True
) -> bool:
    """Safely send interaction response, handling already-responded cases."""
    kwargs = {"content": content, "embed": embed, "ephemeral": ephemeral}
    if view is not None:
        kwargs["view"] = view
    try:
        if interaction.response.is_done():
            await interaction.followup.send(**kwargs)
        else:
            await interaction.response.send_message(**kwargs)
        return True
    except discord.HTTPException as e:
        logger.debug(f"Could not send interaction response: {e}")
        return False
    except Exception as e:
        logger.error(f"Unexpected error sending interaction response: {e}")
        return False


async def safe_defer(interaction: discord.Interaction, ephemeral: bool = False) -> bool:
    """Defer an interaction whose handler waits on the dictionary or edits the game message.

    Returns True only when this call acknowledged the interaction.
    """
    try:
        if not interaction.response.is_done():
            await interaction.response.defer(ephemeral=ephemeral)
            return True
        return False
    except discord.HTTPException as e:
        logger.debug(f"Could not defer interaction: {e}")
        return False
    except Exception as e:
        logger.error(f"Unexpected error deferring interaction: {e}")
        return False


async def safe_send_message(
    channel: discord.abc.Messageable,
    content: str = None,
    embed: discord.Embed = None,
    view: discord.ui.View = None,
    delete_after: float = None
) -> Optional[discord.Message]:
    """Safely send a message to a channel, handling errors gracefully."""
    kwargs = {"content": content, "embed": embed, "delete_after": delete_after}
    if view is not None:
        kwargs["view"] = view
    name = getattr(channel, "name", channel)
    try:
        return await channel.send(**kwargs)
    except discord.Forbidden:
        logger.warning(f"Missing permission to send message in {name}")
        return None
    except discord.HTTPException as e:
        logger.error(f"HTTP error sending message to {name}: {e}")
        return None
    except Exception as e:
        logger.error(f"Unexpected error sending message to {name}: {e}")
        return None


async def safe_delete_message(channel: discord.abc.Messageable, message_id: Optional[int]) -> bool:
    """Delete a message by id, ignoring messages that are already gone."""
    if not message_id:
        return False
    try:
        message = await channel.fetch_message(message_id)
        await message.delete()
        return True
    except discord.NotFound:
        return False
    except discord.HTTPException as e:
        logger.debug(f"Could not delete message {message_id}: {e}")
        return False
    except Exception as e:
        logger.error(f"Unexpected error deleting message {message_id}: {e}")
        return False
