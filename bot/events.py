"""
bot/events.py
Discord event handlers for the free command: on_ready runs the startup scan,
on_message marks help channels busy.
"""

from __future__ import annotations
import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from monitor.handlers import MessagePosted, Ready

if TYPE_CHECKING:
    from monitor.handlers import EventHandlers

log = logging.getLogger("helpbot.events")


def message_replier(message: discord.Message):
    """Reply capability for a posted message. Ephemeral replies do not exist for plain messages."""
    async def reply(text: str, ephemeral: bool) -> None:
        try:
            await message.reply(text)
        except discord.HTTPException as e:
            log.error("Failed to reply to message %s in %s: %s", message.id, message.channel.id, e)
    return reply


class FreeEvents(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def handlers(self) -> EventHandlers:
        return self.bot.free_handlers

    # ────────────────────────────────────────
    # on_ready
    # ────────────────────────────────────────

    @commands.Cog.listener()
    async def on_ready(self) -> None:
        log.info("Bot logged in as %s (ID: %s)", self.bot.user, self.bot.user.id)

        for status_id in self.bot.channel_monitor.status_channel_ids():
            if not isinstance(self.bot.get_channel(status_id), discord.TextChannel):
                log.error("Configured status channel %s is not a visible text channel.", status_id)

        await self.handlers.dispatch(Ready())

        # Sync slash commands
        try:
            synced = await self.bot.tree.sync()
            log.info("Synced %d slash commands.", len(synced))
        except Exception as e:
            log.error("Failed to sync slash commands: %s", e)

    # ────────────────────────────────────────
    # on_message
    # ────────────────────────────────────────

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.guild is None:
            return
        reference = message.reference.message_id if message.reference else None
        await self.handlers.dispatch(MessagePosted(
            channel_id=message.channel.id,
            guild_id=message.guild.id,
            author_id=message.author.id,
            reply=message_replier(message),
            is_bot=message.author.bot,
            is_webhook=message.webhook_id is not None,
            reply_to=reference,
        ))


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(FreeEvents(bot))
