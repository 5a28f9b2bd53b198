"""
bot/sink.py
discord.py implementation of the messaging sink used by the status publisher.
Status text is posted as an embed so a restarted bot can recognise it again.
"""

from __future__ import annotations
import logging
from typing import Optional

import discord
from discord.ext import commands

from monitor import strings
from monitor.errors import PublishFailure, StatusMessageGone
from monitor.state import ChannelGroup, HistoryEntry

log = logging.getLogger("helpbot.sink")

STATUS_COLOUR = discord.Colour.from_str("#CCCC00")


def build_status_embed(text: str, bot_user: Optional[discord.ClientUser]) -> discord.Embed:
    embed = discord.Embed(title=strings.STATUS_TITLE, description=text, colour=STATUS_COLOUR)
    if bot_user is not None:
        embed.set_footer(text=bot_user.name, icon_url=bot_user.display_avatar.url)
    embed.timestamp = discord.utils.utcnow()
    return embed


def is_status_embed(message: discord.Message) -> bool:
    return bool(message.embeds) and message.embeds[0].title == strings.STATUS_TITLE


class DiscordMessagingSink:
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    def _channel(self, channel_id: int) -> discord.TextChannel:
        channel = self.bot.get_channel(channel_id)
        if not isinstance(channel, discord.TextChannel):
            raise PublishFailure(f"Channel {channel_id} is not a text channel the bot can see")
        return channel

    async def send_message(self, channel_id: int, text: str) -> int:
        channel = self._channel(channel_id)
        try:
            message = await channel.send(embed=build_status_embed(text, self.bot.user))
        except discord.HTTPException as e:
            raise PublishFailure(f"send in {channel_id} failed: {e}") from e
        return message.id

    async def edit_message(self, channel_id: int, message_id: int, text: str) -> None:
        channel = self._channel(channel_id)
        try:
            await channel.get_partial_message(message_id).edit(embed=build_status_embed(text, self.bot.user))
        except discord.NotFound as e:
            raise StatusMessageGone(f"message {message_id} in {channel_id} not found") from e
        except discord.HTTPException as e:
            raise PublishFailure(f"edit of {message_id} in {channel_id} failed: {e}") from e

    async def delete_message(self, channel_id: int, message_id: int) -> None:
        channel = self._channel(channel_id)
        try:
            await channel.get_partial_message(message_id).delete()
        except discord.NotFound:
            log.debug("Message %s in %s was already deleted.", message_id, channel_id)
        except discord.HTTPException as e:
            raise PublishFailure(f"delete of {message_id} in {channel_id} failed: {e}") from e

    async def latest_message_id(self, channel_id: int) -> Optional[int]:
        # TextChannel.last_message_id lags behind our own sends and ignores deletes
        history = await self.fetch_recent_history(channel_id, 1)
        return history[0].message_id if history else None

    async def fetch_recent_history(self, channel_id: int, limit: int) -> list[HistoryEntry]:
        channel = self._channel(channel_id)
        self_id = self.bot.user.id if self.bot.user else None
        try:
            return [
                HistoryEntry(
                    message_id=m.id,
                    author_id=m.author.id,
                    is_self=m.author.id == self_id,
                    is_bot=m.author.bot or m.webhook_id is not None,
                    has_status_payload=is_status_embed(m),
                    marks_free=m.author.id == self_id and m.content == strings.MARK_AS_FREE,
                )
                async for m in channel.history(limit=limit)
            ]
        except discord.HTTPException as e:
            raise PublishFailure(f"history of {channel_id} failed: {e}") from e

    def channel_layout(self, guild_id: int) -> Optional[list[ChannelGroup]]:
        guild = self.bot.get_guild(guild_id)
        if guild is None:
            return None
        return [
            ChannelGroup(
                name=category.name if category else None,
                channel_ids=tuple(c.id for c in channels),
            )
            for category, channels in guild.by_category()
        ]
