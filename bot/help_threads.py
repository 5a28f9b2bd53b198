"""
bot/help_threads.py
Bookkeeping for help threads: remembers who opened each one, closes a
member's threads when they leave the guild, and purges old records.
"""

from __future__ import annotations
import logging
import os
import re
from datetime import timedelta

import discord
from discord.ext import commands, tasks

from database.models import add_help_thread, get_threads_created_by, purge_help_threads
from monitor import strings

log = logging.getLogger("helpbot.help_threads")

STAGING_CHANNEL_PATTERN  = re.compile(os.getenv("HELP_STAGING_CHANNEL_PATTERN", "ask_here"))
OVERVIEW_CHANNEL_PATTERN = re.compile(os.getenv("HELP_OVERVIEW_CHANNEL_PATTERN", "active_questions"))

DELETE_RECORDS_AFTER = timedelta(days=30)
PURGE_INTERVAL_HOURS = 4
HELP_AMBIENT_COLOUR  = discord.Colour.from_str("#1E3A8A")


def is_help_channel_name(name: str) -> bool:
    return bool(STAGING_CHANNEL_PATTERN.fullmatch(name) or OVERVIEW_CHANNEL_PATTERN.fullmatch(name))


def is_help_thread(channel) -> bool:
    """True for public threads opened under a help staging or overview channel."""
    if not isinstance(channel, discord.Thread) or channel.type is not discord.ChannelType.public_thread:
        return False
    parent = channel.parent
    return parent is not None and is_help_channel_name(parent.name)


class HelpThreads(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    async def cog_load(self) -> None:
        self.purge_loop.start()

    async def cog_unload(self) -> None:
        self.purge_loop.cancel()

    # ────────────────────────────────────────
    # Record new help threads
    # ────────────────────────────────────────

    @commands.Cog.listener()
    async def on_thread_create(self, thread: discord.Thread) -> None:
        if not is_help_thread(thread) or thread.owner_id is None:
            return
        try:
            await add_help_thread(thread.id, thread.guild.id, thread.owner_id, thread.created_at)
        except Exception:
            log.exception("Failed to record help thread %s", thread.id)

    # ────────────────────────────────────────
    # Member left → close their threads
    # ────────────────────────────────────────

    @commands.Cog.listener()
    async def on_member_remove(self, member: discord.Member) -> None:
        try:
            thread_ids = await get_threads_created_by(member.id)
        except Exception:
            log.exception("Failed to look up help threads of %s", member.id)
            return
        for thread_id in thread_ids:
            await self.close_thread(member.guild, thread_id)

    async def close_thread(self, guild: discord.Guild, thread_id: int) -> None:
        thread = guild.get_thread(thread_id)
        if thread is None:
            log.warning(
                "Attempted to archive thread id: '%s' but could not find thread in guild: '%s'.",
                thread_id, guild.name,
            )
            return
        embed = discord.Embed(
            title=strings.OP_LEFT_TITLE,
            description=strings.OP_LEFT_DESCRIPTION,
            colour=HELP_AMBIENT_COLOUR,
        )
        try:
            await thread.send(embed=embed)
            await thread.edit(archived=True)
            log.info("Archived help thread %s after its author left %s", thread_id, guild.name)
        except discord.HTTPException as e:
            log.error("Failed to close help thread %s: %s", thread_id, e)

    # ────────────────────────────────────────
    # Purge routine
    # ────────────────────────────────────────

    @tasks.loop(hours=PURGE_INTERVAL_HOURS)
    async def purge_loop(self) -> None:
        try:
            deleted = await purge_help_threads(DELETE_RECORDS_AFTER)
        except Exception:
            log.exception("Failed to purge help thread records")
            return
        if deleted > 0:
            log.debug("%d old thread channels deleted because they are older than %s.",
                      deleted, DELETE_RECORDS_AFTER)

    @purge_loop.before_loop
    async def before_purge(self) -> None:
        await self.bot.wait_until_ready()


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(HelpThreads(bot))
