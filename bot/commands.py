"""
bot/commands.py
The /free slash command.
"""

from __future__ import annotations
import logging

import discord
from discord import app_commands
from discord.ext import commands

from monitor.handlers import FreeInvoked

log = logging.getLogger("helpbot.commands")

ERROR_COLOUR = discord.Colour.red()


def interaction_replier(interaction: discord.Interaction):
    """Reply capability for a slash command. Errors go out as an ephemeral embed."""
    async def reply(text: str, ephemeral: bool) -> None:
        try:
            if ephemeral:
                embed = discord.Embed(description=text, colour=ERROR_COLOUR)
                await interaction.response.send_message(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(text)
        except discord.HTTPException as e:
            log.error("Failed to respond to /%s in %s: %s", interaction.command.name if interaction.command else "?",
                      interaction.channel_id, e)
    return reply


class FreeCommands(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @app_commands.command(name="free", description="Marks this channel as free for another user to ask a question")
    @app_commands.guild_only()
    async def free(self, interaction: discord.Interaction) -> None:
        await self.bot.free_handlers.dispatch(FreeInvoked(
            channel_id=interaction.channel_id,
            guild_id=interaction.guild_id,
            user_id=interaction.user.id,
            reply=interaction_replier(interaction),
        ))


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(FreeCommands(bot))
