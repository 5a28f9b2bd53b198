"""
monitor/sink.py
What the free command needs from the chat platform to keep a status message
up to date. bot/sink.py implements it over discord.py; tests use a fake.
"""

from __future__ import annotations
from typing import Optional, Protocol

from .state import ChannelGroup, HistoryEntry


class MessagingSink(Protocol):
    async def send_message(self, channel_id: int, text: str) -> int:
        """Post a status message and return its id."""

    async def edit_message(self, channel_id: int, message_id: int, text: str) -> None:
        """Replace a status message's text. Raises StatusMessageGone if it was deleted."""

    async def delete_message(self, channel_id: int, message_id: int) -> None:
        """Delete a message. A message that is already gone is not an error."""

    async def latest_message_id(self, channel_id: int) -> Optional[int]:
        """Id of the newest message in the channel, or None if it is empty."""

    async def fetch_recent_history(self, channel_id: int, limit: int) -> list[HistoryEntry]:
        """Up to `limit` most recent messages, newest first."""

    def channel_layout(self, guild_id: int) -> Optional[list[ChannelGroup]]:
        """Categories and their channels in display order, if the guild is known."""
