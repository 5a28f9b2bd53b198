"""Shared fixtures: an in-memory messaging sink standing in for Discord."""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass
from typing import Optional

import pytest

from monitor.errors import PublishFailure, StatusMessageGone
from monitor.handlers import EventHandlers
from monitor.publisher import StatusPublisher
from monitor.state import ChannelGroup, ChannelMonitor, HistoryEntry

BOT_ID = 999
GUILD = 1
CHANNEL_A = 11
CHANNEL_B = 12
STATUS = 10


@dataclass
class FakeMessage:
    id: int
    author_id: int
    text: str = ""
    is_self: bool = False
    is_bot: bool = False
    is_status: bool = False
    marks_free: bool = False


class FakeSink:
    """Keeps per-channel message lists (oldest first) and records every call."""

    def __init__(self):
        self.channels: dict[int, list[FakeMessage]] = {}
        self.layouts: dict[int, list[ChannelGroup]] = {}
        self.calls: list[tuple] = []
        self.history_calls = 0
        self.fail_send = False
        self.fail_edit = False
        self.fail_history = False
        self._ids = itertools.count(1000)

    # helpers for tests
    def post(self, channel_id: int, author_id: int, text: str = "hi", **flags) -> FakeMessage:
        message = FakeMessage(next(self._ids), author_id, text, **flags)
        self.channels.setdefault(channel_id, []).append(message)
        return message

    def post_status(self, channel_id: int, text: str = "old status") -> FakeMessage:
        return self.post(channel_id, BOT_ID, text, is_self=True, is_bot=True, is_status=True)

    def ids(self, channel_id: int) -> list[int]:
        return [m.id for m in self.channels.get(channel_id, [])]

    def text_of(self, channel_id: int, message_id: int) -> Optional[str]:
        for m in self.channels.get(channel_id, []):
            if m.id == message_id:
                return m.text
        return None

    def calls_of(self, kind: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == kind]

    # MessagingSink
    async def send_message(self, channel_id: int, text: str) -> int:
        await asyncio.sleep(0)
        if self.fail_send:
            raise PublishFailure("send failed")
        message = self.post_status(channel_id, text)
        self.calls.append(("send", channel_id, message.id))
        return message.id

    async def edit_message(self, channel_id: int, message_id: int, text: str) -> None:
        await asyncio.sleep(0)
        if self.fail_edit:
            raise PublishFailure("edit failed")
        for m in self.channels.get(channel_id, []):
            if m.id == message_id:
                m.text = text
                self.calls.append(("edit", channel_id, message_id))
                return
        raise StatusMessageGone(f"{message_id} not found")

    async def delete_message(self, channel_id: int, message_id: int) -> None:
        await asyncio.sleep(0)
        messages = self.channels.get(channel_id, [])
        self.channels[channel_id] = [m for m in messages if m.id != message_id]
        self.calls.append(("delete", channel_id, message_id))

    async def latest_message_id(self, channel_id: int) -> Optional[int]:
        messages = self.channels.get(channel_id)
        return messages[-1].id if messages else None

    async def fetch_recent_history(self, channel_id: int, limit: int) -> list[HistoryEntry]:
        self.history_calls += 1
        await asyncio.sleep(0)
        if self.fail_history:
            raise PublishFailure("history failed")
        newest_first = list(reversed(self.channels.get(channel_id, [])))[:limit]
        return [
            HistoryEntry(
                message_id=m.id,
                author_id=m.author_id,
                is_self=m.is_self,
                is_bot=m.is_bot,
                has_status_payload=m.is_status,
                marks_free=m.marks_free,
            )
            for m in newest_first
        ]

    def channel_layout(self, guild_id: int) -> Optional[list[ChannelGroup]]:
        return self.layouts.get(guild_id)


class Replies:
    """Collects reply(text, ephemeral) calls made by the handlers."""

    def __init__(self):
        self.sent: list[tuple[str, bool]] = []

    async def __call__(self, text: str, ephemeral: bool) -> None:
        self.sent.append((text, ephemeral))


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()


@pytest.fixture
def monitor() -> ChannelMonitor:
    m = ChannelMonitor(clock=lambda: 1_700_000_000.0)
    m.add_channel_to_monitor(CHANNEL_A, GUILD)
    m.add_channel_for_status(STATUS, GUILD)
    return m


@pytest.fixture
def publisher(monitor, sink) -> StatusPublisher:
    return StatusPublisher(monitor, sink)


@pytest.fixture
def handlers(monitor, publisher) -> EventHandlers:
    return EventHandlers(monitor, publisher)
