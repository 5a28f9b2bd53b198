"""
monitor/handlers.py
Turns inbound platform events into ChannelMonitor transitions and status
publishes. The discord.py cogs build these events; nothing here imports discord.
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Awaitable, Callable, ClassVar, Optional, Union

from . import strings
from .errors import (
    AlreadyFreeError, FreeCommandError, NotConfiguredError, NotMonitoredError,
    NotReadyError, PublishFailure,
)
from .publisher import StatusPublisher
from .state import ChannelMonitor, infer_occupant

log = logging.getLogger("helpbot.handlers")

INITIAL_SCAN_LIMIT = 20   # messages per monitored channel inspected at startup

# reply(text, ephemeral)
Reply = Callable[[str, bool], Awaitable[None]]


class EventKind(Enum):
    MESSAGE_POSTED = auto()
    FREE_INVOKED   = auto()
    READY          = auto()


@dataclass(frozen=True)
class MessagePosted:
    kind: ClassVar[EventKind] = EventKind.MESSAGE_POSTED
    channel_id: int
    guild_id: int
    author_id: int
    reply: Reply
    is_bot: bool = False
    is_webhook: bool = False
    reply_to: Optional[int] = None   # id of the message this one replies to


@dataclass(frozen=True)
class FreeInvoked:
    kind: ClassVar[EventKind] = EventKind.FREE_INVOKED
    channel_id: int
    guild_id: int
    user_id: int
    reply: Reply


@dataclass(frozen=True)
class Ready:
    kind: ClassVar[EventKind] = EventKind.READY


Event = Union[MessagePosted, FreeInvoked, Ready]


class EventHandlers:
    def __init__(self, monitor: ChannelMonitor, publisher: StatusPublisher):
        self.monitor   = monitor
        self.publisher = publisher
        self.ready     = False
        self._startup_lock = asyncio.Lock()
        self._routes: dict[EventKind, Callable[..., Awaitable[None]]] = {
            EventKind.MESSAGE_POSTED: self._on_message_posted,
            EventKind.FREE_INVOKED:   self._on_free_invoked,
            EventKind.READY:          self._on_ready,
        }
        missing = set(EventKind) - set(self._routes)
        if missing:
            raise RuntimeError(f"No handler for event kinds: {sorted(k.name for k in missing)}")

    async def dispatch(self, event: Event) -> None:
        await self._routes[event.kind](event)

    # ────────────────────────────────────────
    # Message posted → busy
    # ────────────────────────────────────────

    async def _on_message_posted(self, event: MessagePosted) -> None:
        if event.is_bot or event.is_webhook:
            return
        # no readiness check: a claim made during startup wins over the history scan
        if not self.monitor.is_monitoring_channel(event.channel_id):
            return
        # a reply to an earlier message still claims a free channel
        if not self.monitor.set_channel_busy(event.channel_id, event.author_id):
            log.debug("Channel %s is already busy, ignoring message from %s", event.channel_id, event.author_id)
            return

        self.publisher.schedule(event.guild_id)
        await event.reply(strings.NEW_QUESTION, False)

    # ────────────────────────────────────────
    # /free → free
    # ────────────────────────────────────────

    async def _on_free_invoked(self, event: FreeInvoked) -> None:
        log.debug("/free used by %s in channel %s", event.user_id, event.channel_id)
        try:
            self._check_free_allowed(event)
            # set_channel_free reports whether it changed anything, so two
            # concurrent /free calls cannot both succeed
            if not self.monitor.set_channel_free(event.channel_id):
                raise AlreadyFreeError(f"Channel {event.channel_id} is already free")
        except FreeCommandError as e:
            log.debug("/free rejected in channel %s: %s", event.channel_id, e)
            await event.reply(e.user_message, True)
            return

        self.publisher.schedule(event.guild_id)
        await event.reply(strings.MARK_AS_FREE, False)

    def _check_free_allowed(self, event: FreeInvoked) -> None:
        if not self.ready:
            raise NotReadyError("Free command used before startup finished")
        if not self.monitor.is_monitoring_guild(event.guild_id):
            log.error("/free used in guild %s which is not configured for the free command", event.guild_id)
            raise NotConfiguredError(f"Guild {event.guild_id} is not configured")
        if not self.monitor.is_monitoring_channel(event.channel_id):
            raise NotMonitoredError(f"Channel {event.channel_id} is not monitored")

    # ────────────────────────────────────────
    # Startup
    # ────────────────────────────────────────

    async def _on_ready(self, event: Ready) -> None:
        async with self._startup_lock:
            if self.ready:
                log.info("Ready fired again after reconnect, keeping current channel state.")
                return

            log.info("Startup scan: %r", self.monitor)
            for guild_id in self.monitor.guild_ids():
                for channel_id in self.monitor.monitored_channel_ids(guild_id):
                    await self._scan_initial_state(channel_id)

            await self.publisher.reconcile_all()
            await self.publisher.publish_all()
            self.ready = True
            log.info("Free command ready.")

    async def _scan_initial_state(self, channel_id: int) -> None:
        try:
            history = await self.publisher.sink.fetch_recent_history(channel_id, INITIAL_SCAN_LIMIT)
        except PublishFailure as e:
            log.warning("Could not read history of channel %s, assuming free: %s", channel_id, e)
            return
        occupant = infer_occupant(history)
        if occupant is not None:
            self.monitor.set_channel_busy(channel_id, occupant)
