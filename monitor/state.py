"""
monitor/state.py
Channel availability state: which channels are monitored, which channel per
guild shows the status summary, and whether each help channel is busy.

ChannelMonitor is the single source of truth. It is built once at startup and
handed to every cog; all reads and writes go through its lock.
"""

from __future__ import annotations
import logging
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional, Sequence

from . import strings
from .errors import ConfigurationError, NotConfiguredError, NotMonitoredError

log = logging.getLogger("helpbot.monitor")


@dataclass
class MonitoredChannel:
    """Busy/free state of one help channel."""
    channel_id: int
    guild_id: int
    busy: bool = False
    occupant: Optional[int] = None      # user id, set only while busy
    busy_since: Optional[float] = None  # epoch seconds, set only while busy

    def mention(self) -> str:
        return f"<#{self.channel_id}>"

    def to_status_line(self) -> str:
        if not self.busy:
            return f"{strings.FREE_EMOJI} {self.mention()}"
        line = f"{strings.BUSY_EMOJI} {self.mention()} claimed by <@{self.occupant}>"
        if self.busy_since is not None:
            line += f" <t:{int(self.busy_since)}:R>"
        return line


@dataclass(frozen=True)
class StatusChannel:
    channel_id: int
    guild_id: int


@dataclass(frozen=True)
class ChannelGroup:
    """A display group (category) of channels, as ordered by the platform."""
    name: Optional[str]
    channel_ids: tuple[int, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class HistoryEntry:
    """One message of recent channel history, most recent first in sequences."""
    message_id: int
    author_id: int
    is_self: bool = False
    is_bot: bool = False
    has_status_payload: bool = False
    marks_free: bool = False


def infer_occupant(history: Iterable[HistoryEntry]) -> Optional[int]:
    """
    Decide the initial state of a channel from its recent history.

    Walks newest first: a "marked free" confirmation means free, the first
    message from a human means busy with that author. Other bot messages
    (status summaries, new-question notices) are skipped.
    Returns the occupant's user id, or None for free.
    """
    for entry in history:
        if entry.marks_free:
            return None
        if entry.is_bot or entry.is_self:
            continue
        return entry.author_id
    return None


class ChannelMonitor:
    """Registry and busy/free state machine for every configured guild."""

    def __init__(self, clock=time.time):
        self._lock = threading.RLock()
        self._channels: dict[int, MonitoredChannel] = {}
        self._status_channels: dict[int, StatusChannel] = {}   # guild_id → status channel
        self._clock = clock

    # ──────────────────────────────────────────
    # Registration
    # ──────────────────────────────────────────

    def add_channel_to_monitor(self, channel_id: int, guild_id: int) -> None:
        with self._lock:
            if channel_id in self._channels:
                return
            self._channels[channel_id] = MonitoredChannel(channel_id=channel_id, guild_id=guild_id)
            log.debug("Monitoring channel %s in guild %s", channel_id, guild_id)

    def add_channel_for_status(self, channel_id: int, guild_id: int) -> None:
        with self._lock:
            existing = self._status_channels.get(guild_id)
            if existing is not None:
                if existing.channel_id == channel_id:
                    return
                raise ConfigurationError(
                    f"Guild {guild_id} already has status channel {existing.channel_id}, "
                    f"refusing to also register {channel_id}"
                )
            self._status_channels[guild_id] = StatusChannel(channel_id=channel_id, guild_id=guild_id)
            log.debug("Status channel for guild %s is %s", guild_id, channel_id)

    # ──────────────────────────────────────────
    # Lookups
    # ──────────────────────────────────────────

    def is_monitoring_guild(self, guild_id: int) -> bool:
        with self._lock:
            if guild_id in self._status_channels:
                return True
            return any(c.guild_id == guild_id for c in self._channels.values())

    def is_monitoring_channel(self, channel_id: int) -> bool:
        with self._lock:
            return channel_id in self._channels

    def is_channel_busy(self, channel_id: int) -> bool:
        with self._lock:
            return self._get(channel_id).busy

    def occupant_of(self, channel_id: int) -> Optional[int]:
        with self._lock:
            return self._get(channel_id).occupant

    def snapshot(self, channel_id: int) -> MonitoredChannel:
        """Copy of a channel's current state, safe to hold outside the lock."""
        with self._lock:
            return replace(self._get(channel_id))

    def get_status_channel_for(self, guild_id: int) -> StatusChannel:
        with self._lock:
            try:
                return self._status_channels[guild_id]
            except KeyError:
                raise NotConfiguredError(f"Guild {guild_id} has no status channel") from None

    def guild_ids(self) -> list[int]:
        with self._lock:
            ids = set(self._status_channels)
            ids.update(c.guild_id for c in self._channels.values())
            return sorted(ids)

    def status_channel_ids(self) -> list[int]:
        with self._lock:
            return [s.channel_id for s in self._status_channels.values()]

    def monitored_channel_ids(self, guild_id: int) -> list[int]:
        with self._lock:
            return sorted(c.channel_id for c in self._channels.values() if c.guild_id == guild_id)

    def _get(self, channel_id: int) -> MonitoredChannel:
        try:
            return self._channels[channel_id]
        except KeyError:
            raise NotMonitoredError(f"Channel {channel_id} is not monitored") from None

    # ──────────────────────────────────────────
    # Transitions
    # ──────────────────────────────────────────

    def set_channel_busy(self, channel_id: int, user_id: int) -> bool:
        """Mark a free channel busy. First caller wins; returns True if this call did it."""
        with self._lock:
            channel = self._get(channel_id)
            if channel.busy:
                return False
            channel.busy = True
            channel.occupant = user_id
            channel.busy_since = self._clock()
            log.info("Channel %s is now busy (occupant %s)", channel_id, user_id)
            return True

    def set_channel_free(self, channel_id: int) -> bool:
        """Mark a channel free. Returns True if it was busy before this call."""
        with self._lock:
            channel = self._get(channel_id)
            if not channel.busy:
                return False
            channel.busy = False
            channel.occupant = None
            channel.busy_since = None
            log.info("Channel %s is now free", channel_id)
            return True

    # ──────────────────────────────────────────
    # Rendering
    # ──────────────────────────────────────────

    def status_message(self, guild_id: int, layout: Optional[Sequence[ChannelGroup]] = None) -> str:
        """
        Render the status summary for a guild.

        Channels are split into a Free and a Busy section. Inside each section
        they keep the platform's display order, under a heading per category.
        Monitored channels the layout does not know about follow in id order.
        """
        with self._lock:
            if not self.is_monitoring_guild(guild_id):
                raise NotConfiguredError(f"Guild {guild_id} is not configured for the free command")
            channels = {c.channel_id: replace(c) for c in self._channels.values() if c.guild_id == guild_id}

        groups = self._order(channels, layout)
        sections = []
        for heading, busy in ((strings.STATUS_FREE_HEADING, False), (strings.STATUS_BUSY_HEADING, True)):
            lines = [heading]
            for name, ids in groups:
                matching = [channels[i] for i in ids if channels[i].busy == busy]
                if not matching:
                    continue
                if name:
                    lines.append(f"__{name}__")
                lines.extend(c.to_status_line() for c in matching)
            if len(lines) == 1:
                lines.append(strings.STATUS_EMPTY)
            sections.append("\n".join(lines))
        return "\n\n".join(sections)

    @staticmethod
    def _order(
        channels: dict[int, MonitoredChannel],
        layout: Optional[Sequence[ChannelGroup]],
    ) -> list[tuple[Optional[str], list[int]]]:
        groups: list[tuple[Optional[str], list[int]]] = []
        seen: set[int] = set()
        for group in layout or ():
            ids = [i for i in group.channel_ids if i in channels and i not in seen]
            if ids:
                groups.append((group.name, ids))
                seen.update(ids)
        leftover = sorted(i for i in channels if i not in seen)
        if leftover:
            groups.append((None, leftover))
        return groups

    def __repr__(self) -> str:
        with self._lock:
            status = {g: s.channel_id for g, s in self._status_channels.items()}
            return f"ChannelMonitor(channels={sorted(self._channels)}, status_channels={status})"
