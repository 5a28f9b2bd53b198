"""
monitor/publisher.py
Keeps each guild's status message current.

If the cached status message is still the newest message in its channel it is
edited in place, otherwise it is deleted and posted again so it stays at the
bottom of the channel where people see it.
"""

from __future__ import annotations
import asyncio
import logging

from .errors import NotConfiguredError, PublishFailure, StatusMessageGone
from .sink import MessagingSink
from .state import ChannelMonitor
from .status_cache import StatusMessageCache

log = logging.getLogger("helpbot.publisher")


class StatusPublisher:
    def __init__(self, monitor: ChannelMonitor, sink: MessagingSink, cache: StatusMessageCache | None = None):
        self.monitor = monitor
        self.sink    = sink
        self.cache   = cache or StatusMessageCache(sink)
        self._locks: dict[int, asyncio.Lock] = {}   # status channel id → publish lock
        self._pending: set[asyncio.Task] = set()

    def schedule(self, guild_id: int) -> asyncio.Task:
        """Publish in the background; the caller does not wait for the platform."""
        task = asyncio.create_task(self.publish(guild_id), name=f"publish-status-{guild_id}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for every scheduled publish to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def publish(self, guild_id: int) -> None:
        try:
            status_channel = self.monitor.get_status_channel_for(guild_id)
        except NotConfiguredError:
            log.warning("No status channel configured for guild %s, nothing to publish.", guild_id)
            return

        channel_id = status_channel.channel_id
        lock = self._locks.setdefault(channel_id, asyncio.Lock())
        async with lock:
            # a vanished status message gets one rescan and repost, never more
            for attempt in (1, 2):
                try:
                    await self._publish_locked(guild_id, channel_id)
                    return
                except StatusMessageGone as e:
                    log.warning("Status message in channel %s disappeared (%s), attempt %d.", channel_id, e, attempt)
                    self.cache.invalidate(channel_id)
                except PublishFailure as e:
                    log.error("Failed to publish status for guild %s in channel %s: %s", guild_id, channel_id, e)
                    return

    async def _publish_locked(self, guild_id: int, channel_id: int) -> None:
        text = self.monitor.status_message(guild_id, self.sink.channel_layout(guild_id))
        ref  = await self.cache.resolve(channel_id)

        if ref.is_present:
            latest = await self.sink.latest_message_id(channel_id)
            if latest == ref.message_id:
                await self.sink.edit_message(channel_id, ref.message_id, text)
                log.debug("Edited status message %s in channel %s", ref.message_id, channel_id)
                return
            await self.sink.delete_message(channel_id, ref.message_id)
            self.cache.set_absent(channel_id)
            log.debug("Deleted out-of-place status message %s in channel %s", ref.message_id, channel_id)

        message_id = await self.sink.send_message(channel_id, text)
        self.cache.set_present(channel_id, message_id)
        log.debug("Posted status message %s in channel %s", message_id, channel_id)

    async def reconcile_all(self) -> None:
        """Locate the existing status message in every status channel."""
        for channel_id in self.monitor.status_channel_ids():
            try:
                await self.cache.resolve(channel_id)
            except PublishFailure as e:
                log.error("Could not scan status channel %s: %s", channel_id, e)

    async def publish_all(self) -> None:
        for guild_id in self.monitor.guild_ids():
            await self.publish(guild_id)
