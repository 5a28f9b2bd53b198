"""
monitor/status_cache.py
Remembers which message holds the status summary in each status channel.

After a restart the cache is cold, so the first lookup per channel scans the
recent history for the bot's own status embed. Later lookups never touch the
platform unless the entry is invalidated.
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .sink import MessagingSink

log = logging.getLogger("helpbot.status_cache")

HISTORY_SCAN_LIMIT = 100   # messages scanned backwards on a cold cache


class RefState(Enum):
    UNKNOWN = "unknown"   # not looked up yet
    ABSENT  = "absent"    # looked up, no status message found
    PRESENT = "present"


@dataclass(frozen=True)
class StatusMessageRef:
    state: RefState
    message_id: Optional[int] = None

    @classmethod
    def present(cls, message_id: int) -> "StatusMessageRef":
        return cls(RefState.PRESENT, message_id)

    @property
    def is_present(self) -> bool:
        return self.state is RefState.PRESENT


UNKNOWN = StatusMessageRef(RefState.UNKNOWN)
ABSENT  = StatusMessageRef(RefState.ABSENT)


class StatusMessageCache:
    def __init__(self, sink: MessagingSink, scan_limit: int = HISTORY_SCAN_LIMIT):
        self.sink = sink
        self.scan_limit = scan_limit
        self._refs: dict[int, StatusMessageRef] = {}
        self._scan_locks: dict[int, asyncio.Lock] = {}

    def get(self, channel_id: int) -> StatusMessageRef:
        return self._refs.get(channel_id, UNKNOWN)

    def set_present(self, channel_id: int, message_id: int) -> None:
        self._refs[channel_id] = StatusMessageRef.present(message_id)

    def set_absent(self, channel_id: int) -> None:
        self._refs[channel_id] = ABSENT

    def invalidate(self, channel_id: int) -> None:
        """Forget the entry so the next resolve scans history again."""
        self._refs.pop(channel_id, None)

    async def resolve(self, channel_id: int) -> StatusMessageRef:
        """
        Return the cached reference, scanning recent history first if the
        entry is UNKNOWN. Never returns UNKNOWN; a failed scan raises
        PublishFailure and leaves the entry UNKNOWN.
        """
        ref = self.get(channel_id)
        if ref.state is not RefState.UNKNOWN:
            return ref

        lock = self._scan_locks.setdefault(channel_id, asyncio.Lock())
        async with lock:
            # another task may have finished the scan while we waited
            ref = self.get(channel_id)
            if ref.state is not RefState.UNKNOWN:
                return ref

            history = await self.sink.fetch_recent_history(channel_id, self.scan_limit)
            for entry in history:
                if entry.is_self and entry.has_status_payload:
                    log.info("Found existing status message %s in channel %s", entry.message_id, channel_id)
                    ref = StatusMessageRef.present(entry.message_id)
                    break
            else:
                log.info("No status message in the last %d messages of channel %s", self.scan_limit, channel_id)
                ref = ABSENT
            self._refs[channel_id] = ref
            return ref
