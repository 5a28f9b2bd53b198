"""
monitor/config.py
Loads the free command configuration: per guild, the status channel and the
channels whose busy/free state is monitored.

File format (JSON list):
    [{"guildId": 1, "statusChannel": 10, "monitoredChannels": [11, 12]}]
"""

from __future__ import annotations
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .errors import ConfigurationError
from .state import ChannelMonitor

log = logging.getLogger("helpbot.config")

FREE_COMMAND_CONFIG = os.getenv("FREE_COMMAND_CONFIG", "free_command.json")


@dataclass(frozen=True)
class FreeCommandConfig:
    guild_id: int
    status_channel: int
    monitored_channels: tuple[int, ...]


def _as_id(value, what: str) -> int:
    # bool is an int subclass, but never a valid snowflake
    if isinstance(value, bool):
        raise ConfigurationError(f"{what} must be a channel/guild id, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{what} must be a channel/guild id, got {value!r}") from None


def parse_free_command_config(raw) -> list[FreeCommandConfig]:
    if not isinstance(raw, list):
        raise ConfigurationError("Free command config must be a JSON list of guild entries")

    entries = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            raise ConfigurationError(f"Entry {index} must be an object")
        for key in ("guildId", "statusChannel", "monitoredChannels"):
            if key not in item:
                raise ConfigurationError(f"Entry {index} is missing '{key}'")
        monitored = item["monitoredChannels"]
        if not isinstance(monitored, list):
            raise ConfigurationError(f"Entry {index}: 'monitoredChannels' must be a list")
        entries.append(FreeCommandConfig(
            guild_id=_as_id(item["guildId"], f"Entry {index} guildId"),
            status_channel=_as_id(item["statusChannel"], f"Entry {index} statusChannel"),
            monitored_channels=tuple(_as_id(c, f"Entry {index} monitored channel") for c in monitored),
        ))
    return entries


def load_free_command_config(path: str | Path = FREE_COMMAND_CONFIG) -> list[FreeCommandConfig]:
    path = Path(path)
    if not path.exists():
        log.warning("Free command config %s not found, no channels will be monitored.", path)
        return []
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{path} is not valid JSON: {e}") from e
    entries = parse_free_command_config(raw)
    log.info("Loaded free command config for %d guild(s) from %s", len(entries), path)
    return entries


def apply_config(monitor: ChannelMonitor, entries: Iterable[FreeCommandConfig]) -> ChannelMonitor:
    """Register every configured channel. Raises ConfigurationError on conflicts."""
    for entry in entries:
        for channel_id in entry.monitored_channels:
            monitor.add_channel_to_monitor(channel_id, entry.guild_id)
        monitor.add_channel_for_status(entry.status_channel, entry.guild_id)
    return monitor
