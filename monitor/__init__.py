"""Monitor package __init__.py"""
from .state import ChannelMonitor, ChannelGroup, HistoryEntry, MonitoredChannel, StatusChannel
from .status_cache import StatusMessageCache, StatusMessageRef, RefState
from .publisher import StatusPublisher
from .handlers import EventHandlers, EventKind, MessagePosted, FreeInvoked, Ready
from .errors import (
    FreeCommandError, NotReadyError, NotConfiguredError, NotMonitoredError,
    AlreadyFreeError, PublishFailure, StatusMessageGone, ConfigurationError,
)

__all__ = [
    "ChannelMonitor", "ChannelGroup", "HistoryEntry", "MonitoredChannel", "StatusChannel",
    "StatusMessageCache", "StatusMessageRef", "RefState",
    "StatusPublisher",
    "EventHandlers", "EventKind", "MessagePosted", "FreeInvoked", "Ready",
    "FreeCommandError", "NotReadyError", "NotConfiguredError", "NotMonitoredError",
    "AlreadyFreeError", "PublishFailure", "StatusMessageGone", "ConfigurationError",
]
