"""
monitor/errors.py
Error taxonomy for the free command.

FreeCommandError subclasses are user-visible: handlers turn them into a short
ephemeral reply. PublishFailure is only ever logged.
"""

from __future__ import annotations

from . import strings


class FreeCommandError(Exception):
    """Base class for errors that are reported back to the invoking user."""

    user_message: str = strings.GENERIC_ERROR

    def __init__(self, detail: str = "", user_message: str | None = None):
        super().__init__(detail or self.user_message)
        if user_message is not None:
            self.user_message = user_message


class NotReadyError(FreeCommandError):
    user_message = strings.NOT_READY_ERROR


class NotConfiguredError(FreeCommandError):
    user_message = strings.NOT_CONFIGURED_ERROR


class NotMonitoredError(FreeCommandError):
    user_message = strings.NOT_MONITORED_ERROR


class AlreadyFreeError(FreeCommandError):
    user_message = strings.ALREADY_FREE_ERROR


class PublishFailure(Exception):
    """A send/edit/delete/history call against the chat platform failed."""


class StatusMessageGone(PublishFailure):
    """The cached status message no longer exists on the platform."""


class ConfigurationError(Exception):
    """Ambiguous or malformed free command configuration. Fatal at startup."""
