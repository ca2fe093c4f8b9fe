"""Exception hierarchy for devwatch."""

from __future__ import annotations


class DevwatchError(Exception):
    """Base class for every error raised by devwatch."""


class ConfigurationError(DevwatchError, ValueError):
    """Malformed match criteria or configuration values."""


class NoParentError(DevwatchError, LookupError):
    """A device has no parent (or no ancestor of the requested type)."""

    def __init__(self, sys_path: str, message: str | None = None):
        self.sys_path = sys_path
        super().__init__(message or f"Device {sys_path} has no parent")


class NativeResourceError(DevwatchError, OSError):
    """The udev subsystem refused to create or run a native resource."""


class EnumerationError(NativeResourceError):
    """A full device scan could not be performed."""


class MonitorError(NativeResourceError):
    """The netlink monitor could not be armed."""
