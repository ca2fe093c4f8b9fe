"""udev-backed device snapshots, registry and watchers."""

from devwatch.device.criteria import MatchCriteria, MatchPolicy, WatchPolicy
from devwatch.device.description import DeviceDescription
from devwatch.device.registry import DeviceRegistry
from devwatch.device.watcher import DeviceWatcher, FilteredDeviceWatcher

__all__ = [
    "DeviceDescription",
    "DeviceRegistry",
    "DeviceWatcher",
    "FilteredDeviceWatcher",
    "MatchCriteria",
    "MatchPolicy",
    "WatchPolicy",
]
