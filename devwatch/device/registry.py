"""DeviceRegistry — the watcher's sys_path → DeviceDescription map."""

from __future__ import annotations

from typing import Dict, Iterator, Optional

from devwatch.device.description import DeviceDescription


class DeviceRegistry:
    """Known devices keyed by sys_path.

    Owned by exactly one watcher. Readers may look devices up at any time;
    only the owning watcher mutates it.
    """

    def __init__(self, devices: Optional[Dict[str, DeviceDescription]] = None):
        self._devices: Dict[str, DeviceDescription] = dict(devices or {})

    def __contains__(self, sys_path: object) -> bool:
        return sys_path in self._devices

    def __len__(self) -> int:
        return len(self._devices)

    def __iter__(self) -> Iterator[str]:
        return iter(self._devices)

    def get(self, sys_path: str) -> Optional[DeviceDescription]:
        return self._devices.get(sys_path)

    def values(self):
        return self._devices.values()

    def items(self):
        return self._devices.items()

    def snapshot(self) -> Dict[str, DeviceDescription]:
        """Return a shallow copy safe to keep across rescans."""
        return dict(self._devices)

    def insert(self, description: DeviceDescription) -> bool:
        """Register *description*. Returns False if its sys_path is already known."""
        if description.sys_path in self._devices:
            return False
        self._devices[description.sys_path] = description
        return True

    def discard(self, sys_path: str) -> Optional[DeviceDescription]:
        return self._devices.pop(sys_path, None)

    def replace(self, devices: Dict[str, DeviceDescription]) -> Dict[str, DeviceDescription]:
        """Swap in *devices* wholesale and return the previous contents."""
        previous, self._devices = self._devices, devices
        return previous

    def clear(self) -> None:
        self._devices = {}
