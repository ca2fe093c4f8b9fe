"""DeviceDescription — immutable snapshot of one udev device."""

from __future__ import annotations

from datetime import timedelta
from types import MappingProxyType
from typing import Any, Mapping, Optional

from devwatch.errors import NoParentError


def _text(value: Optional[str]) -> str:
    """Null udev strings are reported as empty strings."""
    return value if value is not None else ""


class DeviceDescription:
    """Snapshot of a ``pyudev.Device``: identity, properties, tags and attributes.

    The snapshot never changes after construction. A device that changed is
    represented by a new description. The native device is kept only to walk
    the parent chain on demand.
    """

    __slots__ = (
        "_device",
        "_sys_path",
        "_sys_name",
        "_sys_number",
        "_device_path",
        "_device_node",
        "_subsystem",
        "_device_type",
        "_driver",
        "_is_initialized",
        "_usec_since_initialized",
        "_properties",
        "_tags",
        "_attributes",
    )

    def __init__(self, device: Any):
        if device is None:
            raise ValueError("DeviceDescription requires a device")

        self._device = device
        self._sys_path = _text(device.sys_path)
        self._sys_name = _text(device.sys_name)
        self._sys_number = _text(device.sys_number)
        self._device_path = _text(device.device_path)
        self._device_node = _text(device.device_node)
        self._subsystem = _text(device.subsystem)
        self._device_type = _text(device.device_type)
        self._driver = _text(device.driver)
        self._is_initialized = bool(device.is_initialized)
        self._usec_since_initialized = self._read_usec(device)

        self._properties = MappingProxyType(
            {key: device.properties[key] for key in device.properties}
        )
        self._tags = frozenset(device.tags)
        self._attributes = MappingProxyType(self._read_attributes(device))

    @staticmethod
    def _read_usec(device: Any) -> int:
        since = device.time_since_initialized
        if isinstance(since, timedelta):
            return since // timedelta(microseconds=1)
        return int(since or 0)

    @staticmethod
    def _read_attributes(device: Any) -> dict[str, str]:
        attributes = device.attributes
        values: dict[str, str] = {}
        for name in attributes.available_attributes:
            try:
                values[name] = attributes.asstring(name)
            except (KeyError, OSError, UnicodeDecodeError):
                # write-only or unreadable sysfs entry
                continue
        return values

    # ------------------------------------------------------------------
    # Copying
    # ------------------------------------------------------------------

    def __copy__(self) -> "DeviceDescription":
        clone = object.__new__(DeviceDescription)
        for slot in self.__slots__:
            setattr(clone, slot, getattr(self, slot))
        return clone

    # ------------------------------------------------------------------
    # Ancestry
    # ------------------------------------------------------------------

    def parent(self) -> "DeviceDescription":
        """Return the description of the parent device.

        Raises:
            NoParentError: the device sits at the root of the device tree.
        """
        parent = self._device.parent
        if parent is None:
            raise NoParentError(self._sys_path)
        return DeviceDescription(parent)

    def parent_with_type(
        self,
        subsystem: Optional[str] = None,
        device_type: Optional[str] = None,
    ) -> "DeviceDescription":
        """Return the closest ancestor matching *subsystem* and *device_type*.

        Empty or ``None`` arguments match anything.

        Raises:
            NoParentError: no ancestor matches.
        """
        for ancestor in self._device.ancestors:
            if subsystem and ancestor.subsystem != subsystem:
                continue
            if device_type and ancestor.device_type != device_type:
                continue
            return DeviceDescription(ancestor)
        raise NoParentError(
            self._sys_path,
            f"No parent with specified type for device {self._sys_path}",
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def device(self) -> Any:
        """The underlying ``pyudev.Device``."""
        return self._device

    @property
    def sys_path(self) -> str:
        return self._sys_path

    @property
    def sys_name(self) -> str:
        return self._sys_name

    @property
    def sys_number(self) -> str:
        return self._sys_number

    @property
    def device_path(self) -> str:
        return self._device_path

    @property
    def device_node(self) -> str:
        return self._device_node

    @property
    def subsystem(self) -> str:
        return self._subsystem

    @property
    def device_type(self) -> str:
        return self._device_type

    @property
    def driver(self) -> str:
        return self._driver

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    @property
    def usec_since_initialized(self) -> int:
        return self._usec_since_initialized

    @property
    def properties(self) -> Mapping[str, str]:
        return self._properties

    @property
    def tags(self) -> frozenset[str]:
        return self._tags

    @property
    def attributes(self) -> Mapping[str, str]:
        return self._attributes

    def __repr__(self) -> str:
        return (
            f"DeviceDescription(sys_path={self._sys_path!r}, "
            f"subsystem={self._subsystem!r}, device_type={self._device_type!r})"
        )
