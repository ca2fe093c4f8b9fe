"""DeviceWatcher — live, diffed view of udev devices with hot-plug support.

The watcher keeps a :class:`DeviceRegistry` consistent from two sources: a
full enumeration (:meth:`DeviceWatcher.scan`) and the netlink monitor, drained
one event per readiness wake (:meth:`DeviceWatcher.on_monitor_event`).

Observers only ever see net changes. Removals are published while the device
is still registered; additions are published once it is registered.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import pyudev

from devwatch.core.event_bus import EventBus
from devwatch.core.events import Event, EventType, ScanEventData
from devwatch.device.criteria import MatchCriteria, MatchPolicy, VisibilityPredicate, WatchPolicy
from devwatch.device.description import DeviceDescription
from devwatch.device.registry import DeviceRegistry
from devwatch.errors import EnumerationError, MonitorError
from devwatch.log import format_device

logger = logging.getLogger(__name__)

DeviceCallback = Callable[[DeviceDescription], None]


class DeviceWatcher:
    """Watches udev devices accepted by a :class:`WatchPolicy`.

    Parameters:
        context:           Shared ``pyudev.Context``; a new one is created if omitted.
        policy:            Native filters and visibility check (accept-all by default).
        loop:              Event loop with ``add_reader``/``remove_reader``
                           (``asyncio`` loops and :class:`devwatch.loop.SelectorLoop`).
                           Without a loop the caller polls :meth:`fileno` and calls
                           :meth:`on_monitor_event` itself.
        event_bus:         Bus the notifications are published on.
        on_device_added:   Called with the :class:`DeviceDescription` of each new device.
        on_device_removed: Called with the :class:`DeviceDescription` of each removed device.
    """

    def __init__(
        self,
        context: Optional[Any] = None,
        policy: Optional[WatchPolicy] = None,
        loop: Optional[Any] = None,
        event_bus: Optional[EventBus] = None,
        on_device_added: Optional[DeviceCallback] = None,
        on_device_removed: Optional[DeviceCallback] = None,
    ):
        self._context = context if context is not None else pyudev.Context()
        self._policy = policy if policy is not None else WatchPolicy()
        self._loop = loop
        self.event_bus = event_bus if event_bus is not None else EventBus()
        self._registry = DeviceRegistry()
        self._monitor: Optional[Any] = None
        self._fd: Optional[int] = None
        self._active = False

        self.event_bus.subscribe_devices(on_device_added, on_device_removed)

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------

    @property
    def active(self) -> bool:
        return self._active

    @property
    def context(self) -> Any:
        return self._context

    @property
    def policy(self) -> WatchPolicy:
        return self._policy

    @property
    def registry(self) -> DeviceRegistry:
        """Known devices. Authoritative while active, last-known state otherwise."""
        return self._registry

    def devices(self) -> List[DeviceDescription]:
        return list(self._registry.values())

    def known(self, sys_path: str) -> Optional[DeviceDescription]:
        return self._registry.get(sys_path)

    def fileno(self) -> Optional[int]:
        """Monitor descriptor while active, ``None`` otherwise."""
        return self._fd

    def is_visible(self, description: DeviceDescription) -> bool:
        return self._policy.is_visible(description)

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    def set_active(self, active: bool) -> None:
        """Arm or tear down the monitor.

        Activation arms the monitor, scans, then registers the monitor
        descriptor with the loop. Deactivation unregisters the descriptor
        before returning and leaves the registry as last-known state.

        Raises:
            MonitorError: the monitor could not be armed (watcher stays inactive).
            EnumerationError: the initial scan failed (watcher stays inactive).
        """
        if active == self._active:
            return
        if active:
            self._activate()
        else:
            self._deactivate()

    def _activate(self) -> None:
        try:
            monitor = pyudev.Monitor.from_netlink(self._context, source="udev")
            self._policy.configure_monitor(monitor)
            monitor.start()
        except (OSError, ValueError) as exc:
            raise MonitorError(f"Cannot arm udev monitor: {exc}") from exc

        self._monitor = monitor
        try:
            self.scan()
        except EnumerationError:
            self._monitor = None
            raise

        fd = monitor.fileno()
        if self._loop is not None:
            self._loop.add_reader(fd, self._on_ready, fd)
        self._fd = fd
        self._active = True
        logger.info("Device watcher active (fd=%s, %d devices)", fd, len(self._registry))
        self._publish(EventType.WATCHER_ACTIVATED, self)

    def _deactivate(self) -> None:
        if self._loop is not None and self._fd is not None:
            self._loop.remove_reader(self._fd)
        self._fd = None
        self._monitor = None
        self._active = False
        logger.info("Device watcher inactive")
        self._publish(EventType.WATCHER_DEACTIVATED, self)

    # ------------------------------------------------------------------
    # Full reconciliation
    # ------------------------------------------------------------------

    def scan(self) -> ScanEventData:
        """Reconcile the registry against a full enumeration.

        Known devices are carried forward as the same instance. Removals are
        published before the new registry is installed, additions after.

        Raises:
            EnumerationError: the enumeration failed; the registry is untouched.
        """
        try:
            enumerator = self._context.list_devices()
            self._policy.configure_enumerator(enumerator)
            devices = list(enumerator)
        except (OSError, ValueError) as exc:
            raise EnumerationError(f"Device enumeration failed: {exc}") from exc

        previous = self._registry.snapshot()
        result: Dict[str, DeviceDescription] = {}

        for device in devices:
            sys_path = device.sys_path
            if sys_path in result:
                continue

            known = previous.get(sys_path)
            if known is not None:
                logger.trace("Carrying forward %s", sys_path)
                result[sys_path] = known
                continue

            description = DeviceDescription(device)
            if self.is_visible(description):
                result[sys_path] = description
            else:
                logger.debug("Device %s rejected by visibility check", sys_path)

        removed = [desc for path, desc in previous.items() if path not in result]
        for description in removed:
            self._publish(EventType.DEVICE_REMOVED, description)

        self._registry.replace(result)

        added = [desc for path, desc in result.items() if path not in previous]
        for description in added:
            self._publish(EventType.DEVICE_ADDED, description)

        summary = ScanEventData(added=len(added), removed=len(removed), known=len(result))
        logger.debug("Scan complete: +%d -%d (%d known)", summary.added, summary.removed, summary.known)
        self._publish(EventType.SCAN_COMPLETE, summary)
        return summary

    # ------------------------------------------------------------------
    # Incremental updates
    # ------------------------------------------------------------------

    def _on_ready(self, fd: int) -> None:
        self.on_monitor_event()

    def on_monitor_event(self) -> None:
        """Drain exactly one pending monitor event and apply it."""
        if self._monitor is None:
            logger.debug("Monitor event while inactive — ignored")
            return

        try:
            device = self._monitor.poll(timeout=0)
        except OSError as exc:
            logger.warning("Cannot receive udev event: %s", exc)
            return

        if device is None:
            logger.debug("Spurious monitor wake — no event pending")
            return

        action = device.action
        sys_path = device.sys_path
        logger.trace("udev %s %s", action, sys_path)

        if action == "add":
            if sys_path in self._registry:
                return
            description = DeviceDescription(device)
            if not self.is_visible(description):
                logger.debug("Device %s rejected by visibility check", sys_path)
                return
            self._registry.insert(description)
            self._publish(EventType.DEVICE_ADDED, description)

        elif action == "remove":
            description = self._registry.get(sys_path)
            if description is None:
                return
            self._publish(EventType.DEVICE_REMOVED, description)
            self._registry.discard(sys_path)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _publish(self, event_type: EventType, data: Any) -> None:
        if event_type is EventType.DEVICE_ADDED:
            logger.debug("Device added: %s", format_device(data))
        elif event_type is EventType.DEVICE_REMOVED:
            logger.debug("Device removed: %s", format_device(data))
        self.event_bus.publish(Event(type=event_type, data=data, timestamp=time.time()))

    def close(self) -> None:
        """Deactivate and forget every known device."""
        self.set_active(False)
        self._registry.clear()

    def __enter__(self) -> "DeviceWatcher":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        self.close()
        return False


class FilteredDeviceWatcher(DeviceWatcher):
    """Watcher restricted to devices matching :class:`MatchCriteria`.

    *predicate* adds a constraint the udev match APIs cannot express
    (for instance the kind of input device behind an event node).
    """

    def __init__(
        self,
        criteria: Optional[MatchCriteria] = None,
        predicate: Optional[VisibilityPredicate] = None,
        **kwargs: Any,
    ):
        self.criteria = criteria if criteria is not None else MatchCriteria()
        super().__init__(policy=MatchPolicy(self.criteria, predicate), **kwargs)
