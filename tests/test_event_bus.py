"""Tests for EventBus."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from devwatch.core.event_bus import EventBus
from devwatch.core.events import Event, EventType


def test_subscribe_and_publish():
    bus = EventBus()
    received = []
    bus.subscribe(EventType.DEVICE_ADDED, received.append)
    event = Event(type=EventType.DEVICE_ADDED, data=None, timestamp=0.0)
    bus.publish(event)
    assert received == [event]


def test_unsubscribe():
    bus = EventBus()
    received = []
    handler = received.append
    bus.subscribe(EventType.DEVICE_ADDED, handler)
    bus.unsubscribe(EventType.DEVICE_ADDED, handler)
    bus.publish(Event(type=EventType.DEVICE_ADDED, data=None, timestamp=0.0))
    assert received == []
    assert bus.handler_count(EventType.DEVICE_ADDED) == 0


def test_unsubscribe_unknown_handler_is_ignored():
    bus = EventBus()
    bus.unsubscribe(EventType.DEVICE_REMOVED, print)


def test_handler_exception_does_not_crash_bus():
    bus = EventBus()

    def bad_handler(e):
        raise RuntimeError("oops")

    received = []
    bus.subscribe(EventType.DEVICE_REMOVED, bad_handler)
    bus.subscribe(EventType.DEVICE_REMOVED, received.append)
    bus.publish(Event(type=EventType.DEVICE_REMOVED, data=None, timestamp=0.0))
    assert len(received) == 1  # second handler still ran


def test_fan_out_in_subscription_order():
    bus = EventBus()
    order = []
    bus.subscribe(EventType.DEVICE_ADDED, lambda e: order.append(1))
    bus.subscribe(EventType.DEVICE_ADDED, lambda e: order.append(2))
    bus.publish(Event(type=EventType.DEVICE_ADDED, data=None, timestamp=0.0))
    assert order == [1, 2]


def test_no_handlers_does_not_raise():
    bus = EventBus()
    bus.publish(Event(type=EventType.SCAN_COMPLETE, data=None, timestamp=0.0))


def test_subscribe_returns_unsubscriber():
    bus = EventBus()
    received = []
    cancel = bus.subscribe(EventType.SCAN_COMPLETE, received.append)
    cancel()
    bus.publish(Event(type=EventType.SCAN_COMPLETE, data=None, timestamp=0.0))
    assert received == []
    cancel()  # second call is harmless


def test_subscribe_rejects_non_event_type():
    bus = EventBus()
    with pytest.raises(TypeError):
        bus.subscribe("DEVICE_ADDED", print)  # type: ignore[arg-type]


def test_publish_counts_completed_handlers():
    bus = EventBus()

    def bad_handler(e):
        raise RuntimeError("oops")

    bus.subscribe(EventType.DEVICE_ADDED, lambda e: None)
    bus.subscribe(EventType.DEVICE_ADDED, bad_handler)
    bus.subscribe(EventType.DEVICE_ADDED, lambda e: None)
    assert bus.publish(Event(type=EventType.DEVICE_ADDED, data=None, timestamp=0.0)) == 2


def test_subscribe_devices_unwraps_description():
    bus = EventBus()
    added, removed = [], []
    bus.subscribe_devices(added.append, removed.append)
    dev = SimpleNamespace(sys_path="/sys/devices/usb/1-1")
    bus.publish(Event(type=EventType.DEVICE_ADDED, data=dev, timestamp=0.0))
    bus.publish(Event(type=EventType.DEVICE_REMOVED, data=dev, timestamp=1.0))
    assert added == [dev]
    assert removed == [dev]
    assert bus.handler_count(EventType.SCAN_COMPLETE) == 0


def test_subscribe_devices_skips_missing_callbacks():
    bus = EventBus()
    bus.subscribe_devices(on_removed=print)
    assert bus.handler_count(EventType.DEVICE_ADDED) == 0
    assert bus.handler_count(EventType.DEVICE_REMOVED) == 1


def test_handler_error_log_names_device(caplog):
    bus = EventBus()

    def bad_handler(e):
        raise RuntimeError("oops")

    bus.subscribe(EventType.DEVICE_REMOVED, bad_handler)
    dev = SimpleNamespace(sys_path="/sys/devices/usb/1-2", subsystem="usb",
                          device_type="usb_device", device_node="/dev/bus/usb/001/004")
    bus.publish(Event(type=EventType.DEVICE_REMOVED, data=dev, timestamp=0.0))
    assert "DEVICE_REMOVED" in caplog.text
    assert "/sys/devices/usb/1-2 [usb/usb_device] /dev/bus/usb/001/004" in caplog.text


def test_handler_subscribed_during_publish_waits_for_next_event():
    bus = EventBus()
    late = []

    def subscribe_late(e):
        bus.subscribe(EventType.DEVICE_ADDED, late.append)

    bus.subscribe(EventType.DEVICE_ADDED, subscribe_late)
    first = Event(type=EventType.DEVICE_ADDED, data=None, timestamp=0.0)
    bus.publish(first)
    assert late == []
    second = Event(type=EventType.DEVICE_ADDED, data=None, timestamp=1.0)
    bus.publish(second)
    assert late == [second]
