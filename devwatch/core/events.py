"""Typed event definitions (dataclasses)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any


class EventType(Enum):
    # Device lifecycle
    DEVICE_ADDED = auto()
    DEVICE_REMOVED = auto()
    # Watcher lifecycle
    WATCHER_ACTIVATED = auto()
    WATCHER_DEACTIVATED = auto()
    SCAN_COMPLETE = auto()


@dataclass
class Event:
    type: EventType
    data: Any
    timestamp: float


@dataclass
class ScanEventData:
    added: int
    removed: int
    known: int


# Events whose data is a DeviceDescription
DEVICE_EVENTS = frozenset({EventType.DEVICE_ADDED, EventType.DEVICE_REMOVED})
