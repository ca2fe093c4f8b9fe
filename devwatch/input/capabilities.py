"""Input-device predicates udev matching cannot express.

udev tells whether a node belongs to the ``input`` subsystem, but not
reliably whether it is a real keyboard or mouse. These predicates open the
event node with evdev and inspect its capabilities.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

import evdev
from evdev import ecodes

from devwatch.device.description import DeviceDescription
from devwatch.errors import ConfigurationError

logger = logging.getLogger(__name__)

KEYBOARD = "keyboard"
MOUSE = "mouse"
INPUT_KINDS = (KEYBOARD, MOUSE)

# Name fragments that identify devices to exclude
EXCLUDE_NAME_FRAGMENTS = [
    "virtual",
    "uinput",
]


def should_include_device(device_name: str) -> bool:
    """Return True unless the name marks a virtual device."""
    lower = device_name.lower()
    return not any(fragment in lower for fragment in EXCLUDE_NAME_FRAGMENTS)


def classify_capabilities(caps: dict) -> set[str]:
    """Return the input kinds an evdev capability map provides."""
    keys = caps.get(ecodes.EV_KEY, [])
    kinds = set()
    if ecodes.KEY_A in keys:
        kinds.add(KEYBOARD)
    if ecodes.BTN_LEFT in keys or ecodes.BTN_RIGHT in keys:
        kinds.add(MOUSE)
    return kinds


def input_kind_predicate(kinds: Iterable[str]) -> Callable[[DeviceDescription], bool]:
    """Build a visibility predicate accepting event nodes of the given *kinds*.

    Raises:
        ConfigurationError: an unknown kind was requested.
    """
    wanted = frozenset(kinds)
    unknown = wanted - set(INPUT_KINDS)
    if unknown:
        raise ConfigurationError(f"Unknown input kind(s): {', '.join(sorted(unknown))}")

    def predicate(description: DeviceDescription) -> bool:
        node = description.device_node
        if not node.startswith("/dev/input/event"):
            return False
        try:
            device = evdev.InputDevice(node)
        except OSError as exc:
            logger.debug("Cannot open %s: %s", node, exc)
            return False
        try:
            if not should_include_device(device.name):
                return False
            provided = classify_capabilities(device.capabilities())
        finally:
            device.close()
        return bool(provided & wanted) if wanted else bool(provided)

    return predicate
