"""Shared fakes for pyudev handles, enumerators, monitors and event loops."""

from __future__ import annotations

from collections import deque
from datetime import timedelta

import pyudev
import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Enable tests against the real udev database (skipped by default)."
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="needs --run-live")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


def pytest_configure(config):
    config.addinivalue_line("markers", "live: test talks to the real udev daemon")


# ---------------------------------------------------------------------------
# Fake pyudev objects
# ---------------------------------------------------------------------------


class FakeAttributes:
    """Mimics ``pyudev.Attributes``: names listed, some values unreadable."""

    def __init__(self, values: dict | None = None, unreadable: tuple = ()):
        self._values = dict(values or {})
        self._unreadable = set(unreadable)

    @property
    def available_attributes(self):
        return list(self._values) + sorted(self._unreadable)

    def asstring(self, name: str) -> str:
        if name in self._unreadable or name not in self._values:
            raise KeyError(name)
        return self._values[name]


class FakeUdevDevice:
    def __init__(
        self,
        sys_path: str,
        subsystem: str | None = "input",
        device_type: str | None = None,
        device_node: str | None = None,
        driver: str | None = None,
        properties: dict | None = None,
        tags: tuple = (),
        attributes: dict | None = None,
        unreadable: tuple = (),
        parent: "FakeUdevDevice | None" = None,
        action: str | None = None,
        is_initialized: bool = True,
        usec: int = 1500,
    ):
        self.sys_path = sys_path
        self.sys_name = sys_path.rsplit("/", 1)[-1]
        digits = "".join(ch for ch in self.sys_name if ch.isdigit())
        self.sys_number = digits or None
        self.device_path = sys_path[len("/sys"):] if sys_path.startswith("/sys") else sys_path
        self.device_node = device_node
        self.subsystem = subsystem
        self.device_type = device_type
        self.driver = driver
        self.properties = dict(properties or {})
        self.tags = list(tags)
        self.attributes = FakeAttributes(attributes, unreadable)
        self.parent = parent
        self.action = action
        self.is_initialized = is_initialized
        self.time_since_initialized = timedelta(microseconds=usec)

    @property
    def ancestors(self):
        parent = self.parent
        while parent is not None:
            yield parent
            parent = parent.parent

    def with_action(self, action: str) -> "FakeUdevDevice":
        clone = FakeUdevDevice.__new__(FakeUdevDevice)
        clone.__dict__.update(self.__dict__)
        clone.action = action
        return clone


class FakeEnumerator:
    def __init__(self, devices: list, error: Exception | None = None):
        self._devices = list(devices)
        self._error = error
        self.matches: list[tuple] = []

    def match_subsystem(self, subsystem, nomatch=False):
        self.matches.append(("subsystem", subsystem))
        return self

    def match_attribute(self, attribute, value, nomatch=False):
        self.matches.append(("attribute", attribute, value))
        return self

    def match_property(self, prop, value):
        self.matches.append(("property", prop, value))
        return self

    def match_tag(self, tag):
        self.matches.append(("tag", tag))
        return self

    def __iter__(self):
        if self._error is not None:
            raise self._error
        return iter(self._devices)


class FakeContext:
    """Stands in for ``pyudev.Context``; ``devices`` is the kernel's current set."""

    def __init__(self, devices: list | None = None):
        self.devices = list(devices or [])
        self.error: Exception | None = None
        self.enumerators: list[FakeEnumerator] = []

    def list_devices(self):
        enumerator = FakeEnumerator(self.devices, self.error)
        self.enumerators.append(enumerator)
        return enumerator


class FakeMonitor:
    def __init__(self, fd: int = 17):
        self.fd = fd
        self.events: deque = deque()
        self.filters: list[tuple] = []
        self.started = False
        self.poll_error: Exception | None = None

    def filter_by(self, subsystem, device_type=None):
        self.filters.append(("subsystem", subsystem, device_type))

    def filter_by_tag(self, tag):
        self.filters.append(("tag", tag))

    def start(self):
        self.started = True

    def fileno(self) -> int:
        return self.fd

    def poll(self, timeout=None):
        if self.poll_error is not None:
            raise self.poll_error
        if not self.events:
            return None
        return self.events.popleft()

    def push(self, device: FakeUdevDevice, action: str) -> None:
        self.events.append(device.with_action(action))


class FakeLoop:
    """Records ``add_reader``/``remove_reader`` and fires callbacks on demand."""

    def __init__(self):
        self.readers: dict = {}

    def add_reader(self, fd, callback, *args):
        self.readers[fd] = (callback, args)

    def remove_reader(self, fd):
        return self.readers.pop(fd, None) is not None

    def fire(self, fd) -> bool:
        if fd not in self.readers:
            return False
        callback, args = self.readers[fd]
        callback(*args)
        return True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_device():
    def factory(name: str = "event0", **kwargs) -> FakeUdevDevice:
        sys_path = kwargs.pop("sys_path", f"/sys/devices/virtual/input/input0/{name}")
        return FakeUdevDevice(sys_path, **kwargs)
    return factory


@pytest.fixture
def context():
    return FakeContext()


@pytest.fixture
def monitor(monkeypatch):
    """Make ``pyudev.Monitor.from_netlink`` hand out a single FakeMonitor."""
    fake = FakeMonitor()
    calls = []

    def from_netlink(context, source="udev"):
        calls.append((context, source))
        return fake

    monkeypatch.setattr(pyudev.Monitor, "from_netlink", from_netlink)
    fake.calls = calls
    return fake


@pytest.fixture
def loop():
    return FakeLoop()
