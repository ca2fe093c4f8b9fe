"""Match criteria and watch policies.

A watch policy has three hooks used by :class:`DeviceWatcher`:

* ``configure_enumerator(enumerator)`` pushes filters into a
  ``pyudev.Enumerator`` before a scan,
* ``configure_monitor(monitor)`` pushes filters into a ``pyudev.Monitor``
  before it starts receiving,
* ``is_visible(description)`` re-checks what the native filters could not
  express.

Enumeration and monitoring expose different native filter surfaces, so
:class:`MatchPolicy` filters twice: natively where possible, then again in
software on the constructed :class:`DeviceDescription`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional

from devwatch.device.description import DeviceDescription
from devwatch.errors import ConfigurationError


VisibilityPredicate = Callable[[DeviceDescription], bool]


def _check_pairs(name: str, pairs: Any) -> Mapping[str, str]:
    if pairs is None:
        return MappingProxyType({})
    if not isinstance(pairs, Mapping):
        raise ConfigurationError(f"Invalid '{name}': must be a mapping of name to value")
    for key, value in pairs.items():
        if not isinstance(key, str) or not key:
            raise ConfigurationError(f"Invalid '{name}' key: {key!r}")
        if not isinstance(value, str):
            raise ConfigurationError(f"Invalid '{name}' value for {key!r}: must be a string")
    return MappingProxyType(dict(pairs))


def _check_tags(tags: Any) -> frozenset:
    if tags is None:
        return frozenset()
    if isinstance(tags, str):
        raise ConfigurationError("Invalid 'tags': must be a list of strings, not a string")
    try:
        result = frozenset(tags)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid 'tags': must be a list of strings, got {tags!r}") from exc
    for tag in result:
        if not isinstance(tag, str) or not tag:
            raise ConfigurationError(f"Invalid tag: {tag!r}")
    return result


@dataclass(frozen=True)
class MatchCriteria:
    """What a filtered watcher looks for. Empty strings are wildcards."""

    subsystem: str = ""
    device_type: str = ""
    attributes: Mapping[str, str] = field(default_factory=dict)
    properties: Mapping[str, str] = field(default_factory=dict)
    tags: frozenset = field(default_factory=frozenset)

    def __post_init__(self):
        for name in ("subsystem", "device_type"):
            value = getattr(self, name)
            if value is None:
                object.__setattr__(self, name, "")
            elif not isinstance(value, str):
                raise ConfigurationError(f"Invalid '{name}': must be a string")
        object.__setattr__(self, "attributes", _check_pairs("attributes", self.attributes))
        object.__setattr__(self, "properties", _check_pairs("properties", self.properties))
        object.__setattr__(self, "tags", _check_tags(self.tags))

    def __hash__(self) -> int:
        # MappingProxyType is unhashable; hash the frozen items instead
        return hash((
            self.subsystem,
            self.device_type,
            frozenset(self.attributes.items()),
            frozenset(self.properties.items()),
            self.tags,
        ))

    @classmethod
    def from_config(cls, conf: Mapping[str, Any]) -> "MatchCriteria":
        """Build criteria from a (validated) configuration dict."""
        return cls(
            subsystem=conf.get("subsystem", ""),
            device_type=conf.get("device_type", ""),
            attributes=conf.get("attributes") or {},
            properties=conf.get("properties") or {},
            tags=conf.get("tags") or (),
        )


def parse_match_pairs(items: Optional[Iterable[str]], option: str = "match") -> dict[str, str]:
    """Parse ``KEY=VALUE`` strings into a dict.

    Raises:
        ConfigurationError: an item has no ``=`` or an empty key.
    """
    pairs: dict[str, str] = {}
    for item in items or ():
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigurationError(f"Invalid {option} {item!r}: expected KEY=VALUE")
        pairs[key] = value
    return pairs


class WatchPolicy:
    """Default policy: no native filters, every device is visible."""

    def configure_enumerator(self, enumerator: Any) -> None:
        return None

    def configure_monitor(self, monitor: Any) -> None:
        return None

    def is_visible(self, description: DeviceDescription) -> bool:
        return True


class MatchPolicy(WatchPolicy):
    """Policy driven by :class:`MatchCriteria` and an optional extra predicate."""

    def __init__(self, criteria: MatchCriteria, predicate: Optional[VisibilityPredicate] = None):
        self.criteria = criteria
        self.predicate = predicate

    def configure_enumerator(self, enumerator: Any) -> None:
        criteria = self.criteria
        if criteria.subsystem:
            enumerator.match_subsystem(criteria.subsystem)
        for name, value in criteria.attributes.items():
            enumerator.match_attribute(name, value)
        for name, value in criteria.properties.items():
            enumerator.match_property(name, value)
        for tag in criteria.tags:
            enumerator.match_tag(tag)

    def configure_monitor(self, monitor: Any) -> None:
        criteria = self.criteria
        if criteria.subsystem:
            monitor.filter_by(criteria.subsystem, criteria.device_type or None)
        for tag in criteria.tags:
            monitor.filter_by_tag(tag)

    def is_visible(self, description: DeviceDescription) -> bool:
        criteria = self.criteria
        # Checks that either the monitor or the enumerator cannot do natively
        if criteria.device_type and criteria.device_type != description.device_type:
            return False

        for name, value in criteria.attributes.items():
            if description.attributes.get(name) != value:
                return False
        for name, value in criteria.properties.items():
            if description.properties.get(name) != value:
                return False

        if self.predicate is not None and not self.predicate(description):
            return False
        return True
