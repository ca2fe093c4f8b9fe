"""Logging levels and device formatting for devwatch.

Levels (ascending):
    TRACE =  5  — every udev monitor event, every device carried over by a scan
    DEBUG = 10  — spurious wakes, rejected devices, native filter push-down
    INFO  = 20  — net device additions/removals, activation changes (default)

``devwatch --trace`` lowers the console to TRACE; ``--debug`` to DEBUG.

Usage:
    import devwatch.log  # registers TRACE and Logger.trace
    logger = logging.getLogger(__name__)
    logger.trace("udev %s %s", action, sys_path)
"""

import logging

TRACE: int = 5
logging.addLevelName(TRACE, "TRACE")


def _trace(self: logging.Logger, message: object, *args: object, **kwargs: object) -> None:
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kwargs)  # type: ignore[attr-defined]


if not hasattr(logging.Logger, "trace"):
    logging.Logger.trace = _trace  # type: ignore[attr-defined]


def console_level(debug: bool = False, trace: bool = False) -> int:
    """Console threshold for the ``--debug`` / ``--trace`` flags."""
    if trace:
        return TRACE
    if debug:
        return logging.DEBUG
    return logging.WARNING


def format_device(description: object) -> str:
    """One-line summary of a device: ``sys_path [subsystem/devtype] node``.

    Accepts anything with the :class:`DeviceDescription` accessors; missing
    fields print as ``-``.
    """
    if description is None:
        return "<no device>"
    sys_path = getattr(description, "sys_path", "") or "?"
    subsystem = getattr(description, "subsystem", "") or "-"
    device_type = getattr(description, "device_type", "") or "-"
    node = getattr(description, "device_node", "") or "-"
    return f"{sys_path} [{subsystem}/{device_type}] {node}"
