"""SelectorLoop — minimal single-threaded readiness loop.

Implements the ``add_reader``/``remove_reader`` subset of the ``asyncio``
event loop interface on top of ``selectors``, so watchers can run either here
or inside an ``asyncio`` loop.
"""

from __future__ import annotations

import logging
import selectors
from typing import Any, Callable

logger = logging.getLogger(__name__)


class SelectorLoop:
    """Dispatches readiness callbacks for registered file descriptors."""

    def __init__(self):
        self.selector = selectors.DefaultSelector()
        self._running = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_reader(self, fd: Any, callback: Callable[..., None], *args: Any) -> None:
        """Call ``callback(*args)`` whenever *fd* is readable.

        Registering an already registered *fd* replaces its callback.
        """
        handler = (callback, args)
        try:
            self.selector.register(fd, selectors.EVENT_READ, handler)
        except KeyError:
            self.selector.modify(fd, selectors.EVENT_READ, handler)

    def remove_reader(self, fd: Any) -> bool:
        """Stop watching *fd*. Returns False if it was not registered."""
        try:
            self.selector.unregister(fd)
        except (KeyError, ValueError):
            return False
        return True

    @property
    def reader_count(self) -> int:
        return len(self.selector.get_map())

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def run_once(self, timeout: float | None = None) -> int:
        """Wait up to *timeout* seconds and dispatch ready callbacks.

        Returns:
            Number of callbacks invoked.
        """
        count = 0
        for key, _mask in self.selector.select(timeout=timeout):
            # an earlier callback may have unregistered this descriptor
            if key.fd not in self.selector.get_map():
                continue
            callback, args = key.data
            try:
                callback(*args)
            except Exception:
                logger.exception("Reader callback error for fd %s", key.fd)
            count += 1
        return count

    def run(self, timeout: float = 1.0) -> None:
        """Dispatch until :meth:`stop` is called."""
        self._running = True
        while self._running:
            self.run_once(timeout)

    def stop(self) -> None:
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the selector."""
        self._running = False
        self.selector.close()

    def __enter__(self) -> "SelectorLoop":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        self.close()
        return False
