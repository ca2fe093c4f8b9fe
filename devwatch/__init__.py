"""devwatch — hotplug device discovery and diffing on top of udev."""

from devwatch.__version__ import __version__

__all__ = ["__version__"]
