"""Plugin API.

Plugins are modules that declare metadata as top-level string or list
assignments and define a ``Plugin`` class deriving from
:class:`PluginInstance`::

    md_iid = "3.1"
    md_name = "Hello"
    md_version = "1.0"
    md_lib_dependencies = ["requests>=2"]

    from embedpy.api import PluginInstance

    class Plugin(PluginInstance):
        def initialize(self):
            info("hello")

While a plugin module executes, ``debug``, ``info``, ``warning`` and
``critical`` are available as module globals and log to the plugin's own
logger.
"""

from __future__ import annotations

import logging
from typing import Any

MAJOR_INTERFACE_VERSION = 3
MINOR_INTERFACE_VERSION = 1


def interface_version() -> str:
    return f"{MAJOR_INTERFACE_VERSION}.{MINOR_INTERFACE_VERSION}"


class PluginInstance:
    """Base class for the ``Plugin`` class every plugin module defines."""

    id: str = ""
    metadata: Any = None
    logger: logging.Logger = logging.getLogger("embedpy.plugin")

    def bind(self, plugin_id: str, metadata: Any) -> None:
        """Attach host-side identity. Called by the loader after construction."""
        self.id = plugin_id
        self.metadata = metadata
        self.logger = logging.getLogger(f"embedpy.{plugin_id}")

    def initialize(self) -> None:
        """Called once after the plugin has been loaded."""

    def finalize(self) -> None:
        """Called before the plugin is unloaded."""
