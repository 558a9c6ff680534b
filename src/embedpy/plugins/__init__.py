"""Plugin system.

Plugins are plain Python modules or packages dropped into a plugin
directory. Metadata is read without executing plugin code; loading
happens against the managed virtual environment.
"""

from embedpy.plugins.loader import PluginLoader
from embedpy.plugins.manifest import (
    Failed,
    Loaded,
    LoadResult,
    LoadState,
    PluginDescriptor,
    PluginMetadata,
)
from embedpy.plugins.stub import update_stub_file

__all__ = [
    "Failed",
    "LoadResult",
    "LoadState",
    "Loaded",
    "PluginDescriptor",
    "PluginLoader",
    "PluginMetadata",
    "update_stub_file",
]
