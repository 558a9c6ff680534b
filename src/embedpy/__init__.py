"""Embedpy - Plugin host for an embedded Python interpreter.

Embedpy owns an isolated virtual environment for user plugins, checks
interpreter and plugin API versions, installs missing plugin dependencies
on request and loads plugins one at a time with per-plugin diagnostics.

Key modules:

- :mod:`embedpy.venv` - Virtual environment lifecycle and version probing
- :mod:`embedpy.deps` - Dependency resolution and pip installation
- :mod:`embedpy.plugins` - Plugin discovery, metadata parsing and loading
- :mod:`embedpy.host` - Wiring of the above for a host application
- :mod:`embedpy.cli` - Command line surface (versions, venv and plugin actions)
"""

__version__ = "0.4.0"
