"""Error taxonomy for the plugin host.

Every error carries a message meant for the user. Per-plugin errors are
caught at the loader boundary; the others propagate to the caller.
"""

from __future__ import annotations


class PluginHostError(Exception):
    """Base class for all plugin host errors."""


class VenvError(PluginHostError):
    """Virtual environment is missing, corrupt or has no interpreter.

    Recoverable through an explicit reset, otherwise fatal to plugin loading
    for the session.
    """

    def __init__(self, message: str, exit_code: int | None = None) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class ProcessError(PluginHostError):
    """A subprocess timed out, crashed or exited non-zero."""

    def __init__(self, message: str, exit_code: int | None = None, output: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output


class InstallationError(PluginHostError):
    """Dependency installation failed."""

    def __init__(self, message: str, exit_code: int | None = None, output: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output


class PluginLoadError(PluginHostError):
    """A single plugin could not be loaded."""


class NoPluginError(PluginLoadError):
    """A plugin directory entry is not a Python plugin at all."""


class InterpreterInitError(PluginHostError):
    """The interpreter could not be bootstrapped; fatal for a load pass."""
