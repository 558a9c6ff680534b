"""Pydantic models for embedpy.yaml configuration."""

import sys
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field


class VenvConfig(BaseModel):
    """Virtual environment configuration."""

    dirname: str = Field(default="venv", description="Directory name of the venv inside data_dir")
    interpreter: str = Field(
        default="",
        description="Interpreter executable name inside the venv (blank: python<major>.<minor>)",
    )
    timeout: int = Field(
        default=300, description="Timeout in seconds for venv and pip subprocesses", ge=1
    )

    @property
    def interpreter_name(self) -> str:
        """Interpreter executable name, defaulting to the running version."""
        if self.interpreter:
            return self.interpreter
        return f"python{sys.version_info.major}.{sys.version_info.minor}"


class PluginsConfig(BaseModel):
    """Plugin discovery configuration."""

    extra_dirs: list[str] = Field(
        default_factory=list,
        description="System plugin directories scanned after the user plugin directory",
    )
    blocked: list[str] = Field(
        default_factory=list,
        description="Plugin ids or module names to skip during discovery",
    )
    install_policy: Literal["ask", "always", "never"] = Field(
        default="ask",
        description="How to handle missing plugin dependencies",
    )


class EmbedpyConfig(BaseModel):
    """Root configuration schema for embedpy."""

    data_dir: str = Field(
        default="~/.embedpy",
        description="Data directory holding the venv, user plugins and host state",
    )
    venv: VenvConfig = Field(default_factory=VenvConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

    @property
    def venv_path(self) -> Path:
        return self.data_path / self.venv.dirname

    @property
    def user_plugin_dir(self) -> Path:
        return self.data_path / "plugins"

    @property
    def plugin_dirs(self) -> list[Path]:
        """User plugin directory first, then the system directories."""
        return [self.user_plugin_dir] + [Path(d).expanduser() for d in self.plugins.extra_dirs]
