"""Helpers shared by CLI commands."""

from __future__ import annotations

from pathlib import Path

from embedpy.config.loader import load_config
from embedpy.config.schema import EmbedpyConfig


def resolve_config(config_path: str | None) -> EmbedpyConfig:
    return load_config(Path(config_path) if config_path else None)
