"""Configuration schema and YAML loading."""

from embedpy.config.loader import ConfigError, default_config_path, load_config, save_config
from embedpy.config.schema import EmbedpyConfig, PluginsConfig, VenvConfig

__all__ = [
    "ConfigError",
    "EmbedpyConfig",
    "PluginsConfig",
    "VenvConfig",
    "default_config_path",
    "load_config",
    "save_config",
]
