"""Loading and saving embedpy.yaml.

The config file lives in the data directory it configures. Without an
explicit path, ``~/.embedpy/embedpy.yaml`` is read; saving a config with a
custom ``data_dir`` writes it into that directory instead.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from embedpy.config.schema import EmbedpyConfig
from embedpy.errors import PluginHostError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "embedpy.yaml"
DEFAULT_DATA_DIR = "~/.embedpy"


class ConfigError(PluginHostError):
    """Configuration loading or validation error."""


def default_config_path(data_dir: str | Path | None = None) -> Path:
    """Config file location for a data directory (default ``~/.embedpy``)."""
    return Path(data_dir or DEFAULT_DATA_DIR).expanduser() / CONFIG_FILENAME


def _describe(error: dict) -> str:
    """One readable line for a pydantic error entry."""
    field = ".".join(str(part) for part in error["loc"])
    value = error.get("input")

    if field == "plugins.install_policy":
        return f"{field}: must be one of ask, always, never (got {value!r})"
    if field == "venv.timeout" and error["type"] == "greater_than_equal":
        return f"{field}: must be at least 1 second (got {value!r})"
    return f"{field}: {error['msg']}"


def load_config(path: Path | None = None) -> EmbedpyConfig:
    """Load and validate embedpy configuration.

    Args:
        path: Config file. Defaults to ``~/.embedpy/embedpy.yaml``. A missing
            or empty file yields the default config.

    Returns:
        Validated configuration

    Raises:
        ConfigError: If the file cannot be read or does not validate
    """
    path = path or default_config_path()
    if not path.exists():
        logger.debug("No config at %s, using defaults", path)
        return EmbedpyConfig()

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e

    if data is None:
        return EmbedpyConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"Config in {path} must be a mapping, got {type(data).__name__}")

    unknown = sorted(set(data) - set(EmbedpyConfig.model_fields))
    if unknown:
        logger.warning("Ignoring unknown config keys in %s: %s", path, ", ".join(unknown))

    try:
        return EmbedpyConfig(**data)
    except ValidationError as e:
        details = "; ".join(_describe(err) for err in e.errors())
        raise ConfigError(f"Configuration validation failed: {details}") from e


def save_config(config: EmbedpyConfig, path: str | Path | None = None) -> Path:
    """Write a config as YAML.

    Args:
        config: Configuration to save
        path: Destination. Defaults to ``embedpy.yaml`` inside the config's
            own data directory.

    Returns:
        The path written
    """
    path = Path(path).expanduser() if path is not None else default_config_path(config.data_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(config.model_dump(), default_flow_style=False, sort_keys=False))
    return path
