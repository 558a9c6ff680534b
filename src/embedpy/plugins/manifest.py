"""Plugin metadata, descriptors and load results.

Metadata is read from the plugin source with :mod:`ast`, so discovering a
plugin never executes its code.
"""

from __future__ import annotations

import ast
import logging
import platform
import re
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any

from embedpy.api import MAJOR_INTERFACE_VERSION, MINOR_INTERFACE_VERSION
from embedpy.errors import NoPluginError, PluginLoadError

logger = logging.getLogger(__name__)

_IID_RE = re.compile(r"^(\d+)\.(\d+)$")

# md_* attribute -> PluginMetadata field
_STRING_ATTRS = {
    "md_iid": "iid",
    "md_id": "id",
    "md_name": "name",
    "md_version": "version",
    "md_description": "description",
    "md_license": "license",
    "md_url": "url",
}
_LIST_ATTRS = {
    "md_authors": "authors",
    "md_lib_dependencies": "runtime_dependencies",
    "md_bin_dependencies": "binary_dependencies",
    "md_credits": "third_party_credits",
    "md_platforms": "platforms",
}


class LoadState(StrEnum):
    NOT_LOADED = "not_loaded"
    RESOLVING = "resolving"
    NEEDS_INSTALL = "needs_install"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass
class PluginMetadata:
    """Metadata a plugin declares through ``md_*`` assignments."""

    id: str
    iid: str = ""
    name: str = ""
    version: str = ""
    description: str = ""
    license: str = ""
    url: str = ""
    authors: list[str] = field(default_factory=list)
    runtime_dependencies: list[str] = field(default_factory=list)
    binary_dependencies: list[str] = field(default_factory=list)
    third_party_credits: list[str] = field(default_factory=list)
    platforms: list[str] = field(default_factory=list)


@dataclass
class PluginDescriptor:
    """A discovered plugin and its load state."""

    metadata: PluginMetadata
    path: Path
    source_path: Path
    state: LoadState = LoadState.NOT_LOADED
    reason: str | None = None
    load_ms: int | None = None
    module: Any = None
    instance: Any = None

    @property
    def id(self) -> str:
        return self.metadata.id

    @property
    def module_name(self) -> str:
        return self.path.stem

    @classmethod
    def from_path(cls, path: str | Path) -> PluginDescriptor:
        """Build a descriptor for a plugin file or package directory.

        Raises:
            NoPluginError: If the path is not a Python plugin
            PluginLoadError: If the plugin is unusable (bad interface
                version, unsupported platform, unreadable source)
        """
        path = Path(path)
        if not path.exists():
            raise PluginLoadError(f"File path does not exist: {path}")

        if path.is_file():
            if path.suffix != ".py":
                raise NoPluginError("Path is not a python file")
            source_path = path
        elif (path / "__init__.py").is_file():
            source_path = path / "__init__.py"
        else:
            raise NoPluginError("Python package init file does not exist")

        metadata = parse_metadata(source_path, default_id=path.stem)

        if not metadata.iid:
            raise NoPluginError("No interface id found")

        metadata.id = f"python.{metadata.id}"

        errors = check_compatibility(metadata)
        if errors:
            raise PluginLoadError(", ".join(errors))

        return cls(metadata=metadata, path=path, source_path=source_path)


def parse_metadata(source_path: Path, default_id: str) -> PluginMetadata:
    """Collect ``md_*`` assignments from a plugin's top-level statements."""
    try:
        source = source_path.read_text(encoding="utf-8")
    except OSError as e:
        raise PluginLoadError(f"Can't open source file: {source_path}") from e

    try:
        tree = ast.parse(source, filename=str(source_path))
    except SyntaxError as e:
        raise PluginLoadError(f"Syntax error in {source_path}: {e}") from e

    metadata = PluginMetadata(id=default_id)

    for node in tree.body:
        if not isinstance(node, ast.Assign):
            continue
        for target in node.targets:
            if not isinstance(target, ast.Name):
                continue
            _assign(metadata, target.id, node.value)

    return metadata


def _assign(metadata: PluginMetadata, name: str, value: ast.expr) -> None:
    if isinstance(value, ast.Constant) and isinstance(value.value, str):
        if name in _STRING_ATTRS:
            if name == "md_id":
                logger.warning(
                    "%s: Using 'md_id' to overwrite the plugin id is deprecated. "
                    "Plugin ids are 'python.<modulename>'.",
                    metadata.id,
                )
            setattr(metadata, _STRING_ATTRS[name], value.value)
        elif name in _LIST_ATTRS:
            setattr(metadata, _LIST_ATTRS[name], [value.value])

    elif isinstance(value, ast.List) and name in _LIST_ATTRS:
        items = [
            elt.value
            for elt in value.elts
            if isinstance(elt, ast.Constant) and isinstance(elt.value, str)
        ]
        setattr(metadata, _LIST_ATTRS[name], items)


def check_compatibility(metadata: PluginMetadata) -> list[str]:
    """Return the reasons this host cannot run the plugin, if any."""
    errors: list[str] = []

    match = _IID_RE.match(metadata.iid)
    if match is None:
        errors.append(f"Invalid version format: '{metadata.iid}'. Expected <major>.<minor>.")
    else:
        major, minor = int(match.group(1)), int(match.group(2))
        if major != MAJOR_INTERFACE_VERSION:
            errors.append(
                "Incompatible major interface version. "
                f"Expected {MAJOR_INTERFACE_VERSION}, got {major}"
            )
        elif minor > MINOR_INTERFACE_VERSION:
            errors.append(
                "Incompatible minor interface version. "
                f"Up to {MINOR_INTERFACE_VERSION} supported, got {minor}."
            )

    if metadata.platforms and platform.system() not in metadata.platforms:
        errors.append("Platform not supported. Supported: " + ", ".join(metadata.platforms))

    return errors


@dataclass(frozen=True)
class Loaded:
    """A plugin that reached LOADED."""

    plugin_id: str
    elapsed_ms: int

    ok = True


@dataclass(frozen=True)
class Failed:
    """A plugin that reached FAILED."""

    plugin_id: str
    reason: str

    ok = False


LoadResult = Loaded | Failed
