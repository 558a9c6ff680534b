"""Dependency resolution against the packages installed in a venv."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name
from packaging.version import InvalidVersion, Version

from embedpy.venv.process import DEFAULT_TIMEOUT, run

if TYPE_CHECKING:
    from embedpy.plugins.manifest import PluginDescriptor
    from embedpy.venv.manager import EnvironmentManager
    from embedpy.venv.models import Environment

logger = logging.getLogger(__name__)

# Name is everything before "==", "@" or whitespace: "foo==1.0", "foo @ file:///..."
_FREEZE_SEP = re.compile(r"==|\s|@")


@dataclass(frozen=True)
class DependencyStatus:
    """Declared requirement and what is installed for it."""

    requirement: str
    installed: str | None = None
    satisfied: bool = False

    @property
    def is_missing(self) -> bool:
        return not self.satisfied


@dataclass
class DependencySet:
    """Per-package status for one plugin in one environment."""

    entries: dict[str, DependencyStatus] = field(default_factory=dict)

    @property
    def missing(self) -> dict[str, DependencyStatus]:
        return {name: s for name, s in self.entries.items() if s.is_missing}

    @property
    def missing_requirements(self) -> list[str]:
        return [s.requirement for s in self.missing.values()]

    @property
    def is_satisfied(self) -> bool:
        return not self.missing


def parse_freeze(output: str) -> dict[str, str | None]:
    """Parse ``pip freeze`` output into canonical name -> version.

    Direct references (``name @ url``) and editable lines have no
    version and map to None.
    """
    installed: dict[str, str | None] = {}
    for line in output.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or line.startswith("-e"):
            continue
        parts = [p for p in _FREEZE_SEP.split(line) if p]
        if not parts:
            continue
        name = canonicalize_name(parts[0])
        version = None
        if "==" in line:
            version = line.split("==", 1)[1].strip() or None
        installed[name] = version
    return installed


class DependencyResolver:
    """Computes which declared requirements a venv does not satisfy.

    Resolution only reads the environment and is deterministic for the same
    installed package set and descriptor.
    """

    def __init__(self, manager: EnvironmentManager, timeout: int = DEFAULT_TIMEOUT) -> None:
        self.manager = manager
        self.timeout = timeout

    def installed_packages(self, env: Environment) -> dict[str, str | None]:
        self.manager.require_valid(env)
        pip = self.manager.pip_command(env)
        with self.manager.pip_lock:
            output = run(pip[0], [*pip[1:], "freeze"], timeout=self.timeout)
        return parse_freeze(output)

    def resolve(self, descriptor: PluginDescriptor, env: Environment) -> DependencySet:
        requirements = descriptor.metadata.runtime_dependencies
        if not requirements:
            return DependencySet()
        return self.resolve_requirements(requirements, env)

    def resolve_requirements(self, requirements: Iterable[str], env: Environment) -> DependencySet:
        installed = self.installed_packages(env)
        depset = DependencySet()

        for spec in requirements:
            try:
                req = Requirement(spec)
            except InvalidRequirement:
                # Not a PEP 508 string, compare by plain name
                name = canonicalize_name(spec.strip())
                version = installed.get(name)
                depset.entries[name] = DependencyStatus(
                    requirement=spec, installed=version, satisfied=name in installed
                )
                continue

            name = canonicalize_name(req.name)
            if name not in installed:
                depset.entries[name] = DependencyStatus(requirement=spec)
                continue

            version = installed[name]
            depset.entries[name] = DependencyStatus(
                requirement=spec,
                installed=version,
                satisfied=_satisfies(req, version),
            )

        if depset.missing:
            logger.debug("Missing dependencies: %s", ", ".join(depset.missing))
        return depset

    def check_packages(self, packages: Iterable[str], env: Environment) -> bool:
        """Whether every package is installed and satisfies its constraint."""
        return self.resolve_requirements(packages, env).is_satisfied


def _satisfies(req: Requirement, version: str | None) -> bool:
    if not req.specifier:
        return True
    if version is None:
        # Direct reference without a pinned version, trust it
        return True
    try:
        return req.specifier.contains(Version(version), prereleases=True)
    except InvalidVersion:
        return False
