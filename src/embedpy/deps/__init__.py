"""Plugin dependency resolution and installation."""

from embedpy.deps.installer import DependencyInstaller, InstallResult
from embedpy.deps.resolver import DependencyResolver, DependencySet, DependencyStatus

__all__ = [
    "DependencyInstaller",
    "DependencyResolver",
    "DependencySet",
    "DependencyStatus",
    "InstallResult",
]
