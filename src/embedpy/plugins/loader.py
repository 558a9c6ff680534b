"""Plugin discovery and loading.

Discovers plugins in the user plugin directory first, then in the system
plugin directories. A plugin is a ``*.py`` file or a package directory
with an ``__init__.py``.

Each plugin moves through NOT_LOADED -> RESOLVING -> (NEEDS_INSTALL) ->
LOADING -> LOADED or FAILED. A failing plugin never stops the others from
loading; only a broken interpreter or environment aborts the whole pass.
"""

from __future__ import annotations

import gc
import importlib
import importlib.util
import logging
import shutil
import sys
import time
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from embedpy import messages
from embedpy.api import PluginInstance
from embedpy.errors import (
    InstallationError,
    InterpreterInitError,
    NoPluginError,
    PluginLoadError,
    VenvError,
)
from embedpy.plugins.manifest import (
    Failed,
    LoadResult,
    Loaded,
    LoadState,
    PluginDescriptor,
)

if TYPE_CHECKING:
    from embedpy.deps.installer import DependencyInstaller
    from embedpy.deps.resolver import DependencyResolver, DependencySet
    from embedpy.venv.manager import EnvironmentManager
    from embedpy.venv.models import Environment
    from embedpy.venv.probe import VersionProbe

    ConfirmInstall = Callable[[PluginDescriptor, DependencySet], bool]
    FinishedCallback = Callable[[PluginDescriptor, str], None]

logger = logging.getLogger(__name__)

PLUGIN_CLASS = "Plugin"
MODULE_PREFIX = "embedpy"


class PluginLoader:
    """Discovers plugins and loads them into the running interpreter."""

    def __init__(
        self,
        manager: EnvironmentManager,
        resolver: DependencyResolver,
        installer: DependencyInstaller,
        plugin_dirs: Iterable[str | Path],
        blocked: list[str] | None = None,
        on_finished: FinishedCallback | None = None,
    ) -> None:
        self.manager = manager
        self.resolver = resolver
        self.installer = installer
        self.plugin_dirs = [Path(d).expanduser() for d in plugin_dirs]
        self.blocked = set(blocked or [])
        self.on_finished = on_finished
        self._plugins: dict[str, PluginDescriptor] = {}

    @property
    def plugins(self) -> dict[str, PluginDescriptor]:
        """Discovered plugins keyed by id, in discovery order."""
        return self._plugins

    def get_plugin(self, plugin_id: str) -> PluginDescriptor | None:
        return self._plugins.get(plugin_id)

    def scan(self) -> list[PluginDescriptor]:
        """Discover plugins in all plugin directories.

        Loaded plugins that are found again keep their state.
        """
        start = time.perf_counter()

        found: dict[str, PluginDescriptor] = {}
        for plugin_dir in self.plugin_dirs:
            if not plugin_dir.is_dir():
                continue
            logger.debug("Searching Python plugins in %s", plugin_dir)
            for entry in sorted(plugin_dir.iterdir()):
                descriptor = self._discover_entry(entry)
                if descriptor is None:
                    continue
                if descriptor.id in found:
                    logger.debug(
                        "Plugin '%s' at %s is shadowed by %s",
                        descriptor.id,
                        entry,
                        found[descriptor.id].path,
                    )
                    continue
                existing = self._plugins.get(descriptor.id)
                if existing is not None and existing.path == descriptor.path:
                    descriptor = existing
                found[descriptor.id] = descriptor

        self._plugins = found
        elapsed = int((time.perf_counter() - start) * 1000)
        logger.info("[%d ms] Python plugin scan", elapsed)
        return list(found.values())

    def _discover_entry(self, entry: Path) -> PluginDescriptor | None:
        if entry.name.startswith(("_", ".")) or entry.name == "__pycache__":
            return None
        if entry.stem in self.blocked:
            logger.info("Plugin '%s' is blocked, skipping", entry.stem)
            return None

        try:
            descriptor = PluginDescriptor.from_path(entry)
        except NoPluginError as e:
            logger.debug("Invalid plugin %s: %s", entry, e)
            return None
        except PluginLoadError as e:
            logger.warning("%s: %s", entry, e)
            return None

        if descriptor.id in self.blocked:
            logger.info("Plugin '%s' is blocked, skipping", descriptor.id)
            return None

        logger.debug("Found valid Python plugin %s", entry)
        return descriptor

    def load_pass(
        self,
        env: Environment,
        probe: VersionProbe,
        confirm_install: ConfirmInstall | None = None,
    ) -> list[LoadResult]:
        """Load every discovered plugin that is not loaded yet.

        Args:
            env: The active environment
            probe: Used to verify the interpreter before loading anything
            confirm_install: Asked before installing missing dependencies.
                Without it, installs are declined.

        Returns:
            One result per plugin, in discovery order

        Raises:
            InterpreterInitError: If the environment's interpreter is unusable
            VenvError: If the environment becomes unusable during the pass
        """
        with self.manager.exclusive():
            info = probe.probe(env)
            if info.is_unknown:
                msg = (
                    f"Interpreter '{self.manager.interpreter_name}' of virtual environment "
                    f"{env.root} is unusable (state: {env.state}, version: {info.interpreter})"
                )
                logger.critical(msg)
                raise InterpreterInitError(msg)

            logger.debug(
                "Loading plugins with Python %s, binding %s, API %s",
                info.interpreter,
                info.binding,
                info.api,
            )

            results: list[LoadResult] = []
            for descriptor in list(self._plugins.values()):
                if descriptor.state == LoadState.LOADED:
                    results.append(Loaded(descriptor.id, descriptor.load_ms or 0))
                    continue
                results.append(self.load(descriptor, env, confirm_install))
            return results

    def load(
        self,
        descriptor: PluginDescriptor,
        env: Environment,
        confirm_install: ConfirmInstall | None = None,
    ) -> LoadResult:
        """Load one plugin.

        Plugin failures, including a plugin calling ``sys.exit()``, become a
        FAILED state and never reach the caller.

        Raises:
            VenvError: If the environment became unusable. The plugin goes
                back to NOT_LOADED and the pass should stop.
        """
        descriptor.reason = None
        try:
            self._check_binaries(descriptor)
            self._satisfy_dependencies(descriptor, env, confirm_install)

            descriptor.state = LoadState.LOADING
            start = time.perf_counter()
            self._import(descriptor)
            elapsed = int((time.perf_counter() - start) * 1000)

        except VenvError:
            self.unload(descriptor)
            descriptor.state = LoadState.NOT_LOADED
            raise
        except (Exception, SystemExit) as e:
            if isinstance(e, SystemExit):
                reason = f"Plugin called sys.exit({e.code!r})"
            else:
                reason = str(e) or type(e).__name__
            logger.warning("Failed to load plugin '%s': %s", descriptor.id, reason)
            self.unload(descriptor)
            descriptor.state = LoadState.FAILED
            descriptor.reason = reason
            self._finished(descriptor, reason)
            return Failed(descriptor.id, reason)

        descriptor.state = LoadState.LOADED
        descriptor.load_ms = elapsed
        message = messages.fmt(messages.LOADING, elapsed)
        logger.info("%s: %s", descriptor.id, message)
        self._finished(descriptor, message)
        return Loaded(descriptor.id, elapsed)

    def _check_binaries(self, descriptor: PluginDescriptor) -> None:
        for executable in descriptor.metadata.binary_dependencies:
            if shutil.which(executable) is None:
                raise PluginLoadError(messages.fmt(messages.NOT_IN_PATH, executable))

    def _satisfy_dependencies(
        self,
        descriptor: PluginDescriptor,
        env: Environment,
        confirm_install: ConfirmInstall | None,
    ) -> None:
        if not descriptor.metadata.runtime_dependencies:
            return

        descriptor.state = LoadState.RESOLVING
        depset = self.resolver.resolve(descriptor, env)
        if depset.is_satisfied:
            return

        descriptor.state = LoadState.NEEDS_INSTALL
        if confirm_install is None or not confirm_install(descriptor, depset):
            raise PluginLoadError(messages.USER_DECLINED_INSTALL)

        try:
            self.installer.install(depset, env)
        except InstallationError as e:
            raise PluginLoadError(f"{messages.INSTALL_FAILED}:\n\n{e.output}") from e

        importlib.invalidate_caches()

        depset = self.resolver.resolve(descriptor, env)
        if not depset.is_satisfied:
            raise PluginLoadError(
                "Dependencies still missing after install: " + ", ".join(depset.missing)
            )

    def _import(self, descriptor: PluginDescriptor) -> None:
        module_name = f"{MODULE_PREFIX}.{descriptor.id}"
        search_locations = (
            [str(descriptor.path)] if descriptor.source_path != descriptor.path else None
        )
        spec = importlib.util.spec_from_file_location(
            module_name,
            descriptor.source_path,
            submodule_search_locations=search_locations,
        )
        if spec is None or spec.loader is None:
            raise PluginLoadError(f"Cannot create module spec for {descriptor.source_path}")

        module = importlib.util.module_from_spec(spec)

        plugin_logger = logging.getLogger(f"{MODULE_PREFIX}.{descriptor.id}")
        module.debug = plugin_logger.debug
        module.info = plugin_logger.info
        module.warning = plugin_logger.warning
        module.critical = plugin_logger.critical

        descriptor.module = module
        sys.modules[module_name] = module
        spec.loader.exec_module(module)

        plugin_cls = getattr(module, PLUGIN_CLASS, None)
        if plugin_cls is None:
            raise PluginLoadError(f"Plugin module has no '{PLUGIN_CLASS}' class")

        instance = plugin_cls()
        if not isinstance(instance, PluginInstance):
            raise PluginLoadError("Python Plugin class is not of type PluginInstance.")

        instance.bind(descriptor.id, descriptor.metadata)
        descriptor.instance = instance
        instance.initialize()

    def unload(self, descriptor: PluginDescriptor) -> None:
        """Drop a plugin's module and instance."""
        instance = descriptor.instance
        if instance is not None and descriptor.state == LoadState.LOADED:
            try:
                instance.finalize()
            except Exception as e:
                logger.warning("Plugin '%s' failed to finalize: %s", descriptor.id, e)

        descriptor.instance = None
        descriptor.module = None
        module_name = f"{MODULE_PREFIX}.{descriptor.id}"
        for name in [n for n in sys.modules if n == module_name or n.startswith(module_name + ".")]:
            del sys.modules[name]
        if descriptor.state == LoadState.LOADED:
            descriptor.state = LoadState.NOT_LOADED
            descriptor.load_ms = None

        # Make sure __del__ of dropped plugin objects runs now
        gc.collect()

    def unload_all(self) -> None:
        for descriptor in self._plugins.values():
            self.unload(descriptor)

    def _finished(self, descriptor: PluginDescriptor, message: str) -> None:
        if self.on_finished is None:
            return
        try:
            self.on_finished(descriptor, message)
        except Exception as e:
            logger.warning("on_finished callback failed for '%s': %s", descriptor.id, e)
