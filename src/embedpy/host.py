"""Plugin host wiring.

:class:`PluginHost` is what a host application (or the CLI) talks to. It
builds the environment manager, probe, resolver, installer and loader from
the configuration and threads the active :class:`Environment` through them
explicitly.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any

from embedpy import messages
from embedpy.config.schema import EmbedpyConfig
from embedpy.deps.installer import DependencyInstaller
from embedpy.deps.resolver import DependencyResolver, DependencySet
from embedpy.errors import VenvError
from embedpy.plugins.loader import PluginLoader
from embedpy.plugins.manifest import LoadResult, PluginDescriptor
from embedpy.plugins.stub import STUB_FILE, update_stub_file
from embedpy.state import HostState
from embedpy.venv.manager import EnvironmentManager
from embedpy.venv.models import Environment, VersionInfo
from embedpy.venv.probe import VersionProbe

logger = logging.getLogger(__name__)


class PluginHost:
    """Owns the plugin environment and runs load passes."""

    def __init__(
        self,
        config: EmbedpyConfig | None = None,
        confirm_install: Callable[[PluginDescriptor, DependencySet], bool] | None = None,
        on_finished: Callable[[PluginDescriptor, str], None] | None = None,
    ) -> None:
        self.config = config or EmbedpyConfig()
        self.state = HostState(self.config.data_path / "state.json")
        self.manager = EnvironmentManager(
            self.config.venv_path,
            self.state,
            interpreter_name=self.config.venv.interpreter_name,
            timeout=self.config.venv.timeout,
        )
        self.probe = VersionProbe()
        self.resolver = DependencyResolver(self.manager, timeout=self.config.venv.timeout)
        self.installer = DependencyInstaller(self.manager, timeout=self.config.venv.timeout)
        self.loader = PluginLoader(
            self.manager,
            self.resolver,
            self.installer,
            plugin_dirs=self.config.plugin_dirs,
            blocked=self.config.plugins.blocked,
            on_finished=on_finished,
        )
        self._confirm_install = confirm_install
        self._executor: ThreadPoolExecutor | None = None
        self.environment: Environment | None = None

    def confirm_install(self, descriptor: PluginDescriptor, depset: DependencySet) -> bool:
        """Apply the configured install policy to missing dependencies."""
        policy = self.config.plugins.install_policy
        if policy == "always":
            return True
        if policy == "never":
            return False
        if self._confirm_install is None:
            logger.info(
                "Plugin '%s' needs %s, no one to ask, declining install",
                descriptor.id,
                ", ".join(depset.missing_requirements),
            )
            return False
        return self._confirm_install(descriptor, depset)

    def prepare(self) -> Environment:
        """Create or open the venv and make its packages importable."""
        self.config.user_plugin_dir.mkdir(parents=True, exist_ok=True)
        env = self.manager.ensure()
        self.manager.activate(env)
        update_stub_file(self.config.user_plugin_dir, self.state)
        self.environment = env
        return env

    def initialize(self) -> list[LoadResult]:
        """Prepare the environment, scan for plugins and load them.

        Raises:
            VenvError: If the virtual environment cannot be set up
            InterpreterInitError: If the interpreter cannot be used
        """
        env = self.prepare()
        self.loader.scan()
        return self.loader.load_pass(env, self.probe, self.confirm_install)

    def initialize_async(
        self, callback: Callable[[list[LoadResult] | BaseException], None] | None = None
    ) -> Future[list[LoadResult]]:
        """Run :meth:`initialize` on a background worker."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="embedpy-init")

        future = self._executor.submit(self.initialize)
        if callback is not None:

            def _done(f: Future[list[LoadResult]]) -> None:
                error = f.exception()
                if error is not None:
                    logger.critical("Exception while initializing plugins: %s", error)
                callback(error if error is not None else f.result())

            future.add_done_callback(_done)
        return future

    def request_reset(
        self,
        confirm: Callable[[str], bool],
        restart: Callable[[], Any] | None = None,
    ) -> Environment | None:
        """Reset the venv after confirmation and trigger a restart.

        Plugins are unloaded first; the reset waits for any running load
        pass to finish.
        """
        if not confirm(messages.RESET_RESTART):
            logger.info("Virtual environment reset declined")
            return None

        with self.manager.exclusive():
            self.loader.unload_all()
            self.environment = None
            env = self.manager.reset()
            self.environment = env

        if restart is not None:
            restart()
        return env

    def versions(self) -> VersionInfo:
        if self.environment is None:
            try:
                self.environment = self.manager.open()
            except VenvError as e:
                logger.debug("No environment to probe: %s", e)
                return VersionInfo.UNKNOWN
        return self.probe.probe(self.environment)

    def paths(self) -> dict[str, Path]:
        return {
            "venv": self.config.venv_path,
            "plugins": self.config.user_plugin_dir,
            "stub": self.config.user_plugin_dir / STUB_FILE,
        }

    def shutdown(self) -> None:
        self.loader.unload_all()
        self.installer.shutdown()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
