"""Dependency installation with the venv's pip."""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING

from embedpy import messages
from embedpy.errors import InstallationError, ProcessError
from embedpy.venv.process import DEFAULT_TIMEOUT, run

if TYPE_CHECKING:
    from embedpy.deps.resolver import DependencySet
    from embedpy.venv.manager import EnvironmentManager
    from embedpy.venv.models import Environment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallResult:
    """Outcome of one pip invocation."""

    success: bool
    exit_code: int
    requirements: tuple[str, ...] = ()


class DependencyInstaller:
    """Installs missing requirements into a venv.

    All missing requirements of one set go to a single pip call so a
    failure leaves nothing half reported. Failed installs are not retried.
    """

    def __init__(self, manager: EnvironmentManager, timeout: int = DEFAULT_TIMEOUT) -> None:
        self.manager = manager
        self.timeout = timeout
        self._executor: ThreadPoolExecutor | None = None

    def install(self, depset: DependencySet, env: Environment) -> InstallResult:
        """Install every missing requirement of a dependency set.

        Raises:
            InstallationError: If pip exits non-zero
        """
        requirements = tuple(depset.missing_requirements)
        if not requirements:
            return InstallResult(success=True, exit_code=0)

        self.manager.require_valid(env)
        pip = self.manager.pip_command(env)
        args = [*pip[1:], "install", "--disable-pip-version-check", *requirements]

        logger.info("Installing %s into %s", ", ".join(requirements), env.root)
        with self.manager.pip_lock:
            try:
                output = run(pip[0], args, timeout=self.timeout)
            except ProcessError as e:
                exit_code = e.exit_code if e.exit_code is not None else -1
                logger.warning("%s (exit code %d)", messages.INSTALL_FAILED, exit_code)
                raise InstallationError(
                    messages.INSTALL_FAILED,
                    exit_code=exit_code,
                    output=e.output or str(e),
                ) from e

        logger.debug(output)
        return InstallResult(success=True, exit_code=0, requirements=requirements)

    def install_async(
        self,
        depset: DependencySet,
        env: Environment,
        callback: Callable[[InstallResult | BaseException], None] | None = None,
    ) -> Future[InstallResult]:
        """Run :meth:`install` on a background worker.

        The callback receives the result or the raised exception once pip
        finishes. A started install cannot be cancelled.
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="embedpy-pip")

        future = self._executor.submit(self.install, depset, env)
        if callback is not None:

            def _done(f: Future[InstallResult]) -> None:
                error = f.exception()
                callback(error if error is not None else f.result())

            future.add_done_callback(_done)
        return future

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
