"""Tests for dependency installation."""

import threading
from unittest.mock import patch

import pytest
from helpers import FakePip

from embedpy.deps.installer import DependencyInstaller, InstallResult
from embedpy.deps.resolver import DependencyResolver, DependencySet, DependencyStatus
from embedpy.errors import InstallationError


def _depset(*missing: str, satisfied: tuple[str, ...] = ()) -> DependencySet:
    entries = {name: DependencyStatus(requirement=name) for name in missing}
    for name in satisfied:
        entries[name] = DependencyStatus(requirement=name, installed="1.0", satisfied=True)
    return DependencySet(entries=entries)


class TestDependencyInstaller:
    def test_batches_missing_into_one_call(self, manager, env):
        pip = FakePip()
        with patch("embedpy.deps.installer.run", side_effect=pip):
            result = DependencyInstaller(manager).install(
                _depset("bar", "baz", satisfied=("ok",)), env
            )

        assert result == InstallResult(success=True, exit_code=0, requirements=("bar", "baz"))
        assert pip.install_calls == [
            [
                str(env.interpreter),
                "-m",
                "pip",
                "install",
                "--disable-pip-version-check",
                "bar",
                "baz",
            ]
        ]

    def test_nothing_missing_skips_pip(self, manager, env):
        with patch("embedpy.deps.installer.run") as m:
            result = DependencyInstaller(manager).install(_depset(satisfied=("ok",)), env)
        m.assert_not_called()
        assert result.success is True

    def test_failure_raises_without_retry(self, manager, env):
        pip = FakePip(install_exit_code=1)
        with patch("embedpy.deps.installer.run", side_effect=pip):
            with pytest.raises(InstallationError) as exc:
                DependencyInstaller(manager).install(_depset("bar"), env)

        assert str(exc.value) == "Failed installing dependencies"
        assert exc.value.exit_code == 1
        assert "No matching distribution" in exc.value.output
        assert len(pip.install_calls) == 1

    def test_install_async_success_callback(self, manager, env):
        done = threading.Event()
        received = []

        def _callback(outcome):
            received.append(outcome)
            done.set()

        installer = DependencyInstaller(manager)
        with patch("embedpy.deps.installer.run", side_effect=FakePip()):
            future = installer.install_async(_depset("bar"), env, callback=_callback)
            assert future.result(timeout=5).success
            assert done.wait(timeout=5)
        installer.shutdown()

        assert isinstance(received[0], InstallResult)

    def test_install_async_failure_callback(self, manager, env):
        done = threading.Event()
        received = []

        def _callback(outcome):
            received.append(outcome)
            done.set()

        installer = DependencyInstaller(manager)
        with patch("embedpy.deps.installer.run", side_effect=FakePip(install_exit_code=2)):
            installer.install_async(_depset("bar"), env, callback=_callback)
            assert done.wait(timeout=5)
        installer.shutdown()

        assert isinstance(received[0], InstallationError)
        assert received[0].exit_code == 2

    def test_freeze_waits_for_running_install(self, manager, env):
        started = threading.Event()
        release = threading.Event()
        active: list[str] = []
        overlaps: list[list[str]] = []
        pip = FakePip()

        def _slow_pip(program, args, timeout=300):
            kind = "install" if "install" in args else "freeze"
            if active:
                overlaps.append([*active, kind])
            active.append(kind)
            try:
                if kind == "install":
                    started.set()
                    release.wait(timeout=5)
                return pip(program, args, timeout)
            finally:
                active.remove(kind)

        installer = DependencyInstaller(manager)
        resolver = DependencyResolver(manager)
        frozen: list[dict] = []
        with (
            patch("embedpy.deps.installer.run", side_effect=_slow_pip),
            patch("embedpy.deps.resolver.run", side_effect=_slow_pip),
        ):
            future = installer.install_async(_depset("bar"), env)
            assert started.wait(timeout=5)

            checker = threading.Thread(target=lambda: frozen.append(resolver.installed_packages(env)))
            checker.start()
            checker.join(timeout=0.2)
            assert checker.is_alive()

            release.set()
            checker.join(timeout=5)
            assert future.result(timeout=5).success
        installer.shutdown()

        assert overlaps == []
        assert frozen == [{"bar": "1.0"}]
