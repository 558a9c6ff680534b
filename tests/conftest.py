"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from helpers import make_fake_venv

from embedpy.state import HostState
from embedpy.venv.manager import EnvironmentManager


@pytest.fixture
def host_state(tmp_path: Path) -> HostState:
    return HostState(tmp_path / "data" / "state.json")


@pytest.fixture
def venv_root(tmp_path: Path) -> Path:
    return tmp_path / "data" / "venv"


@pytest.fixture
def manager(venv_root: Path, host_state: HostState) -> EnvironmentManager:
    return EnvironmentManager(venv_root, host_state, base_interpreter="/usr/bin/python3")


@pytest.fixture
def env(manager: EnvironmentManager, venv_root: Path):
    """An opened environment backed by a fake venv layout."""
    make_fake_venv(venv_root)
    return manager.open()


@pytest.fixture(autouse=True)
def _clean_plugin_modules():
    """Drop plugin modules registered by the loader between tests."""
    yield
    for name in [n for n in sys.modules if n.startswith("embedpy.python.")]:
        del sys.modules[name]
