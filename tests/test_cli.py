"""Tests for CLI commands."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from helpers import FakePip, make_fake_venv, write_plugin
from typer.testing import CliRunner

from embedpy import __version__
from embedpy.cli.app import app, main

runner = CliRunner()


def _venv_run(program: str, args: list[str], timeout: int = 300) -> str:
    make_fake_venv(Path(args[2]))
    return ""


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "embedpy.yaml"
    path.write_text(yaml.safe_dump({"data_dir": str(tmp_path / "data")}))
    return path


@pytest.fixture
def patched_runs():
    pip = FakePip()
    with (
        patch("embedpy.venv.manager.run", side_effect=_venv_run) as venv_run,
        patch("embedpy.venv.probe.run", return_value="3.12.1\n"),
        patch("embedpy.deps.resolver.run", side_effect=pip),
        patch("embedpy.deps.installer.run", side_effect=pip),
        patch("embedpy.venv.manager.site.addsitedir"),
    ):
        yield venv_run, pip


def test_version_command():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert f"embedpy version {__version__}" in result.output


def test_no_args_shows_help():
    result = runner.invoke(app, [])
    assert result.exit_code in (0, 2)
    assert "Usage" in result.output


def test_help_lists_groups():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "venv" in result.output
    assert "plugin" in result.output


def test_info_without_venv(config_file: Path):
    result = runner.invoke(app, ["info", "-c", str(config_file)])
    assert result.exit_code == 0
    assert "Python version" in result.output
    assert "unknown" in result.output


def test_info_with_venv(config_file: Path, patched_runs):
    runner.invoke(app, ["venv", "init", "-c", str(config_file)])
    result = runner.invoke(app, ["info", "-c", str(config_file)])
    assert result.exit_code == 0
    assert "3.12.1" in result.output
    assert "3.1" in result.output


def test_venv_path(config_file: Path, tmp_path: Path):
    result = runner.invoke(app, ["venv", "path", "-c", str(config_file)])
    assert result.exit_code == 0
    assert str(tmp_path / "data" / "venv") in result.output.replace("\n", "")


def test_plugin_dir(config_file: Path, tmp_path: Path):
    result = runner.invoke(app, ["plugin", "dir", "-c", str(config_file)])
    assert result.exit_code == 0
    assert str(tmp_path / "data" / "plugins") in result.output.replace("\n", "")


def test_venv_init(config_file: Path, patched_runs):
    venv_run, _ = patched_runs
    result = runner.invoke(app, ["venv", "init", "-c", str(config_file)])
    assert result.exit_code == 0
    assert "ready" in result.output
    venv_run.assert_called_once()


def test_venv_init_failure(config_file: Path):
    from embedpy.errors import ProcessError

    with patch("embedpy.venv.manager.run", side_effect=ProcessError("x", exit_code=1)):
        result = runner.invoke(app, ["venv", "init", "-c", str(config_file)])
    assert result.exit_code == 1
    assert "Exit code: 1." in result.output


def test_venv_terminal_without_venv(config_file: Path):
    result = runner.invoke(app, ["venv", "terminal", "-c", str(config_file)])
    assert result.exit_code == 1
    assert "$PATH" in result.output


def test_venv_terminal(config_file: Path, patched_runs):
    runner.invoke(app, ["venv", "init", "-c", str(config_file)])
    result = runner.invoke(app, ["venv", "terminal", "-c", str(config_file)])
    assert result.exit_code == 0
    assert "bin/activate" in result.output


def test_venv_reset_declined(config_file: Path, patched_runs):
    venv_run, _ = patched_runs
    result = runner.invoke(app, ["venv", "reset", "-c", str(config_file)], input="n\n")
    assert result.exit_code == 0
    assert "Restart now?" in result.output
    assert "cancelled" in result.output
    venv_run.assert_not_called()


def test_venv_reset_yes(config_file: Path, patched_runs):
    venv_run, _ = patched_runs
    result = runner.invoke(app, ["venv", "reset", "--yes", "-c", str(config_file)])
    assert result.exit_code == 0
    assert "recreated" in result.output
    venv_run.assert_called_once()


def test_plugin_list_empty(config_file: Path):
    result = runner.invoke(app, ["plugin", "list", "-c", str(config_file)])
    assert result.exit_code == 0
    assert "No plugins found" in result.output


def test_plugin_list(config_file: Path, tmp_path: Path):
    write_plugin(tmp_path / "data" / "plugins", "hello", extra='md_lib_dependencies = ["bar"]')
    result = runner.invoke(app, ["plugin", "list", "-c", str(config_file)])
    assert result.exit_code == 0
    assert "python.hello" in result.output
    assert "bar" in result.output


def test_plugin_load(config_file: Path, tmp_path: Path, patched_runs):
    write_plugin(tmp_path / "data" / "plugins", "hello")
    result = runner.invoke(app, ["plugin", "load", "-c", str(config_file)])
    assert result.exit_code == 0
    assert "loaded" in result.output
    assert "Loading:" in result.output


def test_plugin_load_no_install(config_file: Path, tmp_path: Path, patched_runs):
    write_plugin(tmp_path / "data" / "plugins", "foo", extra='md_lib_dependencies = ["bar"]')
    result = runner.invoke(app, ["plugin", "load", "--no-install", "-c", str(config_file)])
    assert result.exit_code == 1
    assert "failed" in result.output
    assert "declined" in result.output


def test_plugin_load_install(config_file: Path, tmp_path: Path, patched_runs):
    _, pip = patched_runs
    write_plugin(tmp_path / "data" / "plugins", "foo", extra='md_lib_dependencies = ["bar"]')
    result = runner.invoke(app, ["plugin", "load", "--install", "-c", str(config_file)])
    assert result.exit_code == 0
    assert "bar" in pip.installed


def test_plugin_load_ask(config_file: Path, tmp_path: Path, patched_runs):
    write_plugin(tmp_path / "data" / "plugins", "foo", extra='md_lib_dependencies = ["bar"]')
    result = runner.invoke(app, ["plugin", "load", "-c", str(config_file)], input="y\n")
    assert result.exit_code == 0
    assert "Install dependencies into the virtual environment?" in result.output


def test_main_keyboard_interrupt():
    with (
        patch("embedpy.cli.app.app", side_effect=KeyboardInterrupt),
        patch("embedpy.cli.app.sys") as mock_sys,
    ):
        main()
        mock_sys.exit.assert_called_with(130)


def test_main_exception():
    with (
        patch("embedpy.cli.app.app", side_effect=RuntimeError("test error")),
        patch("embedpy.cli.app.sys") as mock_sys,
    ):
        main()
        mock_sys.exit.assert_called_with(1)
