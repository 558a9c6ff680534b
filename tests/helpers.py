"""Helpers shared by tests: fake venv layouts, plugin sources and a fake pip."""

from __future__ import annotations

from pathlib import Path

from embedpy.errors import ProcessError
from embedpy.venv.manager import bin_dir_for, default_interpreter_name

PLUGIN_TEMPLATE = '''
md_iid = "3.1"
md_name = "{name}"
md_version = "1.0"
{extra}

from embedpy.api import PluginInstance


class Plugin(PluginInstance):
{body}
'''


def make_fake_venv(root: Path, interpreter: str | None = None) -> Path:
    """Lay out a venv directory with an executable interpreter file."""
    bin_dir = bin_dir_for(root)
    bin_dir.mkdir(parents=True, exist_ok=True)
    (root / "pyvenv.cfg").write_text("home = /usr/bin\n")
    exe = bin_dir / (interpreter or default_interpreter_name())
    exe.write_text("#!/bin/sh\n")
    exe.chmod(0o755)
    return exe


def write_plugin(
    plugin_dir: Path,
    name: str,
    extra: str = "",
    body: str = "    pass",
) -> Path:
    """Write a single-file plugin into a plugin directory."""
    plugin_dir.mkdir(parents=True, exist_ok=True)
    path = plugin_dir / f"{name}.py"
    path.write_text(PLUGIN_TEMPLATE.format(name=name, extra=extra, body=body))
    return path


class FakePip:
    """Stands in for the venv's pip: ``freeze`` and ``install``."""

    def __init__(self, installed: dict[str, str] | None = None, install_exit_code: int = 0):
        self.installed = dict(installed or {})
        self.install_exit_code = install_exit_code
        self.calls: list[list[str]] = []

    def __call__(self, program: str, args: list[str], timeout: int = 300) -> str:
        self.calls.append([program, *args])
        if "freeze" in args:
            return "".join(f"{name}=={version}\n" for name, version in self.installed.items())
        if "install" in args:
            if self.install_exit_code != 0:
                raise ProcessError(
                    f"'pip' finished with exit code: {self.install_exit_code}.",
                    exit_code=self.install_exit_code,
                    output="ERROR: No matching distribution",
                )
            for req in args[args.index("--disable-pip-version-check") + 1 :]:
                self.installed[req.split(">")[0].split("=")[0].split("<")[0]] = "1.0"
            return "Successfully installed\n"
        raise AssertionError(f"unexpected pip call {args}")

    @property
    def install_calls(self) -> list[list[str]]:
        return [c for c in self.calls if "install" in c]


