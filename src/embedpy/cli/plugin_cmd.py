"""CLI commands for plugin management."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from embedpy import messages
from embedpy.cli.common import resolve_config
from embedpy.deps.resolver import DependencySet
from embedpy.errors import InterpreterInitError, VenvError
from embedpy.plugins.manifest import Failed, PluginDescriptor

console = Console()


def list_plugins(config_path: str | None = None) -> None:
    """List all discovered plugins."""
    from embedpy.host import PluginHost

    host = PluginHost(resolve_config(config_path))
    plugins = host.loader.scan()

    if not plugins:
        console.print("[dim]No plugins found.[/dim]")
        console.print(f"Drop .py files or packages in {host.config.user_plugin_dir}.")
        return

    table = Table(title="Python plugins")
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Version")
    table.add_column("Dependencies", style="green")
    table.add_column("Path", style="dim")

    for plugin in plugins:
        m = plugin.metadata
        deps = m.runtime_dependencies + m.binary_dependencies
        table.add_row(
            m.id,
            m.name or "-",
            m.version or "-",
            ", ".join(deps) if deps else "-",
            str(plugin.path),
        )

    console.print(table)


def _ask_install(descriptor: PluginDescriptor, depset: DependencySet) -> bool:
    missing = ", ".join(depset.missing_requirements)
    return typer.confirm(
        f"Plugin '{descriptor.id}' needs {missing}. "
        "Install dependencies into the virtual environment?",
        default=False,
    )


def load_plugins(install: bool | None = None, config_path: str | None = None) -> None:
    """Run one load pass and print a row per plugin."""
    from embedpy.host import PluginHost

    config = resolve_config(config_path)
    if install is not None:
        config.plugins.install_policy = "always" if install else "never"

    host = PluginHost(config, confirm_install=_ask_install)
    try:
        results = host.initialize()
    except (VenvError, InterpreterInitError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    finally:
        host.shutdown()

    if not results:
        console.print("[dim]No plugins found.[/dim]")
        return

    table = Table(title="Load pass")
    table.add_column("Plugin", style="cyan")
    table.add_column("Status")
    table.add_column("Details")

    for result in results:
        if isinstance(result, Failed):
            table.add_row(result.plugin_id, "[red]failed[/red]", result.reason)
        else:
            table.add_row(
                result.plugin_id,
                "[green]loaded[/green]",
                messages.fmt(messages.LOADING, result.elapsed_ms),
            )

    console.print(table)

    if any(isinstance(r, Failed) for r in results):
        raise typer.Exit(1)


def plugin_dir_command(config_path: str | None = None) -> None:
    config = resolve_config(config_path)
    console.print(str(config.user_plugin_dir))
