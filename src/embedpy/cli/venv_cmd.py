"""CLI commands for the plugin virtual environment."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from embedpy.cli.common import resolve_config
from embedpy.errors import VenvError

console = Console()


def info_command(config_path: str | None = None) -> None:
    """Show the version triple and host paths."""
    from embedpy.host import PluginHost

    host = PluginHost(resolve_config(config_path))
    versions = host.versions()

    table = Table(title="Python plugin host", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("Python version", versions.interpreter)
    table.add_row("Binding version", versions.binding)
    table.add_row("API version", versions.api)
    for name, path in host.paths().items():
        table.add_row(f"{name.capitalize()} path", str(path))

    console.print(table)
    if versions.is_unknown:
        console.print("[yellow]Virtual environment not initialized. Run 'embedpy venv init'.[/yellow]")


def path_command(config_path: str | None = None) -> None:
    config = resolve_config(config_path)
    console.print(str(config.venv_path))


def init_command(config_path: str | None = None) -> None:
    """Create or open the venv."""
    from embedpy.host import PluginHost

    host = PluginHost(resolve_config(config_path))
    try:
        env = host.prepare()
    except VenvError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    console.print(f"[green]Virtual environment ready at {env.root}[/green]")


def terminal_command(config_path: str | None = None) -> None:
    from embedpy.host import PluginHost

    host = PluginHost(resolve_config(config_path))
    try:
        env = host.manager.open()
    except VenvError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    console.print(host.manager.activate_command(env))


def reset_command(yes: bool = False, config_path: str | None = None) -> None:
    """Reset the venv after confirmation."""
    from embedpy.host import PluginHost

    host = PluginHost(resolve_config(config_path))

    def _confirm(question: str) -> bool:
        return yes or typer.confirm(question, default=False)

    try:
        env = host.request_reset(confirm=_confirm)
    except VenvError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    if env is None:
        console.print("[dim]Reset cancelled.[/dim]")
        return

    console.print(f"[green]Virtual environment recreated at {env.root}[/green]")
    console.print("[yellow]Restart the host application before loading plugins.[/yellow]")
