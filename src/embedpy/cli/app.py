"""Main CLI application using Typer."""

import logging
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from embedpy import __version__

app = typer.Typer(
    name="embedpy",
    help="Embedpy - Plugin host for an embedded Python interpreter",
    no_args_is_help=True,
)

console = Console()

CONFIG_HELP = "Path to config file (default: ~/.embedpy/embedpy.yaml)"


@app.callback()
def _root(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Embedpy - Plugin host for an embedded Python interpreter."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@app.command()
def version():
    """Show embedpy version."""
    console.print(f"embedpy version {__version__}")


@app.command()
def info(
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
):
    """Show interpreter, binding and API versions and the host paths."""
    from embedpy.cli.venv_cmd import info_command

    info_command(config_path=config_path)


# Virtual environment commands
venv_app = typer.Typer(help="Manage the plugin virtual environment")
app.add_typer(venv_app, name="venv")


@venv_app.command("path")
def venv_path(
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
):
    """Print the virtual environment directory."""
    from embedpy.cli.venv_cmd import path_command

    path_command(config_path=config_path)


@venv_app.command("init")
def venv_init(
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
):
    """Create the virtual environment if it does not exist yet."""
    from embedpy.cli.venv_cmd import init_command

    init_command(config_path=config_path)


@venv_app.command("terminal")
def venv_terminal(
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
):
    """Print a shell command that enters the virtual environment."""
    from embedpy.cli.venv_cmd import terminal_command

    terminal_command(config_path=config_path)


@venv_app.command("reset")
def venv_reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
):
    """Delete and recreate the virtual environment."""
    from embedpy.cli.venv_cmd import reset_command

    reset_command(yes=yes, config_path=config_path)


# Plugin commands
plugin_app = typer.Typer(help="Manage embedpy plugins")
app.add_typer(plugin_app, name="plugin")


@plugin_app.command("list")
def plugin_list(
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
):
    """List all discovered plugins."""
    from embedpy.cli.plugin_cmd import list_plugins

    list_plugins(config_path=config_path)


@plugin_app.command("load")
def plugin_load(
    install: Optional[bool] = typer.Option(
        None,
        "--install/--no-install",
        help="Install missing dependencies without asking (or never install)",
    ),
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
):
    """Run a load pass over all plugins and report the results."""
    from embedpy.cli.plugin_cmd import load_plugins

    load_plugins(install=install, config_path=config_path)


@plugin_app.command("dir")
def plugin_dir(
    config_path: str = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
):
    """Print the user plugin directory."""
    from embedpy.cli.plugin_cmd import plugin_dir_command

    plugin_dir_command(config_path=config_path)


def main():
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
