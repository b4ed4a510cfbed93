import logging
from importlib.metadata import version, PackageNotFoundError

import typer
from rich.console import Console
from rich.logging import RichHandler

from ..dependencies import get_discovery_engine, get_settings


console = Console()
err_console = Console(stderr=True)


def configure_logging(level: str) -> None:
    """Routes library logs to stderr through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True
    )


def resolve_engine():
    """Wrapper to handle initialization errors gracefully in CLI."""
    try:
        return get_discovery_engine()
    except Exception as e:
        err_console.print(f"[bold red]Critical Error during initialization:[/]\n{e}")
        raise typer.Exit(code=1)


def resolve_settings():
    return get_settings()


def version_callback(value: bool):
    if value:
        try:
            v = version("whatsmyip")
        except PackageNotFoundError:
            v = "unknown (dev)"

        console.print(f"whatsmyip version: [bold cyan]{v}[/]")
        raise typer.Exit()
