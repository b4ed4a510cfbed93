from typing import Optional

import typer

from ...core.exceptions import AddressNotFoundError
from ...services.discovery_service import DiscoveryOptions
from ..utils import configure_logging, console, err_console, resolve_engine, resolve_settings, version_callback


def find_addresses(
    ctx: typer.Context,
    gateway: Optional[bool] = typer.Option(
        None, "--gateway/--no-gateway", help="Ask the local router over UPnP IGD."
    ),
    fast: bool = typer.Option(
        False, "--fast", "-f", help="Stop at the first address found."
    ),
    limit: Optional[int] = typer.Option(
        None, "--limit", "-l", help="Number of HTTP providers to consult (default: 1)."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", "-t", help="Per-provider timeout in seconds."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-V", help="Log every probe to stderr."
    ),
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show the application version and exit."
    )
):
    """Prints the external IP addresses of this host, one per line."""
    settings = resolve_settings()
    configure_logging("DEBUG" if verbose else settings.LOG_LEVEL)

    if ctx.invoked_subcommand is not None:
        return

    if limit is None:
        limit = 1 if settings.HTTP_LIMIT is None else settings.HTTP_LIMIT

    options = DiscoveryOptions(
        use_gateway=settings.USE_GATEWAY if gateway is None else gateway,
        fast=settings.FAST or fast,
        http_limit=limit,
        http_timeout=settings.HTTP_TIMEOUT if timeout is None else timeout,
        gateway_timeout=settings.GATEWAY_TIMEOUT
    )

    engine = resolve_engine()

    try:
        addrs = engine.find(options)
    except AddressNotFoundError as e:
        err_console.print(f"[bold red]Discovery failed:[/] {e}")
        raise typer.Exit(code=1)

    for addr in addrs:
        console.print(str(addr), highlight=False)
