from typing import Optional

import typer
from rich.table import Table

from ...core.providers import HTTP_PROVIDERS
from ...services.discovery_service import DiscoveryOptions
from ..utils import console, resolve_engine, resolve_settings


def list_providers():
    """Displays the registered HTTP providers."""
    table = Table(title="HTTP Providers", show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", width=4)
    table.add_column("URL", style="cyan", no_wrap=True)
    table.add_column("Kind", style="blue")

    for idx, provider in enumerate(HTTP_PROVIDERS, 1):
        table.add_row(str(idx), provider.url, provider.kind)

    console.print(table)


def check_providers(
    gateway: Optional[bool] = typer.Option(
        None, "--gateway/--no-gateway", help="Include the UPnP IGD router."
    ),
    timeout: float = typer.Option(
        5.0, "--timeout", "-t", help="Per-provider timeout in seconds."
    )
):
    """Probes the router and every HTTP provider, reporting each result."""
    settings = resolve_settings()
    options = DiscoveryOptions(**{
        **settings.to_options().model_dump(),
        "use_gateway": settings.USE_GATEWAY if gateway is None else gateway,
        "http_timeout": timeout,
    })
    engine = resolve_engine()

    with console.status("[bold blue]Probing sources..."):
        reports = engine.check(options)

    table = Table(title="Source Health", show_header=True, header_style="bold magenta")
    table.add_column("Source", style="cyan", no_wrap=True)
    table.add_column("Address", style="green", no_wrap=True)
    table.add_column("Time", justify="right")
    table.add_column("Error", style="red")

    for report in reports:
        table.add_row(
            report.source,
            str(report.address) if report.ok else "-",
            f"{report.elapsed * 1000:.0f} ms",
            report.error or ""
        )

    console.print(table)

    if not any(report.ok for report in reports):
        raise typer.Exit(code=1)
