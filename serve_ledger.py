"""Mini README: Entry point CLI for launching the Money Manager ledger API.

This script exposes a Typer CLI that starts the FastAPI application with
configurable host, port, and production flags. Values not given on the
command line come from ``MONEY_MANAGER_*`` environment variables.
"""

from __future__ import annotations

import typer
import uvicorn

from money_manager.configuration import get_settings
from money_manager.logging_utils import configure_root_logger

cli = typer.Typer(help="Launch the Money Manager ledger API.")


@cli.command()
def run(
    host: str = typer.Option(None, help="Host interface to bind."),
    port: int = typer.Option(None, help="Port to listen on."),
    production: bool = typer.Option(
        False, help="Use production server settings (disable auto-reload)."
    ),
) -> None:
    """Start the FastAPI application using uvicorn."""

    settings = get_settings()
    effective_host = host or settings.interface_host
    effective_port = port or settings.interface_port
    configure_root_logger(settings.log_level)

    # Browsers cannot open the 0.0.0.0 wildcard, so point them at localhost.
    browser_host = "127.0.0.1" if effective_host in {"0.0.0.0", "::"} else effective_host
    typer.echo(
        f"Starting Money Manager on {effective_host}:{effective_port}.\n"
        f"Health check: http://{browser_host}:{effective_port}/api/health"
    )
    uvicorn.run(
        "money_manager.interface.web_app:create_application",
        host=effective_host,
        port=effective_port,
        factory=True,
        reload=not production and settings.environment == "development",
    )


if __name__ == "__main__":
    cli()
