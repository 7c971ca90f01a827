import threading

import click
import uvicorn

from stockhold.infrastructure.bootstrap import build_services
from stockhold.infrastructure.cli.hold_commands import (
    hold_cancel,
    hold_create,
    hold_list,
    hold_show,
)
from stockhold.infrastructure.cli.stock_commands import product_add, stock_set, stock_show
from stockhold.infrastructure.config import Settings
from stockhold.infrastructure.logging_config import configure_logging


@click.group()
def cli() -> None:
    """stockhold — inventory hold-and-settle engine"""
    settings = Settings.from_env()
    configure_logging(settings.log_level, settings.log_json)


@cli.group()
def hold() -> None:
    """Manage checkout holds."""


@cli.group()
def stock() -> None:
    """Manage stock levels."""


@cli.group()
def product() -> None:
    """Manage the local product catalog."""


@cli.group()
def reaper() -> None:
    """Expire lapsed holds."""


@reaper.command("run")
@click.option("--once", is_flag=True, default=False, help="Sweep once and exit.")
def reaper_run(once: bool) -> None:
    """Run the expiry sweep (every interval until interrupted)."""
    expiry_reaper = build_services().reaper

    if once:
        result = expiry_reaper.sweep()
        click.echo(f"Expired {result.expired} hold(s), skipped {result.skipped}.")
        return

    stop = threading.Event()
    try:
        expiry_reaper.run(stop)
    except KeyboardInterrupt:
        stop.set()


@cli.command("serve")
@click.option("--host", default="0.0.0.0", help="Bind address.")
@click.option("--port", default=8000, type=int, help="Bind port.")
def serve(host: str, port: int) -> None:
    """Run the HTTP API."""
    uvicorn.run(
        "stockhold.infrastructure.web.asgi:create_asgi_app",
        factory=True,
        host=host,
        port=port,
        reload=False,
    )


# Register subcommands
hold.add_command(hold_cancel)
hold.add_command(hold_create)
hold.add_command(hold_list)
hold.add_command(hold_show)
stock.add_command(stock_set)
stock.add_command(stock_show)
product.add_command(product_add)
