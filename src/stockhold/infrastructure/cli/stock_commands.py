"""CLI commands for stock levels and the local catalog."""

from __future__ import annotations

import click

from stockhold.domain.exceptions import DomainException
from stockhold.infrastructure.bootstrap import build_services


@click.command("set")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--quantity", required=True, type=int, help="Total quantity in stock.")
def stock_set(product_id: str, quantity: int) -> None:
    """Set the on-hand stock for a product."""
    handler = build_services().set_stock

    try:
        handler.handle(product_id=product_id, quantity=quantity)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Stock for '{product_id}' set to {quantity}")


@click.command("show")
def stock_show() -> None:
    """Show current stock levels."""
    handler = build_services().show_stock
    lines = handler.handle()

    if not lines:
        click.echo("No products found.")
        return

    click.echo(f"{'Product':<20} {'Total':>8} {'Reserved':>10} {'Available':>10}")
    click.echo("-" * 50)
    for line in lines:
        click.echo(
            f"{line.product_name:<20} {line.total:>8} {line.reserved:>10} {line.available:>10}"
        )


@click.command("add")
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.option("--name", required=True, help="Product name.")
@click.option("--price", required=True, help="Unit price, e.g. 499.00")
@click.option("--stock", default=0, type=int, help="Opening stock.")
def product_add(product_id: str, name: str, price: str, stock: int) -> None:
    """Register a product in the local catalog."""
    handler = build_services().add_product

    try:
        product = handler.handle(product_id, name, price, stock=stock)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Product '{product.name}' ({product.id}) added at {product.price} with {stock} in stock")
