"""CLI commands for checkout holds."""

from __future__ import annotations

import click

from stockhold.application.dto import HoldDTO
from stockhold.domain.exceptions import DomainException, InsufficientStock
from stockhold.domain.model.hold import HoldStatus
from stockhold.domain.service.hold_manager import LineRequest
from stockhold.infrastructure.bootstrap import build_services


def _parse_items(raw: str) -> list[LineRequest]:
    """Parse 'p-1:3,p-2:5' into LineRequest list."""
    lines: list[LineRequest] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'ProductId:Quantity'."
            )
        product_id, qty_str = pair.rsplit(":", 1)
        try:
            qty = int(qty_str)
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{qty_str}' for product '{product_id}'."
            )
        lines.append(LineRequest(product_id=product_id.strip(), quantity=qty))
    return lines


def _parse_address(pairs: tuple[str, ...]) -> dict[str, str]:
    address: dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise click.BadParameter(f"Invalid address field '{pair}'. Expected 'key=value'.")
        key, value = pair.split("=", 1)
        address[key.strip()] = value.strip()
    return address


def _display_hold(dto: HoldDTO) -> None:
    click.echo(f"Hold {dto.local_order_id}  (status={dto.status})")
    click.echo(f"Created:  {dto.created_at}")
    click.echo(f"Expires:  {dto.expires_at}")
    if dto.gateway_order_id:
        click.echo(f"Gateway:  {dto.gateway_order_id}")
    if dto.gateway_payment_id:
        click.echo(f"Payment:  {dto.gateway_payment_id}")
    click.echo()
    click.echo(f"  {'Product':<20} {'Qty':>5} {'Price':>14} {'Total':>14}")
    click.echo(f"  {'-'*55}")
    for line in dto.lines:
        click.echo(
            f"  {line.product_name:<20} {line.quantity:>5} {line.unit_price:>14} {line.line_total:>14}"
        )
    click.echo(f"  {'-'*55}")
    click.echo(f"  {'Hold Total':<27} {dto.total:>28}")


@click.command("create")
@click.option("--items", required=True, help="Items as 'ProductId:Qty,ProductId:Qty'.")
@click.option("--address", "address", multiple=True, help="Address field as key=value (repeatable).")
@click.option("--customer", default=None, help="Customer ID (omit for guest checkout).")
def hold_create(items: str, address: tuple[str, ...], customer: str | None) -> None:
    """Reserve stock and open a payment order."""
    lines = _parse_items(items)
    handler = build_services().create_checkout

    try:
        dto = handler.handle(lines, _parse_address(address), customer_id=customer)
    except InsufficientStock as exc:
        for shortage in exc.shortages:
            click.echo(
                f"  short: {shortage.product_name} "
                f"(need {shortage.requested}, have {shortage.available})",
                err=True,
            )
        raise click.ClickException(str(exc))
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Hold {dto.local_order_id} created  (gateway order {dto.order_id})")
    click.echo(f"Amount:  {dto.amount} {dto.currency} (minor units)")
    click.echo(f"Expires: {dto.expires_at}")


@click.command("show")
@click.option("--id", "local_order_id", required=True, help="Local order ID of the hold.")
def hold_show(local_order_id: str) -> None:
    """Show a hold (expiring it first if its time is up)."""
    handler = build_services().show_hold

    try:
        dto = handler.handle(local_order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_hold(dto)


@click.command("cancel")
@click.option("--id", "local_order_id", required=True, help="Local order ID of the hold.")
def hold_cancel(local_order_id: str) -> None:
    """Cancel an active hold (releases its reserved stock)."""
    handler = build_services().cancel_hold

    try:
        handler.handle(local_order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Hold {local_order_id} cancelled — stock released.")


@click.command("list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in HoldStatus]),
    default=None,
    help="Only show holds in this status.",
)
def hold_list(status: str | None) -> None:
    """List holds, newest first."""
    handler = build_services().show_hold
    holds = handler.list(HoldStatus(status) if status else None)

    if not holds:
        click.echo("No holds found.")
        return

    click.echo(f"{'Hold':<38} {'Status':<10} {'Expires':<24} {'Total':>14}")
    click.echo("-" * 89)
    for dto in holds:
        click.echo(f"{dto.local_order_id:<38} {dto.status:<10} {dto.expires_at:<24} {dto.total:>14}")
