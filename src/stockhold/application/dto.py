"""Data Transfer Objects — plain containers that cross layer boundaries.

DTOs carry data between the interfaces (HTTP, CLI) and the application
layer without exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CheckoutDTO:
    """Output: what the buyer's client needs to open the payment sheet."""

    order_id: str  # gateway order ID
    local_order_id: str
    expires_at: str  # ISO-8601, UTC
    amount: int  # minor units
    currency: str


@dataclass(frozen=True)
class HoldLineDTO:
    product_id: str
    product_name: str
    quantity: int
    unit_price: str
    line_total: str


@dataclass(frozen=True)
class HoldDTO:
    """Output: a hold as displayed to an operator."""

    local_order_id: str
    status: str
    created_at: str
    expires_at: str
    total: str
    lines: list[HoldLineDTO]
    gateway_order_id: str | None
    gateway_payment_id: str | None


@dataclass(frozen=True)
class StockLineDTO:
    product_id: str
    product_name: str
    total: int
    reserved: int
    available: int
