"""StockLevel — a point-in-time snapshot of one product's counters.

Snapshots are for display and error reporting only. Decisions about
whether stock can be reserved are made by the ledger's atomic
conditional updates, never by comparing against a snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StockLevel:
    """Counters for a single product.

    Invariants (maintained by the ledger):
    - ``0 <= reserved_quantity <= stock_quantity``
    - ``available_quantity`` is always >= 0
    """

    product_id: str
    product_name: str
    stock_quantity: int
    reserved_quantity: int = 0

    @property
    def available_quantity(self) -> int:
        return self.stock_quantity - self.reserved_quantity
