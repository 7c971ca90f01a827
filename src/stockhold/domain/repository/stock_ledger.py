"""Abstract StockLedger — the only writer of stock counters.

Every mutating method must be implemented as a single atomic
conditional update against the backing store. Implementations must
never read the counters and then write them back in a separate step.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from stockhold.domain.model.stock import StockLevel


class StockLedger(ABC):

    @abstractmethod
    def try_reserve(self, product_id: str, quantity: int) -> bool:
        """Reserve ``quantity`` units if at least that many are available.

        Returns False, without changing anything, when the product is
        unknown or short.
        """

    @abstractmethod
    def release(self, product_id: str, quantity: int) -> None:
        """Return reserved units to available stock, floored at zero."""

    @abstractmethod
    def commit(self, product_id: str, quantity: int) -> bool:
        """Turn reserved units into sold units.

        Decrements both the stock and the reserved counters. Returns False
        when fewer than ``quantity`` units are reserved, in which case
        nothing is changed.
        """

    @abstractmethod
    def set_stock(self, product_id: str, stock_quantity: int) -> bool:
        """Set the on-hand quantity, refusing to go below what is reserved."""

    @abstractmethod
    def get(self, product_id: str) -> StockLevel | None:
        """Return a snapshot of a product's counters, or None."""

    @abstractmethod
    def list_all(self) -> list[StockLevel]:
        """Return a snapshot of every product's counters."""
