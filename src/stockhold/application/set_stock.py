"""Application service: Set Stock use case.

Restocks or adjusts a product's on-hand quantity. The ledger refuses any
level below what active holds have already reserved.
"""

from __future__ import annotations

import structlog

from stockhold.domain.exceptions import InvalidQuantity, ProductNotFound, ValidationError
from stockhold.domain.repository.product_catalog import ProductCatalog
from stockhold.domain.repository.stock_ledger import StockLedger

logger = structlog.get_logger(__name__)


class SetStockHandler:

    def __init__(self, ledger: StockLedger, catalog: ProductCatalog) -> None:
        self._ledger = ledger
        self._catalog = catalog

    def handle(self, product_id: str, quantity: int) -> None:
        if quantity < 0:
            raise InvalidQuantity("Stock quantity cannot be negative")
        if self._catalog.get_by_id(product_id) is None:
            raise ProductNotFound(product_id)

        if not self._ledger.set_stock(product_id, quantity):
            level = self._ledger.get(product_id)
            reserved = level.reserved_quantity if level is not None else 0
            raise ValidationError(
                f"Cannot set stock of '{product_id}' to {quantity} "
                f"({reserved} units are reserved by active holds)"
            )
        logger.info("stock_set", product_id=product_id, stock_quantity=quantity)
