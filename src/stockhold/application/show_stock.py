"""Application service: Show Stock use case (query)."""

from __future__ import annotations

from stockhold.application.dto import StockLineDTO
from stockhold.domain.repository.stock_ledger import StockLedger


class ShowStockHandler:

    def __init__(self, ledger: StockLedger) -> None:
        self._ledger = ledger

    def handle(self) -> list[StockLineDTO]:
        return [
            StockLineDTO(
                product_id=level.product_id,
                product_name=level.product_name,
                total=level.stock_quantity,
                reserved=level.reserved_quantity,
                available=level.available_quantity,
            )
            for level in self._ledger.list_all()
        ]
