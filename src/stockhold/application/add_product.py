"""Application service: Add Product use case.

Seeds the local catalog table with a product and its opening stock.
Full catalog management belongs to the catalog service.
"""

from __future__ import annotations

from stockhold.domain.exceptions import InvalidQuantity, ValidationError
from stockhold.domain.model.product import Product
from stockhold.domain.model.value_objects import DEFAULT_CURRENCY, Money
from stockhold.domain.repository.product_catalog import ProductCatalog
from stockhold.domain.repository.stock_ledger import StockLedger


class AddProductHandler:

    def __init__(
        self,
        catalog: ProductCatalog,
        ledger: StockLedger,
        currency: str = DEFAULT_CURRENCY,
    ) -> None:
        self._catalog = catalog
        self._ledger = ledger
        self._currency = currency

    def handle(self, product_id: str, name: str, price: str, stock: int = 0) -> Product:
        if not product_id or not product_id.strip():
            raise ValidationError("Product ID is required")
        if not name or not name.strip():
            raise ValidationError("Product name is required")
        if stock < 0:
            raise InvalidQuantity("Opening stock cannot be negative")
        if self._catalog.get_by_id(product_id.strip()) is not None:
            raise ValidationError(f"Product '{product_id}' already exists")

        product = Product(id=product_id.strip(), name=name.strip(), price=Money.of(price, self._currency))
        if product.price.amount <= 0:
            raise ValidationError("Product price must be greater than zero")

        self._catalog.save(product)
        self._ledger.set_stock(product.id, stock)
        return product
