"""SQLite-backed local view of the product catalog."""

from __future__ import annotations

import sqlite3
from decimal import Decimal

from stockhold.domain.model.product import Product
from stockhold.domain.model.value_objects import Money
from stockhold.domain.repository.product_catalog import ProductCatalog
from stockhold.infrastructure.persistence.sqlite_database import SqliteDatabase


class SqliteProductCatalog(ProductCatalog):

    def __init__(self, database: SqliteDatabase) -> None:
        self._db = database

    def get_by_id(self, product_id: str) -> Product | None:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT id, name, price, currency FROM products WHERE id = ?",
                (product_id,),
            ).fetchone()
        return self._to_domain(row) if row is not None else None

    def save(self, product: Product) -> None:
        # Stock counters belong to the ledger and are left untouched here.
        with self._db.connect() as conn:
            conn.execute(
                """
                INSERT INTO products (id, name, price, currency)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (id) DO UPDATE SET
                    name = excluded.name,
                    price = excluded.price,
                    currency = excluded.currency
                """,
                (product.id, product.name, str(product.price.amount), product.price.currency),
            )

    @staticmethod
    def _to_domain(row: sqlite3.Row) -> Product:
        return Product(
            id=row["id"],
            name=row["name"],
            price=Money(Decimal(row["price"]), row["currency"]),
        )
