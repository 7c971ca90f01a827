"""SQLite implementation of StockLedger.

Each operation is one UPDATE whose WHERE clause carries the guard, so
the check and the write happen inside a single atomic statement.
"""

from __future__ import annotations

import sqlite3

from stockhold.domain.model.stock import StockLevel
from stockhold.domain.repository.stock_ledger import StockLedger
from stockhold.infrastructure.persistence.sqlite_database import SqliteDatabase


class SqliteStockLedger(StockLedger):

    def __init__(self, database: SqliteDatabase) -> None:
        self._db = database

    # --- StockLedger interface ------------------------------------------------

    def try_reserve(self, product_id: str, quantity: int) -> bool:
        with self._db.connect() as conn:
            cur = conn.execute(
                """
                UPDATE products
                SET reserved_quantity = reserved_quantity + ?
                WHERE id = ? AND stock_quantity - reserved_quantity >= ?
                """,
                (quantity, product_id, quantity),
            )
            return cur.rowcount == 1

    def release(self, product_id: str, quantity: int) -> None:
        with self._db.connect() as conn:
            conn.execute(
                """
                UPDATE products
                SET reserved_quantity = MAX(reserved_quantity - ?, 0)
                WHERE id = ?
                """,
                (quantity, product_id),
            )

    def commit(self, product_id: str, quantity: int) -> bool:
        with self._db.connect() as conn:
            cur = conn.execute(
                """
                UPDATE products
                SET stock_quantity = stock_quantity - ?,
                    reserved_quantity = reserved_quantity - ?
                WHERE id = ? AND reserved_quantity >= ?
                """,
                (quantity, quantity, product_id, quantity),
            )
            return cur.rowcount == 1

    def set_stock(self, product_id: str, stock_quantity: int) -> bool:
        with self._db.connect() as conn:
            cur = conn.execute(
                """
                UPDATE products
                SET stock_quantity = ?
                WHERE id = ? AND ? >= reserved_quantity
                """,
                (stock_quantity, product_id, stock_quantity),
            )
            return cur.rowcount == 1

    def get(self, product_id: str) -> StockLevel | None:
        with self._db.connect() as conn:
            row = conn.execute(
                "SELECT id, name, stock_quantity, reserved_quantity FROM products WHERE id = ?",
                (product_id,),
            ).fetchone()
        return self._to_domain(row) if row is not None else None

    def list_all(self) -> list[StockLevel]:
        with self._db.connect() as conn:
            rows = conn.execute(
                "SELECT id, name, stock_quantity, reserved_quantity FROM products ORDER BY id"
            ).fetchall()
        return [self._to_domain(row) for row in rows]

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_domain(row: sqlite3.Row) -> StockLevel:
        return StockLevel(
            product_id=row["id"],
            product_name=row["name"],
            stock_quantity=row["stock_quantity"],
            reserved_quantity=row["reserved_quantity"],
        )
