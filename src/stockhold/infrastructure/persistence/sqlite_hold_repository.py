"""SQLite implementation of HoldRepository."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from decimal import Decimal

from stockhold.domain.model.hold import HoldLine, HoldRecord, HoldStatus
from stockhold.domain.model.value_objects import Money, Quantity
from stockhold.domain.repository.hold_repository import HoldRepository
from stockhold.infrastructure.persistence.sqlite_database import (
    SqliteDatabase,
    from_micros,
    to_micros,
)

_HOLD_COLUMNS = """
    local_order_id, status, created_at, expires_at, address, customer_id,
    gateway_order_id, gateway_payment_id, finalized_at
"""


class SqliteHoldRepository(HoldRepository):

    def __init__(self, database: SqliteDatabase) -> None:
        self._db = database

    # --- HoldRepository interface ---------------------------------------------

    def add(self, hold: HoldRecord) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                f"INSERT INTO holds ({_HOLD_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                self._to_row(hold),
            )
            conn.executemany(
                """
                INSERT INTO hold_lines
                    (local_order_id, position, product_id, product_name,
                     quantity, unit_price, currency)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        hold.local_order_id,
                        position,
                        line.product_id,
                        line.product_name,
                        line.quantity.value,
                        str(line.unit_price.amount),
                        line.unit_price.currency,
                    )
                    for position, line in enumerate(hold.lines)
                ],
            )

    def get(self, local_order_id: str) -> HoldRecord | None:
        return self._fetch_one("local_order_id = ?", (local_order_id,))

    def get_by_gateway_order_id(self, gateway_order_id: str) -> HoldRecord | None:
        return self._fetch_one("gateway_order_id = ?", (gateway_order_id,))

    def attach_gateway_order(self, local_order_id: str, gateway_order_id: str) -> bool:
        with self._db.connect() as conn:
            cur = conn.execute(
                """
                UPDATE holds SET gateway_order_id = ?
                WHERE local_order_id = ? AND gateway_order_id IS NULL
                """,
                (gateway_order_id, local_order_id),
            )
            return cur.rowcount == 1

    def transition(
        self,
        local_order_id: str,
        to_status: HoldStatus,
        now: datetime,
        require_unexpired: bool = False,
        gateway_payment_id: str | None = None,
    ) -> bool:
        sql = """
            UPDATE holds
            SET status = ?,
                finalized_at = ?,
                gateway_payment_id = COALESCE(?, gateway_payment_id)
            WHERE local_order_id = ? AND status = ?
        """
        params: list[object] = [
            to_status.value,
            to_micros(now),
            gateway_payment_id,
            local_order_id,
            HoldStatus.ACTIVE.value,
        ]
        if require_unexpired:
            sql += " AND expires_at > ?"
            params.append(to_micros(now))

        with self._db.connect() as conn:
            cur = conn.execute(sql, params)
            return cur.rowcount == 1

    def find_lapsed(self, now: datetime, limit: int) -> list[str]:
        with self._db.connect() as conn:
            rows = conn.execute(
                """
                SELECT local_order_id FROM holds
                WHERE status = ? AND expires_at < ?
                ORDER BY expires_at
                LIMIT ?
                """,
                (HoldStatus.ACTIVE.value, to_micros(now), limit),
            ).fetchall()
        return [row["local_order_id"] for row in rows]

    def list_by_status(self, status: HoldStatus | None = None) -> list[HoldRecord]:
        where = "status = ?" if status is not None else "1 = 1"
        params = (status.value,) if status is not None else ()
        return self._fetch_many(where, params)

    # --- Queries --------------------------------------------------------------

    def _fetch_one(self, where: str, params: tuple) -> HoldRecord | None:
        holds = self._fetch_many(where, params)
        return holds[0] if holds else None

    def _fetch_many(self, where: str, params: tuple) -> list[HoldRecord]:
        with self._db.connect() as conn:
            rows = conn.execute(
                f"SELECT {_HOLD_COLUMNS} FROM holds WHERE {where} ORDER BY created_at DESC",
                params,
            ).fetchall()
            holds = []
            for row in rows:
                lines = conn.execute(
                    """
                    SELECT product_id, product_name, quantity, unit_price, currency
                    FROM hold_lines WHERE local_order_id = ? ORDER BY position
                    """,
                    (row["local_order_id"],),
                ).fetchall()
                holds.append(self._to_domain(row, lines))
        return holds

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_row(hold: HoldRecord) -> tuple:
        return (
            hold.local_order_id,
            hold.status.value,
            to_micros(hold.created_at),
            to_micros(hold.expires_at),
            json.dumps(dict(hold.address), sort_keys=True),
            hold.customer_id,
            hold.gateway_order_id,
            hold.gateway_payment_id,
            to_micros(hold.finalized_at) if hold.finalized_at else None,
        )

    @staticmethod
    def _to_domain(row: sqlite3.Row, lines: list[sqlite3.Row]) -> HoldRecord:
        return HoldRecord(
            local_order_id=row["local_order_id"],
            lines=tuple(
                HoldLine(
                    product_id=line["product_id"],
                    product_name=line["product_name"],
                    quantity=Quantity(line["quantity"]),
                    unit_price=Money(Decimal(line["unit_price"]), line["currency"]),
                )
                for line in lines
            ),
            created_at=from_micros(row["created_at"]),
            expires_at=from_micros(row["expires_at"]),
            address=json.loads(row["address"]),
            status=HoldStatus(row["status"]),
            customer_id=row["customer_id"],
            gateway_order_id=row["gateway_order_id"],
            gateway_payment_id=row["gateway_payment_id"],
            finalized_at=from_micros(row["finalized_at"]) if row["finalized_at"] is not None else None,
        )
