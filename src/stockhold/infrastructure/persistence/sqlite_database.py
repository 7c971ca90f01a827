"""Shared SQLite file used by every persistence adapter.

Outside a transaction each call opens its own short-lived connection in
autocommit mode, so every single statement is atomic on its own and
nothing is held open across calls. Inside ``transaction()`` every
adapter call made on the same thread reuses the transaction's
connection, so the ledger and hold store commit together. WAL mode and a
busy timeout let several threads or processes share one database file.
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)

SCHEMA = """
CREATE TABLE IF NOT EXISTS products (
    id                TEXT PRIMARY KEY,
    name              TEXT NOT NULL,
    price             TEXT NOT NULL,
    currency          TEXT NOT NULL,
    stock_quantity    INTEGER NOT NULL DEFAULT 0 CHECK (stock_quantity >= 0),
    reserved_quantity INTEGER NOT NULL DEFAULT 0 CHECK (reserved_quantity >= 0),
    CHECK (reserved_quantity <= stock_quantity)
);

CREATE TABLE IF NOT EXISTS holds (
    local_order_id     TEXT PRIMARY KEY,
    status             TEXT NOT NULL,
    created_at         INTEGER NOT NULL,
    expires_at         INTEGER NOT NULL,
    address            TEXT NOT NULL,
    customer_id        TEXT,
    gateway_order_id   TEXT UNIQUE,
    gateway_payment_id TEXT UNIQUE,
    finalized_at       INTEGER
);

CREATE INDEX IF NOT EXISTS idx_holds_status_expires ON holds (status, expires_at);

CREATE TABLE IF NOT EXISTS hold_lines (
    local_order_id TEXT NOT NULL REFERENCES holds (local_order_id),
    position       INTEGER NOT NULL,
    product_id     TEXT NOT NULL,
    product_name   TEXT NOT NULL,
    quantity       INTEGER NOT NULL CHECK (quantity > 0),
    unit_price     TEXT NOT NULL,
    currency       TEXT NOT NULL,
    PRIMARY KEY (local_order_id, position)
);
"""


def to_micros(value: datetime) -> int:
    """Exact integer timestamp so stored times compare and round-trip cleanly."""
    return (value - _EPOCH) // _MICROSECOND


def from_micros(value: int) -> datetime:
    return _EPOCH + value * _MICROSECOND


class SqliteDatabase:

    def __init__(self, file_path: Path, timeout: float = 30.0) -> None:
        self._file_path = file_path
        self._timeout = timeout
        self._local = threading.local()
        self._ensure_schema()

    @property
    def file_path(self) -> Path:
        return self._file_path

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        current = getattr(self._local, "conn", None)
        if current is not None:
            yield current
            return

        conn = sqlite3.connect(
            self._file_path, timeout=self._timeout, isolation_level=None
        )
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Group several statements into one write transaction.

        A transaction opened while another is active on this thread
        joins the outer one.
        """
        current = getattr(self._local, "conn", None)
        if current is not None:
            yield current
            return

        with self.connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            self._local.conn = conn
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            else:
                conn.execute("COMMIT")
            finally:
                self._local.conn = None

    def _ensure_schema(self) -> None:
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        with self.connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA)
