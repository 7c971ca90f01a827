"""SQLite StockLedger and ProductCatalog against a real database file."""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from stockhold.domain.model.product import Product
from stockhold.domain.model.value_objects import Money
from stockhold.infrastructure.persistence.sqlite_database import SqliteDatabase
from stockhold.infrastructure.persistence.sqlite_product_catalog import SqliteProductCatalog
from stockhold.infrastructure.persistence.sqlite_stock_ledger import SqliteStockLedger


@pytest.fixture
def database(tmp_path):
    return SqliteDatabase(tmp_path / "data" / "stock.db")


@pytest.fixture
def ledger(database):
    catalog = SqliteProductCatalog(database)
    catalog.save(Product("p-1", "Widget", Money.of("15.00")))
    catalog.save(Product("p-2", "Gadget", Money.of("25.00")))
    ledger = SqliteStockLedger(database)
    ledger.set_stock("p-1", 10)
    ledger.set_stock("p-2", 3)
    return ledger


def _counters(ledger, product_id):
    level = ledger.get(product_id)
    return level.stock_quantity, level.reserved_quantity


class TestReserve:

    def test_reserve_within_available(self, ledger):
        assert ledger.try_reserve("p-1", 4) is True
        assert ledger.try_reserve("p-1", 6) is True
        assert _counters(ledger, "p-1") == (10, 10)
        assert ledger.get("p-1").available_quantity == 0

    def test_reserve_beyond_available_changes_nothing(self, ledger):
        ledger.try_reserve("p-2", 2)
        assert ledger.try_reserve("p-2", 2) is False
        assert _counters(ledger, "p-2") == (3, 2)

    def test_unknown_product_cannot_be_reserved(self, ledger):
        assert ledger.try_reserve("p-404", 1) is False

    def test_release_never_goes_negative(self, ledger):
        ledger.try_reserve("p-1", 2)
        ledger.release("p-1", 5)
        assert _counters(ledger, "p-1") == (10, 0)


class TestCommit:

    def test_commit_moves_reserved_out_of_stock(self, ledger):
        ledger.try_reserve("p-1", 3)
        assert ledger.commit("p-1", 3) is True
        assert _counters(ledger, "p-1") == (7, 0)

    def test_commit_guard_refuses_unreserved_units(self, ledger):
        ledger.try_reserve("p-1", 1)
        assert ledger.commit("p-1", 2) is False
        assert _counters(ledger, "p-1") == (10, 1)


class TestSetStock:

    def test_cannot_drop_below_reserved(self, ledger):
        ledger.try_reserve("p-2", 3)
        assert ledger.set_stock("p-2", 2) is False
        assert ledger.set_stock("p-2", 8) is True
        assert _counters(ledger, "p-2") == (8, 3)

    def test_unknown_product(self, ledger):
        assert ledger.set_stock("p-404", 5) is False


class TestQueries:

    def test_list_all_in_id_order(self, ledger):
        assert [(level.product_id, level.product_name) for level in ledger.list_all()] == [
            ("p-1", "Widget"),
            ("p-2", "Gadget"),
        ]

    def test_catalog_save_leaves_counters_alone(self, database, ledger):
        catalog = SqliteProductCatalog(database)
        ledger.try_reserve("p-1", 2)

        catalog.save(Product("p-1", "Widget Pro", Money.of("18.50")))

        assert catalog.get_by_id("p-1").price == Money.of("18.50")
        assert ledger.get("p-1").product_name == "Widget Pro"
        assert _counters(ledger, "p-1") == (10, 2)

    def test_missing_product(self, database, ledger):
        assert SqliteProductCatalog(database).get_by_id("p-404") is None
        assert ledger.get("p-404") is None


class TestConcurrentReserve:

    def test_racing_reservations_never_oversell(self, database, ledger):
        # separate ledger instances share only the database file
        ledgers = [SqliteStockLedger(database) for _ in range(12)]
        barrier = Barrier(len(ledgers))

        def reserve(each):
            barrier.wait()
            return each.try_reserve("p-2", 1)

        with ThreadPoolExecutor(max_workers=len(ledgers)) as pool:
            results = list(pool.map(reserve, ledgers))

        assert results.count(True) == 3
        assert _counters(ledger, "p-2") == (3, 3)
