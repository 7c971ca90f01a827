"""Tests for the catalog and stock use cases and the hold query."""

import pytest

from stockhold.application.add_product import AddProductHandler
from stockhold.application.set_stock import SetStockHandler
from stockhold.application.show_hold import ShowHoldHandler
from stockhold.application.show_stock import ShowStockHandler
from stockhold.domain.exceptions import (
    HoldNotFound,
    InvalidQuantity,
    ProductNotFound,
    ValidationError,
)
from stockhold.domain.model.hold import HoldStatus
from stockhold.domain.service.hold_manager import HoldManager, LineRequest
from tests.fakes import (
    FakeClock,
    FakeHoldRepository,
    FakeProductCatalog,
    FakeStockLedger,
    FakeUnitOfWork,
)


def _setup():
    catalog = FakeProductCatalog()
    ledger = FakeStockLedger()
    clock = FakeClock()
    holds = FakeHoldRepository()
    manager = HoldManager(ledger, holds, catalog, FakeUnitOfWork(ledger, holds), clock=clock)
    add = AddProductHandler(catalog, ledger)
    add.handle("p-1", "Widget", "15.00", stock=5)
    add.handle("p-2", "Gadget", "25.50")
    return add, catalog, ledger, manager, clock


class TestAddProduct:

    def test_adds_product_with_opening_stock(self):
        _, catalog, ledger, _, _ = _setup()

        product = catalog.get_by_id("p-1")
        assert product.name == "Widget"
        assert str(product.price) == "15.00 INR"
        assert ledger.get("p-1").stock_quantity == 5
        assert ledger.get("p-2").stock_quantity == 0

    def test_duplicate_id_rejected(self):
        add, _, _, _, _ = _setup()
        with pytest.raises(ValidationError, match="already exists"):
            add.handle("p-1", "Widget again", "1.00")

    @pytest.mark.parametrize("price", ["0", "0.00"])
    def test_free_products_rejected(self, price):
        add, _, _, _, _ = _setup()
        with pytest.raises(ValidationError, match="greater than zero"):
            add.handle("p-3", "Freebie", price)

    def test_blank_name_rejected(self):
        add, _, _, _, _ = _setup()
        with pytest.raises(ValidationError, match="name is required"):
            add.handle("p-3", "  ", "1.00")

    def test_negative_opening_stock_rejected(self):
        add, _, _, _, _ = _setup()
        with pytest.raises(InvalidQuantity):
            add.handle("p-3", "Thing", "1.00", stock=-1)


class TestSetStock:

    def test_restock(self):
        _, catalog, ledger, _, _ = _setup()
        SetStockHandler(ledger, catalog).handle("p-2", 40)
        assert ledger.get("p-2").available_quantity == 40

    def test_cannot_drop_below_reserved(self):
        _, catalog, ledger, manager, _ = _setup()
        manager.create_hold([LineRequest("p-1", 4)], {})
        handler = SetStockHandler(ledger, catalog)

        with pytest.raises(ValidationError, match="4 units are reserved"):
            handler.handle("p-1", 3)

        handler.handle("p-1", 4)
        level = ledger.get("p-1")
        assert (level.stock_quantity, level.reserved_quantity) == (4, 4)

    def test_unknown_product(self):
        _, catalog, ledger, _, _ = _setup()
        with pytest.raises(ProductNotFound):
            SetStockHandler(ledger, catalog).handle("nope", 1)

    def test_negative_rejected(self):
        _, catalog, ledger, _, _ = _setup()
        with pytest.raises(InvalidQuantity):
            SetStockHandler(ledger, catalog).handle("p-1", -5)


class TestShowStock:

    def test_lists_counters_for_every_product(self):
        _, _, ledger, manager, _ = _setup()
        manager.create_hold([LineRequest("p-1", 2)], {})

        rows = ShowStockHandler(ledger).handle()

        assert [r.product_id for r in rows] == ["p-1", "p-2"]
        assert (rows[0].total, rows[0].reserved, rows[0].available) == (5, 2, 3)


class TestShowHold:

    def test_renders_hold(self):
        _, _, _, manager, _ = _setup()
        receipt = manager.create_hold(
            [LineRequest("p-1", 2), LineRequest("p-2", 1)], {"city": "Pune"}
        )

        dto = ShowHoldHandler(manager).handle(receipt.local_order_id)

        assert dto.status == "active"
        assert dto.total == "55.50 INR"
        assert dto.created_at == "2025-01-01 12:00:00 UTC"
        assert dto.expires_at == "2025-01-01 12:15:00 UTC"
        assert [(line.product_id, line.quantity, line.line_total) for line in dto.lines] == [
            ("p-1", 2, "30.00 INR"),
            ("p-2", 1, "25.50 INR"),
        ]
        assert dto.gateway_order_id is None

    def test_lapsed_hold_is_reported_expired(self):
        _, _, ledger, manager, clock = _setup()
        receipt = manager.create_hold([LineRequest("p-1", 2)], {})
        clock.advance(minutes=15, seconds=1)

        dto = ShowHoldHandler(manager).handle(receipt.local_order_id)

        assert dto.status == "expired"
        assert ledger.get("p-1").reserved_quantity == 0

    def test_list_filters_by_status(self):
        _, _, _, manager, clock = _setup()
        first = manager.create_hold([LineRequest("p-1", 1)], {}).local_order_id
        clock.advance(seconds=1)
        second = manager.create_hold([LineRequest("p-1", 1)], {}).local_order_id
        manager.cancel_hold(first)
        handler = ShowHoldHandler(manager)

        assert [h.local_order_id for h in handler.list()] == [second, first]
        assert [h.local_order_id for h in handler.list(HoldStatus.CANCELLED)] == [first]

    def test_unknown_hold(self):
        _, _, _, manager, _ = _setup()
        with pytest.raises(HoldNotFound):
            ShowHoldHandler(manager).handle("missing")
