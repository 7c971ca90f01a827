"""Concurrency properties of holds: no overselling, single winner per hold.

Runs real threads against the lock-guarded fakes; the SQLite adapters
get the same treatment in tests/infrastructure.
"""

from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from stockhold.domain.exceptions import HoldAlreadyFinalized, InsufficientStock
from stockhold.domain.model.hold import HoldStatus
from stockhold.domain.model.product import Product
from stockhold.domain.model.stock import StockLevel
from stockhold.domain.model.value_objects import Money
from stockhold.domain.service.hold_manager import HoldManager, LineRequest
from stockhold.domain.service.payment_gateway_adapter import PaymentGatewayAdapter
from stockhold.domain.service.signatures import payment_signature
from tests.fakes import (
    FakeClock,
    FakeHoldRepository,
    FakePaymentGateway,
    FakeProductCatalog,
    FakeStockLedger,
    FakeUnitOfWork,
)


def _setup(stock: dict[str, int]):
    catalog = FakeProductCatalog([Product(pid, pid.upper(), Money.of("10")) for pid in stock])
    ledger = FakeStockLedger([StockLevel(pid, pid.upper(), qty) for pid, qty in stock.items()])
    holds = FakeHoldRepository()
    manager = HoldManager(
        ledger, holds, catalog, FakeUnitOfWork(ledger, holds), clock=FakeClock()
    )
    return manager, ledger


def _attempt(manager: HoldManager, lines: list[LineRequest], barrier: Barrier):
    barrier.wait()
    try:
        return manager.create_hold(lines, {})
    except InsufficientStock as exc:
        return exc


class TestNoOverselling:

    def test_three_units_five_buyers(self):
        manager, ledger = _setup({"p-1": 3})
        barrier = Barrier(5)

        with ThreadPoolExecutor(max_workers=5) as pool:
            results = list(pool.map(
                lambda _: _attempt(manager, [LineRequest("p-1", 1)], barrier), range(5)
            ))

        won = [r for r in results if not isinstance(r, InsufficientStock)]
        lost = [r for r in results if isinstance(r, InsufficientStock)]
        assert len(won) == 3
        assert len(lost) == 2
        assert ledger.get("p-1").reserved_quantity == 3

        manager.cancel_hold(won[0].local_order_id)
        assert ledger.get("p-1").reserved_quantity == 2

        manager.create_hold([LineRequest("p-1", 1)], {})
        assert ledger.get("p-1").reserved_quantity == 3

    @pytest.mark.parametrize("buyers", [8, 20])
    def test_multi_line_holds_never_exceed_stock(self, buyers):
        manager, ledger = _setup({"a": 7, "b": 5})
        barrier = Barrier(buyers)
        # half the buyers list the products in the opposite order
        carts = [
            [LineRequest("a", 2), LineRequest("b", 1)]
            if i % 2 else [LineRequest("b", 1), LineRequest("a", 2)]
            for i in range(buyers)
        ]

        with ThreadPoolExecutor(max_workers=buyers) as pool:
            results = list(pool.map(lambda cart: _attempt(manager, cart, barrier), carts))

        won = sum(1 for r in results if not isinstance(r, InsufficientStock))
        assert won == 3  # "a" runs out first: 3 * 2 = 6 of 7
        for pid in ("a", "b"):
            level = ledger.get(pid)
            assert 0 <= level.reserved_quantity <= level.stock_quantity
        assert ledger.get("a").reserved_quantity == 6
        assert ledger.get("b").reserved_quantity == 3


class TestFinalizationRace:

    @pytest.mark.parametrize("rounds", range(10))
    def test_cancel_and_payment_race_has_one_winner(self, rounds):
        manager, ledger = _setup({"p-1": 5})
        receipt = manager.create_hold([LineRequest("p-1", 2)], {})
        barrier = Barrier(2)

        def race(outcome):
            barrier.wait()
            try:
                return manager.finalize(receipt.local_order_id, outcome, "pay_1").status
            except HoldAlreadyFinalized:
                return None

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(race, [HoldStatus.PAID, HoldStatus.CANCELLED]))

        winners = [r for r in results if r is not None]
        assert len(winners) == 1
        level = ledger.get("p-1")
        if winners[0] is HoldStatus.PAID:
            assert (level.stock_quantity, level.reserved_quantity) == (3, 0)
        else:
            assert (level.stock_quantity, level.reserved_quantity) == (5, 0)

    def test_many_cancels_release_once(self):
        manager, ledger = _setup({"p-1": 4})
        receipt = manager.create_hold([LineRequest("p-1", 2)], {})
        manager.create_hold([LineRequest("p-1", 2)], {})
        barrier = Barrier(6)

        def cancel(_):
            barrier.wait()
            try:
                manager.cancel_hold(receipt.local_order_id)
                return True
            except HoldAlreadyFinalized:
                return False

        with ThreadPoolExecutor(max_workers=6) as pool:
            results = list(pool.map(cancel, range(6)))

        assert results.count(True) == 1
        assert ledger.get("p-1").reserved_quantity == 2


class TestPaymentCallbackRace:

    KEY = "key-secret"

    def _adapter_and_hold(self):
        manager, ledger = _setup({"p-1": 5})
        adapter = PaymentGatewayAdapter(
            FakePaymentGateway(), manager, key_secret=self.KEY, webhook_secret="w"
        )
        receipt = manager.create_hold([LineRequest("p-1", 2)], {})
        gateway_order_id = adapter.create_remote_order(manager.get_hold(receipt.local_order_id))
        signature = payment_signature(self.KEY, gateway_order_id, "pay_1")
        return manager, ledger, adapter, receipt.local_order_id, signature

    @pytest.mark.parametrize("rounds", range(10))
    def test_verify_payment_and_cancel_have_one_winner(self, rounds):
        manager, ledger, adapter, hold_id, signature = self._adapter_and_hold()
        barrier = Barrier(2)

        def run(action):
            barrier.wait()
            try:
                if action == "verify":
                    return adapter.verify_payment(hold_id, "pay_1", signature).status
                return manager.cancel_hold(hold_id).status
            except HoldAlreadyFinalized as exc:
                return exc

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(run, ["verify", "cancel"]))

        [winner] = [r for r in results if isinstance(r, HoldStatus)]
        [loser] = [r for r in results if isinstance(r, HoldAlreadyFinalized)]
        assert loser.status == winner.value
        assert manager.get_hold(hold_id).status is winner
        level = ledger.get("p-1")
        expected = (3, 0) if winner is HoldStatus.PAID else (5, 0)
        assert (level.stock_quantity, level.reserved_quantity) == expected

    def test_concurrent_repeat_verifications_commit_once(self):
        manager, ledger, adapter, hold_id, signature = self._adapter_and_hold()
        barrier = Barrier(4)

        def verify(_):
            barrier.wait()
            return adapter.verify_payment(hold_id, "pay_1", signature)

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(verify, range(4)))

        assert {hold.status for hold in results} == {HoldStatus.PAID}
        level = ledger.get("p-1")
        assert (level.stock_quantity, level.reserved_quantity) == (3, 0)
