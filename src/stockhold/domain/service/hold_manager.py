"""Domain service: HoldManager.

Coordinates the cross-aggregate work of a checkout hold: reserving stock
for every line, recording the hold, and settling the stock once the hold
reaches a terminal status.

Multi-line reservations use sequential reserve-with-compensation:
products are reserved one at a time in product-id order, and the first
failure releases whatever this attempt already reserved. Every status
change goes through ``finalize``, whose guarded update lets exactly one
of several racing callers (payment, cancel, expiry) win. Both run inside
a UnitOfWork, so the hold store and the ledger never disagree after a
failed write.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog

from stockhold.domain.exceptions import (
    ExpiredHold,
    HoldAlreadyFinalized,
    HoldNotFound,
    InsufficientStock,
    InvalidQuantity,
    ProductNotFound,
    StockShortage,
    ValidationError,
)
from stockhold.domain.model.hold import (
    HOLD_TTL,
    HoldLine,
    HoldRecord,
    HoldStatus,
    utc_now,
)
from stockhold.domain.model.value_objects import Money, Quantity
from stockhold.domain.repository.hold_repository import HoldRepository
from stockhold.domain.repository.product_catalog import ProductCatalog
from stockhold.domain.repository.stock_ledger import StockLedger
from stockhold.domain.repository.unit_of_work import UnitOfWork

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LineRequest:
    """Input: one cart line the buyer wants to check out."""

    product_id: str
    quantity: int


@dataclass(frozen=True)
class HoldReceipt:
    local_order_id: str
    expires_at: datetime
    total: Money


@dataclass(frozen=True)
class HoldStatusView:
    status: HoldStatus
    expires_at: datetime


class HoldManager:

    def __init__(
        self,
        ledger: StockLedger,
        holds: HoldRepository,
        catalog: ProductCatalog,
        unit_of_work: UnitOfWork,
        clock: Callable[[], datetime] = utc_now,
        ttl: timedelta = HOLD_TTL,
    ) -> None:
        self._ledger = ledger
        self._holds = holds
        self._catalog = catalog
        self._uow = unit_of_work
        self._clock = clock
        self._ttl = ttl

    # --- Creation -------------------------------------------------------------

    def create_hold(
        self,
        requests: Sequence[LineRequest],
        address: Mapping[str, str],
        customer_id: str | None = None,
    ) -> HoldReceipt:
        """Reserve stock for every line and record an ``active`` hold.

        Raises InvalidQuantity, ProductNotFound, ValidationError or
        InsufficientStock. On any failure no stock stays reserved by this
        attempt.
        """
        lines = self._build_lines(requests)
        hold = HoldRecord.create(
            lines,
            address,
            now=self._clock(),
            ttl=self._ttl,
            customer_id=customer_id,
        )
        total = hold.total

        wanted = hold.quantities_by_product()
        with self._uow.atomic():
            reserved: list[tuple[str, int]] = []
            for product_id in sorted(wanted):
                qty = wanted[product_id]
                if not self._ledger.try_reserve(product_id, qty):
                    self._compensate(hold.local_order_id, reserved)
                    shortages = self._shortages(hold, failed_product_id=product_id)
                    logger.info(
                        "hold_rejected",
                        local_order_id=hold.local_order_id,
                        short=[s.product_id for s in shortages],
                    )
                    raise InsufficientStock(shortages)
                reserved.append((product_id, qty))

            self._holds.add(hold)

        logger.info(
            "hold_created",
            local_order_id=hold.local_order_id,
            lines=len(hold.lines),
            total=str(total),
            expires_at=hold.expires_at.isoformat(),
        )
        return HoldReceipt(
            local_order_id=hold.local_order_id,
            expires_at=hold.expires_at,
            total=total,
        )

    # --- Transitions ----------------------------------------------------------

    def finalize(
        self,
        local_order_id: str,
        outcome: HoldStatus,
        gateway_payment_id: str | None = None,
    ) -> HoldRecord:
        """Move an ``active`` hold to ``outcome`` and settle its stock.

        The status change and the stock movement commit together, so a
        failed settle leaves the hold ``active`` and retryable. Exactly one
        finalizer can win for a given hold; every loser gets
        HoldAlreadyFinalized. A payment for a hold already past its expiry
        is refused with ExpiredHold, and the hold is expired on the spot.
        """
        if not outcome.is_terminal:
            raise ValidationError(f"Cannot finalize a hold as {outcome.value}")

        hold = self.get_hold(local_order_id)
        with self._uow.atomic():
            applied = self._holds.transition(
                local_order_id,
                outcome,
                now=self._clock(),
                require_unexpired=outcome is HoldStatus.PAID,
                gateway_payment_id=gateway_payment_id,
            )
            if applied:
                self._settle(hold, outcome)

        if not applied:
            current = self.get_hold(local_order_id)
            if outcome is HoldStatus.PAID and current.status is HoldStatus.ACTIVE:
                logger.warning(
                    "late_payment_refused",
                    local_order_id=local_order_id,
                    gateway_payment_id=gateway_payment_id,
                )
                self._expire_if_active(local_order_id)
                current = self.get_hold(local_order_id)
                if current.status is HoldStatus.EXPIRED:
                    raise ExpiredHold(local_order_id)
            logger.info(
                "finalize_lost_race",
                local_order_id=local_order_id,
                wanted=outcome.value,
                current=current.status.value,
            )
            raise HoldAlreadyFinalized(local_order_id, current.status.value)

        logger.info(
            "hold_finalized",
            local_order_id=local_order_id,
            status=outcome.value,
            gateway_payment_id=gateway_payment_id,
        )
        return self.get_hold(local_order_id)

    def cancel_hold(self, local_order_id: str) -> HoldRecord:
        return self.finalize(local_order_id, HoldStatus.CANCELLED)

    def attach_gateway_order(self, local_order_id: str, gateway_order_id: str) -> HoldRecord:
        """Record the remote order created for a hold."""
        hold = self.get_hold(local_order_id)
        if not self._holds.attach_gateway_order(local_order_id, gateway_order_id):
            logger.warning(
                "gateway_order_already_attached",
                local_order_id=local_order_id,
                existing=hold.gateway_order_id,
                ignored=gateway_order_id,
            )
        return self.get_hold(local_order_id)

    # --- Queries --------------------------------------------------------------

    def get_hold(self, local_order_id: str) -> HoldRecord:
        hold = self._holds.get(local_order_id)
        if hold is None:
            raise HoldNotFound(local_order_id)
        return hold

    def get_status(self, local_order_id: str) -> HoldStatusView:
        """Current status, expiring the hold first if its time is up."""
        hold = self.get_hold(local_order_id)
        if hold.is_lapsed(self._clock()):
            self._expire_if_active(local_order_id)
            hold = self.get_hold(local_order_id)
        return HoldStatusView(status=hold.status, expires_at=hold.expires_at)

    def find_by_gateway_order(self, gateway_order_id: str) -> HoldRecord | None:
        return self._holds.get_by_gateway_order_id(gateway_order_id)

    def list_holds(self, status: HoldStatus | None = None) -> list[HoldRecord]:
        return self._holds.list_by_status(status)

    # --- Internal helpers -----------------------------------------------------

    def _build_lines(self, requests: Sequence[LineRequest]) -> list[HoldLine]:
        if not requests:
            raise InvalidQuantity("A hold must contain at least one line")

        for req in requests:
            if isinstance(req.quantity, bool) or not isinstance(req.quantity, int) or req.quantity <= 0:
                raise InvalidQuantity(
                    f"Quantity for product '{req.product_id}' must be a positive integer"
                )

        lines: list[HoldLine] = []
        for req in requests:
            product = self._catalog.get_by_id(req.product_id)
            if product is None:
                raise ProductNotFound(req.product_id)
            lines.append(
                HoldLine(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=Quantity(req.quantity),
                    unit_price=product.price,  # price snapshot
                )
            )
        return lines

    def _compensate(self, local_order_id: str, reserved: list[tuple[str, int]]) -> None:
        for product_id, qty in reversed(reserved):
            self._ledger.release(product_id, qty)
        if reserved:
            logger.info(
                "reservation_compensated",
                local_order_id=local_order_id,
                released=dict(reserved),
            )

    def _shortages(self, hold: HoldRecord, failed_product_id: str) -> list[StockShortage]:
        names = {line.product_id: line.product_name for line in hold.lines}
        shortages: list[StockShortage] = []
        for product_id, qty in sorted(hold.quantities_by_product().items()):
            level = self._ledger.get(product_id)
            available = level.available_quantity if level is not None else 0
            if product_id == failed_product_id or available < qty:
                shortages.append(
                    StockShortage(
                        product_id=product_id,
                        product_name=names[product_id],
                        requested=qty,
                        available=max(available, 0),
                    )
                )
        return shortages

    def _settle(self, hold: HoldRecord, outcome: HoldStatus) -> None:
        for product_id, qty in sorted(hold.quantities_by_product().items()):
            if outcome is HoldStatus.PAID:
                if not self._ledger.commit(product_id, qty):
                    logger.error(
                        "ledger_commit_guard_failed",
                        local_order_id=hold.local_order_id,
                        product_id=product_id,
                        quantity=qty,
                    )
            else:
                self._ledger.release(product_id, qty)

    def _expire_if_active(self, local_order_id: str) -> None:
        try:
            self.finalize(local_order_id, HoldStatus.EXPIRED)
        except HoldAlreadyFinalized:
            # another finalizer got there first
            pass
