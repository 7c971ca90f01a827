"""HoldRecord aggregate — one checkout attempt's reservation.

A hold is created ``active`` and leaves that state exactly once, to
``paid``, ``cancelled`` or ``expired``. The record itself never changes
status in memory: the transition is a guarded update in the store, and
callers re-read the record afterwards.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

from stockhold.domain.exceptions import InvalidQuantity, ValidationError
from stockhold.domain.model.value_objects import Money, Quantity

HOLD_TTL = timedelta(minutes=15)
MAX_HOLD_LINES = 50


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class HoldStatus(Enum):
    ACTIVE = "active"
    PAID = "paid"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not HoldStatus.ACTIVE


@dataclass(frozen=True)
class HoldLine:
    """A reserved product line with its price locked at hold time."""

    product_id: str
    product_name: str
    quantity: Quantity
    unit_price: Money

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity.value


@dataclass
class HoldRecord:
    """Aggregate root for a checkout hold.

    Use ``HoldRecord.create()`` for new holds. The ``__init__`` stays plain
    so the store can reconstitute persisted records without re-validating.
    """

    local_order_id: str
    lines: tuple[HoldLine, ...]
    created_at: datetime
    expires_at: datetime
    address: Mapping[str, str] = field(default_factory=dict)
    status: HoldStatus = HoldStatus.ACTIVE
    customer_id: str | None = None
    gateway_order_id: str | None = None
    gateway_payment_id: str | None = None
    finalized_at: datetime | None = None

    # --- Factory (used for NEW holds only) ------------------------------------

    @staticmethod
    def create(
        lines: list[HoldLine],
        address: Mapping[str, str],
        now: datetime | None = None,
        ttl: timedelta = HOLD_TTL,
        customer_id: str | None = None,
    ) -> HoldRecord:
        if not lines:
            raise InvalidQuantity("A hold must contain at least one line")
        if len(lines) > MAX_HOLD_LINES:
            raise InvalidQuantity(f"Maximum {MAX_HOLD_LINES} lines per hold")
        currencies = {line.unit_price.currency for line in lines}
        if len(currencies) > 1:
            raise ValidationError(
                f"A hold cannot mix currencies: {', '.join(sorted(currencies))}"
            )

        created_at = now or utc_now()
        return HoldRecord(
            local_order_id=str(uuid.uuid4()),
            lines=tuple(lines),
            created_at=created_at,
            expires_at=created_at + ttl,
            address=dict(address),
            customer_id=customer_id,
        )

    # --- Queries --------------------------------------------------------------

    @property
    def total(self) -> Money:
        result = Money.zero(self.lines[0].unit_price.currency)
        for line in self.lines:
            result = result + line.line_total
        return result

    def is_expired(self, now: datetime) -> bool:
        """True once ``now`` has reached ``expires_at``."""
        return now >= self.expires_at

    def is_lapsed(self, now: datetime) -> bool:
        """Still nominally active but already past its expiry."""
        return self.status is HoldStatus.ACTIVE and self.is_expired(now)

    def quantities_by_product(self) -> dict[str, int]:
        totals: dict[str, int] = {}
        for line in self.lines:
            totals[line.product_id] = totals.get(line.product_id, 0) + line.quantity.value
        return totals
