"""Application service: Create Checkout use case.

Places the stock hold first and only then asks the gateway for a
payable order, so a buyer can never pay for stock that was not held.
If the gateway stays unreachable the hold is left ``active`` and the
expiry sweep releases it later.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import structlog

from stockhold.application.dto import CheckoutDTO
from stockhold.domain.exceptions import GatewayUnavailable
from stockhold.domain.service.hold_manager import HoldManager, LineRequest
from stockhold.domain.service.payment_gateway_adapter import PaymentGatewayAdapter

logger = structlog.get_logger(__name__)


class CreateCheckoutHandler:

    def __init__(
        self,
        hold_manager: HoldManager,
        payment_adapter: PaymentGatewayAdapter,
    ) -> None:
        self._hold_manager = hold_manager
        self._payment_adapter = payment_adapter

    def handle(
        self,
        lines: Sequence[LineRequest],
        address: Mapping[str, str],
        customer_id: str | None = None,
    ) -> CheckoutDTO:
        receipt = self._hold_manager.create_hold(lines, address, customer_id=customer_id)
        hold = self._hold_manager.get_hold(receipt.local_order_id)

        try:
            gateway_order_id = self._payment_adapter.create_remote_order(hold)
        except GatewayUnavailable as exc:
            logger.warning(
                "checkout_left_pending",
                local_order_id=hold.local_order_id,
                expires_at=hold.expires_at.isoformat(),
            )
            raise GatewayUnavailable(
                f"Payment gateway unavailable; hold {hold.local_order_id} "
                f"will be released at {hold.expires_at.isoformat()}"
            ) from exc

        return CheckoutDTO(
            order_id=gateway_order_id,
            local_order_id=hold.local_order_id,
            expires_at=hold.expires_at.isoformat(),
            amount=receipt.total.minor_units,
            currency=receipt.total.currency,
        )
