"""Offline PaymentGateway for development and the CLI.

Mints Razorpay-shaped order IDs without any network call. Wired in by
the composition root when no Razorpay credentials are configured.
"""

from __future__ import annotations

import secrets
from collections.abc import Mapping

import structlog

from stockhold.domain.gateway.payment_gateway import PaymentGateway
from stockhold.domain.model.value_objects import Money

logger = structlog.get_logger(__name__)


class LocalPaymentGateway(PaymentGateway):
    """Keeps nothing: every order exists only in the log line it emits."""

    def create_order(
        self,
        amount: Money,
        receipt: str,
        notes: Mapping[str, str],
    ) -> str:
        order_id = f"order_{secrets.token_hex(7)}"
        logger.info(
            "local_gateway_order",
            gateway_order_id=order_id,
            receipt=receipt,
            amount=amount.minor_units,
            currency=amount.currency,
        )
        return order_id
