"""Domain service: PaymentGatewayAdapter.

Bridges a hold and the external payment gateway. It creates the remote
order for a hold, and turns a verified payment (from the buyer's
checkout callback or from a gateway webhook) into a ``paid`` transition
through HoldManager. Nothing here touches stock or hold status directly.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

import structlog

from stockhold.domain.exceptions import (
    ExpiredHold,
    GatewayUnavailable,
    HoldAlreadyFinalized,
    HoldNotFound,
    SignatureVerificationFailed,
)
from stockhold.domain.gateway.payment_gateway import PaymentGateway
from stockhold.domain.model.hold import HoldRecord, HoldStatus
from stockhold.domain.service.hold_manager import HoldManager
from stockhold.domain.service.signatures import (
    payment_signature,
    signatures_match,
    webhook_signature,
)

logger = structlog.get_logger(__name__)

PAYMENT_EVENTS = frozenset({"payment.captured", "order.paid"})


class WebhookOutcome(Enum):
    PROCESSED = "processed"
    DUPLICATE = "duplicate"
    LATE = "late"
    IGNORED = "ignored"


class PaymentGatewayAdapter:

    def __init__(
        self,
        gateway: PaymentGateway,
        hold_manager: HoldManager,
        key_secret: str,
        webhook_secret: str,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 8.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._gateway = gateway
        self._holds = hold_manager
        self._key_secret = key_secret
        self._webhook_secret = webhook_secret
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._sleep = sleep

    # --- Remote order ---------------------------------------------------------

    def create_remote_order(self, hold: HoldRecord) -> str:
        """Create the gateway order for ``hold`` and record its ID.

        Transient failures are retried with exponential backoff. When the
        attempts run out GatewayUnavailable propagates and the hold stays
        ``active``; the expiry sweep releases it in due course.
        """
        if hold.gateway_order_id:
            return hold.gateway_order_id

        delay = self._base_delay
        for attempt in range(1, self._max_attempts + 1):
            try:
                gateway_order_id = self._gateway.create_order(
                    hold.total,
                    receipt=hold.local_order_id,
                    notes={"local_order_id": hold.local_order_id},
                )
                break
            except GatewayUnavailable as exc:
                if attempt == self._max_attempts:
                    logger.error(
                        "gateway_order_exhausted",
                        local_order_id=hold.local_order_id,
                        attempts=attempt,
                        error=str(exc),
                    )
                    raise
                logger.warning(
                    "gateway_order_retry",
                    local_order_id=hold.local_order_id,
                    attempt=attempt,
                    delay=delay,
                    error=str(exc),
                )
                self._sleep(delay)
                delay = min(delay * 2, self._max_delay)

        updated = self._holds.attach_gateway_order(hold.local_order_id, gateway_order_id)
        logger.info(
            "gateway_order_created",
            local_order_id=hold.local_order_id,
            gateway_order_id=updated.gateway_order_id,
        )
        return updated.gateway_order_id or gateway_order_id

    # --- Checkout callback ----------------------------------------------------

    def verify_payment(
        self,
        local_order_id: str,
        gateway_payment_id: str,
        signature: str,
    ) -> HoldRecord:
        """Verify the buyer's payment callback and mark the hold paid.

        A repeat of a verification that already succeeded (or that the
        webhook already settled) returns the paid hold. Without a key
        secret every callback is rejected.
        """
        hold = self._holds.get_hold(local_order_id)
        if not hold.gateway_order_id:
            logger.warning("verify_without_gateway_order", local_order_id=local_order_id)
            raise SignatureVerificationFailed(
                f"Hold '{local_order_id}' has no gateway order to verify against"
            )

        if not self._key_secret:
            logger.error("payment_secret_missing", local_order_id=local_order_id)
            raise SignatureVerificationFailed("Payment verification is not configured")

        expected = payment_signature(self._key_secret, hold.gateway_order_id, gateway_payment_id)
        if not signatures_match(expected, signature):
            logger.warning(
                "payment_signature_rejected",
                local_order_id=local_order_id,
                gateway_payment_id=gateway_payment_id,
            )
            raise SignatureVerificationFailed("Payment signature mismatch")

        try:
            return self._holds.finalize(local_order_id, HoldStatus.PAID, gateway_payment_id)
        except ExpiredHold:
            raise
        except HoldAlreadyFinalized as exc:
            current = self._holds.get_hold(local_order_id)
            if exc.status == HoldStatus.PAID.value and current.gateway_payment_id in (
                None,
                gateway_payment_id,
            ):
                return current
            raise

    # --- Webhook --------------------------------------------------------------

    def handle_webhook(self, raw_body: bytes, signature: str | None) -> WebhookOutcome:
        """Apply a gateway webhook delivery.

        Deliveries may be duplicated or arrive out of order; a hold that is
        already final is reported as a duplicate rather than an error.
        """
        if not self._webhook_secret:
            logger.error("webhook_secret_missing", body_length=len(raw_body))
            raise SignatureVerificationFailed("Webhook verification is not configured")

        expected = webhook_signature(self._webhook_secret, raw_body)
        if not signatures_match(expected, signature):
            logger.warning("webhook_signature_rejected", body_length=len(raw_body))
            raise SignatureVerificationFailed("Webhook signature mismatch")

        try:
            payload = json.loads(raw_body)
        except ValueError:
            logger.warning("webhook_malformed")
            return WebhookOutcome.IGNORED
        if not isinstance(payload, dict):
            logger.warning("webhook_malformed")
            return WebhookOutcome.IGNORED

        event = payload.get("event")
        if event not in PAYMENT_EVENTS:
            logger.info("webhook_ignored", event_name=event)
            return WebhookOutcome.IGNORED

        payment = _dig(payload, "payload", "payment", "entity")
        order = _dig(payload, "payload", "order", "entity")
        gateway_order_id = payment.get("order_id") or order.get("id")
        gateway_payment_id = payment.get("id")

        hold = self._locate_hold(gateway_order_id, payment, order)
        if hold is None:
            logger.warning(
                "webhook_unknown_hold",
                event_name=event,
                gateway_order_id=gateway_order_id,
            )
            return WebhookOutcome.IGNORED

        try:
            self._holds.finalize(hold.local_order_id, HoldStatus.PAID, gateway_payment_id)
        except ExpiredHold:
            logger.warning(
                "webhook_payment_after_expiry",
                local_order_id=hold.local_order_id,
                gateway_payment_id=gateway_payment_id,
            )
            return WebhookOutcome.LATE
        except HoldAlreadyFinalized as exc:
            logger.info(
                "webhook_duplicate",
                local_order_id=hold.local_order_id,
                status=exc.status,
            )
            return WebhookOutcome.DUPLICATE

        logger.info(
            "webhook_processed",
            event_name=event,
            local_order_id=hold.local_order_id,
            gateway_payment_id=gateway_payment_id,
        )
        return WebhookOutcome.PROCESSED

    def _locate_hold(
        self,
        gateway_order_id: str | None,
        payment: dict[str, Any],
        order: dict[str, Any],
    ) -> HoldRecord | None:
        if gateway_order_id:
            hold = self._holds.find_by_gateway_order(gateway_order_id)
            if hold is not None:
                return hold

        notes = payment.get("notes") or order.get("notes") or {}
        local_order_id = notes.get("local_order_id") if isinstance(notes, dict) else None
        if not local_order_id:
            return None
        try:
            return self._holds.get_hold(local_order_id)
        except HoldNotFound:
            return None


def _dig(payload: dict[str, Any], *keys: str) -> dict[str, Any]:
    node: Any = payload
    for key in keys:
        if not isinstance(node, dict):
            return {}
        node = node.get(key)
    return node if isinstance(node, dict) else {}
