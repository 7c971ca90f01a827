"""HMAC-SHA256 signatures used by the payment gateway.

Two schemes are in play:
- checkout callbacks sign ``"<gateway_order_id>|<gateway_payment_id>"``
  with the API key secret;
- webhooks sign the raw request body with the webhook secret.
"""

from __future__ import annotations

import hashlib
import hmac


def _hex_hmac(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def payment_signature(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    message = f"{gateway_order_id}|{gateway_payment_id}".encode("utf-8")
    return _hex_hmac(secret, message)


def webhook_signature(secret: str, raw_body: bytes) -> str:
    return _hex_hmac(secret, raw_body)


def signatures_match(expected: str, given: str | None) -> bool:
    """Constant-time comparison; a missing signature never matches."""
    if not given:
        return False
    return hmac.compare_digest(expected.encode("utf-8"), given.strip().encode("utf-8"))
