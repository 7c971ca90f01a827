"""Razorpay Orders API client implementing PaymentGateway."""

from __future__ import annotations

from collections.abc import Mapping

import httpx
import structlog

from stockhold.domain.exceptions import GatewayError, GatewayUnavailable
from stockhold.domain.gateway.payment_gateway import PaymentGateway
from stockhold.domain.model.value_objects import Money

logger = structlog.get_logger(__name__)

DEFAULT_API_URL = "https://api.razorpay.com/v1"


class RazorpayGateway(PaymentGateway):

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=api_url,
            auth=(key_id, key_secret),
            timeout=timeout,
            transport=transport,
        )

    def create_order(
        self,
        amount: Money,
        receipt: str,
        notes: Mapping[str, str],
    ) -> str:
        body = {
            "amount": amount.minor_units,
            "currency": amount.currency,
            "receipt": receipt,
            "notes": dict(notes),
        }
        try:
            response = self._client.post("/orders", json=body)
        except httpx.TransportError as exc:
            raise GatewayUnavailable(f"Razorpay unreachable: {exc}") from exc

        if response.status_code == 429 or response.status_code >= 500:
            raise GatewayUnavailable(
                f"Razorpay returned {response.status_code} for order creation"
            )
        if response.is_error:
            raise GatewayError(
                f"Razorpay rejected order creation ({response.status_code}): "
                f"{self._error_description(response)}"
            )

        order_id = self._json(response).get("id")
        if not order_id:
            raise GatewayError("Razorpay response did not include an order id")
        logger.debug("razorpay_order_created", gateway_order_id=order_id, receipt=receipt)
        return order_id

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    @classmethod
    def _error_description(cls, response: httpx.Response) -> str:
        error = cls._json(response).get("error")
        if isinstance(error, dict) and error.get("description"):
            return str(error["description"])
        return response.text[:200]
