"""Abstract port onto the external payment gateway."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping

from stockhold.domain.model.value_objects import Money


class PaymentGateway(ABC):

    @abstractmethod
    def create_order(
        self,
        amount: Money,
        receipt: str,
        notes: Mapping[str, str],
    ) -> str:
        """Create a payable remote order and return its gateway order ID.

        Raises GatewayUnavailable for transient failures (network errors,
        5xx, rate limiting) and GatewayError when the gateway rejects the
        request outright.
        """
