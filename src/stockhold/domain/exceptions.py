"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI and HTTP layers can catch them uniformly and translate them into
user-facing messages or status codes.
"""

from __future__ import annotations

from dataclasses import dataclass


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """A business rule or invariant was violated."""


class InvalidQuantity(ValidationError):
    """A line quantity (or stock level) is not a valid positive integer."""


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""


class ProductNotFound(EntityNotFoundError):

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product not found: '{product_id}'")
        self.product_id = product_id


class HoldNotFound(EntityNotFoundError):

    def __init__(self, local_order_id: str) -> None:
        super().__init__(f"Hold '{local_order_id}' not found")
        self.local_order_id = local_order_id


@dataclass(frozen=True)
class StockShortage:
    """One line of a checkout that could not be reserved."""

    product_id: str
    product_name: str
    requested: int
    available: int


class InsufficientStock(DomainException):
    """Raised when at least one line of a hold cannot be reserved.

    ``shortages`` lists every line known to be short so the caller can tell
    the buyer exactly which items to adjust.
    """

    def __init__(self, shortages: list[StockShortage]) -> None:
        self.shortages = tuple(shortages)
        detail = ", ".join(
            f"{s.product_name} (need {s.requested}, have {s.available} available)"
            for s in self.shortages
        )
        super().__init__(f"Insufficient stock for {detail}")


class HoldAlreadyFinalized(DomainException):
    """The hold has already left the ``active`` state.

    Expected outcome of a finalization race, not a fatal error.
    """

    def __init__(self, local_order_id: str, status: str) -> None:
        super().__init__(f"Hold '{local_order_id}' is already {status}")
        self.local_order_id = local_order_id
        self.status = status


class ExpiredHold(HoldAlreadyFinalized):
    """A payment arrived for a hold whose ``expires_at`` has passed."""

    def __init__(self, local_order_id: str) -> None:
        super().__init__(local_order_id, "expired")


class SignatureVerificationFailed(DomainException):
    """A gateway signature did not match the expected HMAC."""


class GatewayError(DomainException):
    """The payment gateway rejected a request."""


class GatewayUnavailable(GatewayError):
    """Transient gateway failure; the request may be retried."""
