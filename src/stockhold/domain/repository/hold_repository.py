"""Abstract store for HoldRecord aggregates.

Records are never deleted. The only status change allowed is
``transition``, which must be a single guarded update so that racing
finalizers are linearized by the store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from stockhold.domain.model.hold import HoldRecord, HoldStatus


class HoldRepository(ABC):

    @abstractmethod
    def add(self, hold: HoldRecord) -> None:
        """Persist a newly created hold."""

    @abstractmethod
    def get(self, local_order_id: str) -> HoldRecord | None:
        """Return a hold by its local order ID, or None."""

    @abstractmethod
    def get_by_gateway_order_id(self, gateway_order_id: str) -> HoldRecord | None:
        """Return the hold tied to a gateway order, or None."""

    @abstractmethod
    def attach_gateway_order(self, local_order_id: str, gateway_order_id: str) -> bool:
        """Record the gateway order ID if none has been recorded yet."""

    @abstractmethod
    def transition(
        self,
        local_order_id: str,
        to_status: HoldStatus,
        now: datetime,
        require_unexpired: bool = False,
        gateway_payment_id: str | None = None,
    ) -> bool:
        """Move an ``active`` hold to ``to_status``.

        Applies only while the stored status is still ``active`` (and,
        with ``require_unexpired``, while ``expires_at > now``). Returns
        True if this call performed the transition.
        """

    @abstractmethod
    def find_lapsed(self, now: datetime, limit: int) -> list[str]:
        """Return IDs of ``active`` holds whose ``expires_at`` is before ``now``."""

    @abstractmethod
    def list_by_status(self, status: HoldStatus | None = None) -> list[HoldRecord]:
        """Return holds, newest first, optionally filtered by status."""
