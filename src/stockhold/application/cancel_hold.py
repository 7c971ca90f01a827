"""Application service: Cancel Hold use case.

Releases the hold's reserved stock. A second cancel (or a cancel that
loses to a payment or expiry) raises HoldAlreadyFinalized and releases
nothing.
"""

from __future__ import annotations

from stockhold.domain.service.hold_manager import HoldManager


class CancelHoldHandler:

    def __init__(self, hold_manager: HoldManager) -> None:
        self._hold_manager = hold_manager

    def handle(self, local_order_id: str) -> str:
        hold = self._hold_manager.cancel_hold(local_order_id)
        return hold.status.value
