"""Application service: Show Hold use case (query)."""

from __future__ import annotations

from stockhold.application.dto import HoldDTO, HoldLineDTO
from stockhold.domain.model.hold import HoldRecord, HoldStatus
from stockhold.domain.service.hold_manager import HoldManager, HoldStatusView


class ShowHoldHandler:

    def __init__(self, hold_manager: HoldManager) -> None:
        self._hold_manager = hold_manager

    def status(self, local_order_id: str) -> HoldStatusView:
        return self._hold_manager.get_status(local_order_id)

    def handle(self, local_order_id: str) -> HoldDTO:
        # status() first so a lapsed hold is reported as expired
        self._hold_manager.get_status(local_order_id)
        return self._to_dto(self._hold_manager.get_hold(local_order_id))

    def list(self, status: HoldStatus | None = None) -> list[HoldDTO]:
        return [self._to_dto(h) for h in self._hold_manager.list_holds(status)]

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _to_dto(hold: HoldRecord) -> HoldDTO:
        return HoldDTO(
            local_order_id=hold.local_order_id,
            status=hold.status.value,
            created_at=hold.created_at.strftime("%Y-%m-%d %H:%M:%S UTC"),
            expires_at=hold.expires_at.strftime("%Y-%m-%d %H:%M:%S UTC"),
            total=str(hold.total),
            lines=[
                HoldLineDTO(
                    product_id=line.product_id,
                    product_name=line.product_name,
                    quantity=line.quantity.value,
                    unit_price=str(line.unit_price),
                    line_total=str(line.line_total),
                )
                for line in hold.lines
            ],
            gateway_order_id=hold.gateway_order_id,
            gateway_payment_id=hold.gateway_payment_id,
        )
