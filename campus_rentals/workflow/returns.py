"""Return engine: giving held items back to the catalog."""

from campus_rentals.errors import InvalidRequestError, InvalidStateError
from campus_rentals.events import WorkflowEvent, WorkflowEventType
from campus_rentals.models.common import merge_line_items
from campus_rentals.models.holding import HoldingRecord
from campus_rentals.models.requests import ReturnRequestRecord, ReturnStatus
from campus_rentals.state.store import Transaction
from campus_rentals.state.workflow import ReturnTransitions
from campus_rentals.workflow.base import (
    CATALOG,
    HOLDINGS,
    RETURNS,
    BaseEngine,
    load_catalog_items,
    load_record,
)


class ReturnEngine(BaseEngine):
    """Approve or reject pending return requests."""

    component = "returns"

    async def approve_return(self, return_request_id: str, approver_id: str) -> ReturnRequestRecord:
        """
        Approve a return: release reserved units and shrink the holding.

        The holding is re-checked inside the transaction, since other returns
        may have been approved since this one was filed. A holding that ends
        up empty is deleted.
        """
        now = await self.store.server_timestamp()

        async def apply(tx: Transaction) -> ReturnRequestRecord:
            return_request = await load_record(tx, RETURNS, return_request_id, ReturnRequestRecord)
            if not ReturnTransitions.can_transition(return_request.status, ReturnStatus.APPROVED):
                raise InvalidStateError(
                    return_request_id, return_request.status.value, ReturnStatus.APPROVED.value
                )

            holding = await load_record(
                tx, HOLDINGS, return_request.holding_record_id, HoldingRecord
            )
            if holding.holder_id != return_request.holder_id:
                raise InvalidRequestError(
                    "Return does not belong to the holding's holder",
                    record_id=return_request_id,
                    holding_id=holding.id,
                )

            lines = merge_line_items(return_request.line_items)
            holding.check_can_remove(lines)
            items = await load_catalog_items(tx, lines)

            for line in lines:
                item = items[line.catalog_item_id]
                item.reserved = max(item.reserved - line.quantity, 0)
                item.updated_at = now
                tx.set(CATALOG, item.id, item.model_dump(mode="json"))

            holding.remove_items(lines)
            if holding.is_empty:
                tx.delete(HOLDINGS, holding.id)
            else:
                holding.updated_at = now
                tx.set(HOLDINGS, holding.id, holding.model_dump(mode="json"))

            return_request.status = ReturnStatus.APPROVED
            return_request.approved_by = approver_id
            return_request.approved_at = now
            return_request.updated_at = now
            tx.set(RETURNS, return_request.id, return_request.model_dump(mode="json"))
            return return_request

        return_request = await self.run_atomic("approve_return", return_request_id, apply)

        self.logger.log_transition("approve_return", return_request_id, approver_id)
        await self.emit(
            WorkflowEvent(
                type=WorkflowEventType.RETURN_APPROVED,
                record_id=return_request_id,
                actor_id=approver_id,
                recipient_id=return_request.holder_id,
            )
        )
        return return_request

    async def reject_return(
        self,
        return_request_id: str,
        approver_id: str,
        reason: str | None = None,
    ) -> ReturnRequestRecord:
        """Reject a return; the holding and catalog are unchanged."""
        now = await self.store.server_timestamp()

        async def apply(tx: Transaction) -> ReturnRequestRecord:
            return_request = await load_record(tx, RETURNS, return_request_id, ReturnRequestRecord)
            if not ReturnTransitions.can_transition(return_request.status, ReturnStatus.REJECTED):
                raise InvalidStateError(
                    return_request_id, return_request.status.value, ReturnStatus.REJECTED.value
                )
            return_request.status = ReturnStatus.REJECTED
            return_request.rejected_by = approver_id
            return_request.rejected_at = now
            return_request.rejection_reason = reason
            return_request.updated_at = now
            tx.set(RETURNS, return_request.id, return_request.model_dump(mode="json"))
            return return_request

        return_request = await self.run_atomic("reject_return", return_request_id, apply)

        self.logger.log_transition("reject_return", return_request_id, approver_id)
        await self.emit(
            WorkflowEvent(
                type=WorkflowEventType.RETURN_REJECTED,
                record_id=return_request_id,
                actor_id=approver_id,
                recipient_id=return_request.holder_id,
                payload={"reason": reason},
            )
        )
        return return_request
