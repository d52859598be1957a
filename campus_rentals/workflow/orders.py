"""Vendor-side order lifecycle."""

from campus_rentals.errors import InvalidRequestError, InvalidStateError, NotFoundError
from campus_rentals.events import WorkflowEvent, WorkflowEventType
from campus_rentals.models.requests import RequestKind, RequestRecord, RequestStatus
from campus_rentals.state.store import Transaction
from campus_rentals.state.workflow import OrderTransitions
from campus_rentals.workflow.approval import ApprovalEngine
from campus_rentals.workflow.base import REQUESTS, load_record


class OrderWorkflow(ApprovalEngine):
    """
    Move canteen orders through preparing, out for delivery and delivered.

    Entering preparing is the approval step and reserves stock; leaving it
    for rejected releases the reservation. The later steps only change the
    status.
    """

    component = "orders"

    async def advance_order(
        self,
        order_id: str,
        actor_id: str,
        target: RequestStatus,
    ) -> RequestRecord:
        """Move an order to `target` if its transition table allows it."""
        if target == RequestStatus.PREPARING:
            await self._require_order(order_id)
            return await self.approve_request(order_id, actor_id)
        if target == RequestStatus.REJECTED:
            return await self.reject_order(order_id, actor_id)

        now = await self.store.server_timestamp()

        async def apply(tx: Transaction) -> RequestRecord:
            order = await load_record(tx, REQUESTS, order_id, RequestRecord)
            if order.kind != RequestKind.ORDER:
                raise InvalidRequestError(f"{order_id} is not an order", record_id=order_id)
            if not OrderTransitions.can_transition(order.status, target):
                raise InvalidStateError(order_id, order.status.value, target.value)

            order.status = target
            order.updated_at = now
            if target == RequestStatus.DELIVERED:
                order.delivered_at = now
            tx.set(REQUESTS, order.id, order.model_dump(mode="json"))
            return order

        order = await self.run_atomic("advance_order", order_id, apply)

        self.logger.log_transition("advance_order", order_id, actor_id, status=target.value)
        await self.emit(
            WorkflowEvent(
                type=WorkflowEventType.ORDER_STATUS_CHANGED,
                record_id=order_id,
                actor_id=actor_id,
                recipient_id=order.requester_id,
                payload={"kind": order.kind.value, "status": order.status.value},
            )
        )
        return order

    async def reject_order(
        self,
        order_id: str,
        actor_id: str,
        item_unavailable: bool = False,
        reason: str | None = None,
    ) -> RequestRecord:
        """Reject a pending or preparing order."""
        await self._require_order(order_id)
        if item_unavailable and reason is None:
            reason = "Item unavailable"
        return await self.reject_request(
            order_id, actor_id, reason=reason, item_unavailable=item_unavailable
        )

    async def _require_order(self, order_id: str) -> RequestRecord:
        data = await self.store.get_document(REQUESTS, order_id)
        if data is None:
            raise NotFoundError(REQUESTS, order_id)
        order = RequestRecord(**data)
        if order.kind != RequestKind.ORDER:
            raise InvalidRequestError(f"{order_id} is not an order", record_id=order_id)
        return order
