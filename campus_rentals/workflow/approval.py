"""Approval engine: the atomic decide-and-reserve transaction."""

from campus_rentals.errors import InsufficientStockError, InvalidStateError
from campus_rentals.events import WorkflowEvent, WorkflowEventType
from campus_rentals.models.catalog import CatalogItem
from campus_rentals.models.common import merge_line_items
from campus_rentals.models.holding import HoldingRecord, holding_id_for
from campus_rentals.models.requests import RequestKind, RequestRecord, RequestStatus
from campus_rentals.state.store import Transaction
from campus_rentals.state.workflow import OrderTransitions, can_transition
from campus_rentals.workflow.base import (
    CATALOG,
    HOLDINGS,
    REQUESTS,
    BaseEngine,
    load_catalog_items,
    load_record,
)


def approved_status_for(kind: RequestKind) -> RequestStatus:
    """Rent requests become approved; orders go straight into preparation."""
    if kind == RequestKind.ORDER:
        return RequestStatus.PREPARING
    return RequestStatus.APPROVED


def check_stock(request: RequestRecord, items: dict[str, CatalogItem]) -> None:
    """Validate every line before anything is mutated."""
    for line in merge_line_items(request.line_items):
        item = items[line.catalog_item_id]
        if line.quantity > item.available_quantity:
            raise InsufficientStockError(
                item.name,
                item.available_quantity,
                line.quantity,
                catalog_item_id=item.id,
            )


class ApprovalEngine(BaseEngine):
    """
    Approve or reject pending rent requests and food orders.

    Approval reads the request, its catalog items and the holder's holding,
    checks availability for every line, and then in the same transaction
    reserves stock, marks the request and merges the holding. Either all of
    those writes commit or none do.
    """

    component = "approval"

    async def approve_request(self, request_id: str, approver_id: str) -> RequestRecord:
        """
        Approve a pending request.

        Args:
            request_id: Request or order to approve
            approver_id: Who is approving

        Returns:
            The request as committed

        Raises:
            NotFoundError: request or a referenced catalog item is missing
            InvalidStateError: request is no longer pending
            InsufficientStockError: some line exceeds available stock
            TransactionConflictError: retries exhausted
        """
        now = await self.store.server_timestamp()

        async def apply(tx: Transaction) -> RequestRecord:
            request = await load_record(tx, REQUESTS, request_id, RequestRecord)
            target = approved_status_for(request.kind)
            if not can_transition(request.kind, request.status, target):
                raise InvalidStateError(request_id, request.status.value, target.value)

            items = await load_catalog_items(tx, request.line_items)

            holding = None
            if request.kind == RequestKind.RENT:
                holding_data = await tx.get(HOLDINGS, holding_id_for(request.requester_id))
                if holding_data is not None:
                    holding = HoldingRecord(**holding_data)
                else:
                    holding = HoldingRecord.for_holder(
                        request.requester_id, request.requester_display_name
                    )
                    holding.created_at = now

            check_stock(request, items)

            # Reserve
            for line in merge_line_items(request.line_items):
                item = items[line.catalog_item_id]
                item.reserved += line.quantity
                item.updated_at = now
                tx.set(CATALOG, item.id, item.model_dump(mode="json"))

            request.status = target
            request.approved_by = approver_id
            request.approved_at = now
            request.updated_at = now
            tx.set(REQUESTS, request.id, request.model_dump(mode="json"))

            if holding is not None:
                holding.add_items(request.line_items)
                holding.updated_at = now
                tx.set(HOLDINGS, holding.id, holding.model_dump(mode="json"))

            return request

        request = await self.run_atomic("approve_request", request_id, apply)

        self.logger.log_transition(
            "approve_request",
            request_id,
            approver_id,
            kind=request.kind.value,
            status=request.status.value,
        )
        await self.emit(
            WorkflowEvent(
                type=(
                    WorkflowEventType.ORDER_STATUS_CHANGED
                    if request.kind == RequestKind.ORDER
                    else WorkflowEventType.REQUEST_APPROVED
                ),
                record_id=request_id,
                actor_id=approver_id,
                recipient_id=request.requester_id,
                payload={"kind": request.kind.value, "status": request.status.value},
            )
        )
        return request

    async def reject_request(
        self,
        request_id: str,
        approver_id: str,
        reason: str | None = None,
        item_unavailable: bool = False,
    ) -> RequestRecord:
        """
        Reject a request.

        A pending request never reserved anything, so rejecting it leaves the
        catalog untouched. An order rejected while preparing gives its
        reserved units back.
        """
        now = await self.store.server_timestamp()

        async def apply(tx: Transaction) -> RequestRecord:
            request = await load_record(tx, REQUESTS, request_id, RequestRecord)
            if not can_transition(request.kind, request.status, RequestStatus.REJECTED):
                raise InvalidStateError(
                    request_id, request.status.value, RequestStatus.REJECTED.value
                )

            if request.kind == RequestKind.ORDER and request.status in OrderTransitions.RESERVING:
                items = await load_catalog_items(tx, request.line_items)
                for line in merge_line_items(request.line_items):
                    item = items[line.catalog_item_id]
                    item.reserved = max(item.reserved - line.quantity, 0)
                    item.updated_at = now
                    tx.set(CATALOG, item.id, item.model_dump(mode="json"))

            request.status = RequestStatus.REJECTED
            request.rejected_by = approver_id
            request.rejected_at = now
            request.rejection_reason = reason
            request.item_unavailable = item_unavailable
            request.updated_at = now
            tx.set(REQUESTS, request.id, request.model_dump(mode="json"))
            return request

        request = await self.run_atomic("reject_request", request_id, apply)

        self.logger.log_transition(
            "reject_request",
            request_id,
            approver_id,
            kind=request.kind.value,
            item_unavailable=item_unavailable,
        )
        await self.emit(
            WorkflowEvent(
                type=(
                    WorkflowEventType.ORDER_STATUS_CHANGED
                    if request.kind == RequestKind.ORDER
                    else WorkflowEventType.REQUEST_REJECTED
                ),
                record_id=request_id,
                actor_id=approver_id,
                recipient_id=request.requester_id,
                payload={
                    "kind": request.kind.value,
                    "status": request.status.value,
                    "reason": reason,
                    "item_unavailable": item_unavailable,
                },
            )
        )
        return request
