"""Request ledger: submitting and listing rent requests, orders and returns."""

from campus_rentals.errors import InsufficientStockError, InvalidRequestError, NotFoundError
from campus_rentals.events import WorkflowEvent, WorkflowEventType
from campus_rentals.models.catalog import CatalogItem
from campus_rentals.models.common import LineItem, merge_line_items
from campus_rentals.models.holding import HoldingRecord, holding_id_for
from campus_rentals.models.identity import Actor
from campus_rentals.models.requests import (
    RequestKind,
    RequestRecord,
    RequestStatus,
    ReturnRequestRecord,
    ReturnStatus,
)
from campus_rentals.workflow.base import CATALOG, HOLDINGS, REQUESTS, RETURNS, BaseEngine


class RequestLedger(BaseEngine):
    """
    Requester-side entry points.

    Creating a request never reserves stock: reservation happens when an
    approver accepts it, so pending requests give no backpressure.
    """

    component = "ledger"

    async def _resolve_line_items(
        self,
        line_items: list[LineItem],
        shop_id: str | None = None,
    ) -> list[LineItem]:
        """Merge duplicates and take names and prices from the catalog."""
        if not line_items:
            raise InvalidRequestError("A request needs at least one item")

        resolved = []
        for line in merge_line_items(line_items):
            data = await self.store.get_document(CATALOG, line.catalog_item_id)
            if data is None:
                raise NotFoundError(CATALOG, line.catalog_item_id)
            item = CatalogItem(**data)

            if shop_id is not None and item.owner_group != shop_id:
                raise InvalidRequestError(
                    f"{item.name} is not sold by {shop_id}",
                    catalog_item_id=item.id,
                    shop_id=shop_id,
                )
            if item.is_permanently_unavailable:
                raise InsufficientStockError(item.name, 0, line.quantity, catalog_item_id=item.id)
            # A request larger than the whole stock can never be approved
            if line.quantity > item.total_stock:
                raise InsufficientStockError(
                    item.name, item.total_stock, line.quantity, catalog_item_id=item.id
                )

            resolved.append(
                LineItem(
                    catalog_item_id=item.id,
                    name=item.name,
                    quantity=line.quantity,
                    unit_price=item.unit_price if shop_id is not None else None,
                )
            )
        return resolved

    async def submit_rent_request(self, actor: Actor, line_items: list[LineItem]) -> RequestRecord:
        """File a rent request for sports equipment."""
        items = await self._resolve_line_items(line_items)
        request = RequestRecord(
            kind=RequestKind.RENT,
            requester_id=actor.id,
            requester_display_name=actor.name,
            line_items=items,
            created_at=await self.store.server_timestamp(),
        )
        await self.store.put_document(REQUESTS, request.id, request.model_dump(mode="json"))

        self.logger.log_transition(
            "submit_rent_request", request.id, actor.id, items=len(items)
        )
        await self.emit(
            WorkflowEvent(
                type=WorkflowEventType.REQUEST_SUBMITTED,
                record_id=request.id,
                actor_id=actor.id,
                payload={"kind": request.kind.value, "quantity": request.total_quantity},
            )
        )
        return request

    async def place_order(self, actor: Actor, shop_id: str, line_items: list[LineItem]) -> RequestRecord:
        """Place a canteen order with one shop, priced from its menu."""
        items = await self._resolve_line_items(line_items, shop_id=shop_id)
        order = RequestRecord(
            kind=RequestKind.ORDER,
            requester_id=actor.id,
            requester_display_name=actor.name,
            owner_group=shop_id,
            line_items=items,
            created_at=await self.store.server_timestamp(),
        )
        await self.store.put_document(REQUESTS, order.id, order.model_dump(mode="json"))

        self.logger.log_transition(
            "place_order", order.id, actor.id, shop_id=shop_id, total=str(order.total)
        )
        await self.emit(
            WorkflowEvent(
                type=WorkflowEventType.ORDER_PLACED,
                record_id=order.id,
                actor_id=actor.id,
                payload={"shop_id": shop_id, "total": str(order.total)},
            )
        )
        return order

    async def get_request(self, request_id: str) -> RequestRecord:
        data = await self.store.get_document(REQUESTS, request_id)
        if data is None:
            raise NotFoundError(REQUESTS, request_id)
        return RequestRecord(**data)

    async def get_return(self, return_request_id: str) -> ReturnRequestRecord:
        data = await self.store.get_document(RETURNS, return_request_id)
        if data is None:
            raise NotFoundError(RETURNS, return_request_id)
        return ReturnRequestRecord(**data)

    async def get_holding(self, holder_id: str) -> HoldingRecord | None:
        """What a holder currently has checked out, or None."""
        data = await self.store.get_document(HOLDINGS, holding_id_for(holder_id))
        return HoldingRecord(**data) if data is not None else None

    async def request_return(self, actor: Actor, line_items: list[LineItem]) -> ReturnRequestRecord:
        """
        Ask to give back part of a holding.

        Quantities are checked against the holding now for fast feedback
        and again when the return is approved.
        """
        if not line_items:
            raise InvalidRequestError("A return needs at least one item")

        holding = await self.get_holding(actor.id)
        if holding is None:
            raise NotFoundError(HOLDINGS, holding_id_for(actor.id))

        held_names = {item.catalog_item_id: item.name for item in holding.line_items}
        items = [
            LineItem(
                catalog_item_id=line.catalog_item_id,
                name=held_names.get(line.catalog_item_id, line.name),
                quantity=line.quantity,
            )
            for line in merge_line_items(line_items)
        ]
        holding.check_can_remove(items)

        return await self._file_return(actor, holding, items)

    async def request_return_all(self, actor: Actor) -> ReturnRequestRecord:
        """Ask to give back everything currently held."""
        holding = await self.get_holding(actor.id)
        if holding is None or holding.is_empty:
            raise NotFoundError(HOLDINGS, holding_id_for(actor.id))
        return await self._file_return(actor, holding, [item.model_copy() for item in holding.line_items])

    async def _file_return(
        self,
        actor: Actor,
        holding: HoldingRecord,
        items: list[LineItem],
    ) -> ReturnRequestRecord:
        return_request = ReturnRequestRecord(
            holder_id=actor.id,
            holder_display_name=actor.name,
            holding_record_id=holding.id,
            line_items=items,
            created_at=await self.store.server_timestamp(),
        )
        await self.store.put_document(
            RETURNS, return_request.id, return_request.model_dump(mode="json")
        )

        self.logger.log_transition(
            "request_return", return_request.id, actor.id, holding_id=holding.id
        )
        await self.emit(
            WorkflowEvent(
                type=WorkflowEventType.RETURN_REQUESTED,
                record_id=return_request.id,
                actor_id=actor.id,
                payload={"holding_id": holding.id},
            )
        )
        return return_request

    # Listings for approver and requester screens

    async def list_pending(self, kind: RequestKind | None = None) -> list[RequestRecord]:
        """Pending rent requests and/or orders, newest first."""
        where: dict[str, str] = {"status": RequestStatus.PENDING.value}
        if kind is not None:
            where["kind"] = kind.value
        return await self._query_requests(where)

    async def list_for_requester(self, requester_id: str) -> list[RequestRecord]:
        return await self._query_requests({"requester_id": requester_id})

    async def list_shop_orders(
        self,
        shop_id: str,
        statuses: list[RequestStatus] | None = None,
    ) -> list[RequestRecord]:
        """Orders for one shop, optionally restricted to some statuses."""
        within = {"status": [status.value for status in statuses]} if statuses else None
        return await self._query_requests(
            {"kind": RequestKind.ORDER.value, "owner_group": shop_id}, within=within
        )

    async def list_pending_returns(self) -> list[ReturnRequestRecord]:
        documents = await self.store.query_documents(
            RETURNS, where={"status": ReturnStatus.PENDING.value}
        )
        returns = [ReturnRequestRecord(**document) for document in documents]
        return sorted(returns, key=lambda record: record.created_at, reverse=True)

    async def list_returns_for_holder(self, holder_id: str) -> list[ReturnRequestRecord]:
        documents = await self.store.query_documents(RETURNS, where={"holder_id": holder_id})
        returns = [ReturnRequestRecord(**document) for document in documents]
        return sorted(returns, key=lambda record: record.created_at, reverse=True)

    async def _query_requests(
        self,
        where: dict[str, str],
        within: dict[str, list[str]] | None = None,
    ) -> list[RequestRecord]:
        documents = await self.store.query_documents(REQUESTS, where=where, within=within)
        requests = [RequestRecord(**document) for document in documents]
        return sorted(requests, key=lambda record: record.created_at, reverse=True)
