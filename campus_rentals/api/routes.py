"""API routes for rentals, orders, returns and the catalog."""

from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from campus_rentals.api.dependencies import (
    get_actor,
    get_approvals,
    get_catalog,
    get_ledger,
    get_orders,
    get_returns,
    require_catalog_manager,
    require_sports_admin,
    require_vendor,
)
from campus_rentals.config import get_settings
from campus_rentals.errors import PermissionDeniedError
from campus_rentals.models import (
    Actor,
    CatalogItem,
    HoldingRecord,
    LineItem,
    RequestKind,
    RequestRecord,
    RequestStatus,
    ReturnRequestRecord,
)
from campus_rentals.workflow import (
    ApprovalEngine,
    CatalogService,
    OrderWorkflow,
    RequestLedger,
    ReturnEngine,
    SalesReport,
    kitchen_summary,
    sales_report,
    status_counts,
)
from campus_rentals.workflow.reports import ReportWindow

router = APIRouter()


# Request/Response Models


class LineItemInput(BaseModel):
    """One requested item; names and prices are filled in from the catalog."""

    catalog_item_id: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    name: str = ""

    def to_line_item(self) -> LineItem:
        return LineItem(
            catalog_item_id=self.catalog_item_id,
            name=self.name or self.catalog_item_id,
            quantity=self.quantity,
        )


class SubmitRequestBody(BaseModel):
    line_items: list[LineItemInput]


class PlaceOrderBody(BaseModel):
    shop_id: str
    line_items: list[LineItemInput]


class RejectBody(BaseModel):
    reason: str | None = None
    item_unavailable: bool = False


class AdvanceOrderBody(BaseModel):
    status: RequestStatus


class CreateItemBody(BaseModel):
    name: str
    owner_group: str
    total_stock: int = Field(ge=0)
    unit_price: Decimal | None = Field(default=None, ge=0)
    item_id: str | None = None


class UpdateStockBody(BaseModel):
    total_stock: int = Field(ge=0)


class SetActiveBody(BaseModel):
    active: bool


class KitchenSummaryResponse(BaseModel):
    shop_id: str
    items: dict[str, int]
    status_counts: dict[str, int]


def _line_items(items: list[LineItemInput]) -> list[LineItem]:
    return [item.to_line_item() for item in items]


# Catalog


@router.get("/catalog", response_model=list[CatalogItem])
async def list_catalog(
    owner_group: str | None = None,
    catalog: CatalogService = Depends(get_catalog),
) -> list[CatalogItem]:
    """List catalog items, optionally for one shop or sport."""
    return await catalog.list_items(owner_group)


@router.get("/catalog/{item_id}/availability")
async def item_availability(
    item_id: str,
    catalog: CatalogService = Depends(get_catalog),
) -> dict[str, Any]:
    return await catalog.get_availability(item_id)


@router.post("/catalog", response_model=CatalogItem, status_code=status.HTTP_201_CREATED)
async def create_catalog_item(
    body: CreateItemBody,
    actor: Actor = Depends(get_actor),
    catalog: CatalogService = Depends(get_catalog),
) -> CatalogItem:
    require_catalog_manager(actor, body.owner_group)
    return await catalog.add_item(
        actor.id,
        name=body.name,
        owner_group=body.owner_group,
        total_stock=body.total_stock,
        unit_price=body.unit_price,
        item_id=body.item_id,
    )


@router.put("/catalog/{item_id}/stock", response_model=CatalogItem)
async def update_stock(
    item_id: str,
    body: UpdateStockBody,
    actor: Actor = Depends(get_actor),
    catalog: CatalogService = Depends(get_catalog),
) -> CatalogItem:
    item = await catalog.get_item(item_id)
    require_catalog_manager(actor, item.owner_group)
    return await catalog.set_total_stock(item_id, actor.id, body.total_stock)


@router.put("/catalog/{item_id}/active", response_model=CatalogItem)
async def set_item_active(
    item_id: str,
    body: SetActiveBody,
    actor: Actor = Depends(get_actor),
    catalog: CatalogService = Depends(get_catalog),
) -> CatalogItem:
    item = await catalog.get_item(item_id)
    require_catalog_manager(actor, item.owner_group)
    return await catalog.set_item_active(item_id, actor.id, body.active)


# Rent requests


@router.post("/requests", response_model=RequestRecord, status_code=status.HTTP_201_CREATED)
async def submit_rent_request(
    body: SubmitRequestBody,
    actor: Actor = Depends(get_actor),
    ledger: RequestLedger = Depends(get_ledger),
) -> RequestRecord:
    """Submit a rent request; nothing is reserved until it is approved."""
    return await ledger.submit_rent_request(actor, _line_items(body.line_items))


@router.get("/requests/mine", response_model=list[RequestRecord])
async def my_requests(
    actor: Actor = Depends(get_actor),
    ledger: RequestLedger = Depends(get_ledger),
) -> list[RequestRecord]:
    return await ledger.list_for_requester(actor.id)


@router.get("/requests/pending", response_model=list[RequestRecord])
async def pending_requests(
    actor: Actor = Depends(get_actor),
    ledger: RequestLedger = Depends(get_ledger),
) -> list[RequestRecord]:
    require_sports_admin(actor)
    return await ledger.list_pending(RequestKind.RENT)


async def _require_rent_request(ledger: RequestLedger, request_id: str, actor: Actor) -> None:
    """Orders only move through their shop's vendor routes."""
    request = await ledger.get_request(request_id)
    if request.kind != RequestKind.RENT:
        raise PermissionDeniedError(
            f"{request_id} is an order; use the vendor order routes",
            actor_id=actor.id,
            request_id=request_id,
        )


@router.post("/requests/{request_id}/approve", response_model=RequestRecord)
async def approve_request(
    request_id: str,
    actor: Actor = Depends(get_actor),
    ledger: RequestLedger = Depends(get_ledger),
    approvals: ApprovalEngine = Depends(get_approvals),
) -> RequestRecord:
    """Approve a rent request, reserving stock and updating the holding."""
    require_sports_admin(actor)
    await _require_rent_request(ledger, request_id, actor)
    return await approvals.approve_request(request_id, actor.id)


@router.post("/requests/{request_id}/reject", response_model=RequestRecord)
async def reject_request(
    request_id: str,
    body: RejectBody = RejectBody(),
    actor: Actor = Depends(get_actor),
    ledger: RequestLedger = Depends(get_ledger),
    approvals: ApprovalEngine = Depends(get_approvals),
) -> RequestRecord:
    require_sports_admin(actor)
    await _require_rent_request(ledger, request_id, actor)
    return await approvals.reject_request(request_id, actor.id, reason=body.reason)


# Holdings and returns


@router.get("/holdings/mine", response_model=HoldingRecord | None)
async def my_holding(
    actor: Actor = Depends(get_actor),
    ledger: RequestLedger = Depends(get_ledger),
) -> HoldingRecord | None:
    return await ledger.get_holding(actor.id)


@router.post("/returns", response_model=ReturnRequestRecord, status_code=status.HTTP_201_CREATED)
async def request_return(
    body: SubmitRequestBody,
    actor: Actor = Depends(get_actor),
    ledger: RequestLedger = Depends(get_ledger),
) -> ReturnRequestRecord:
    return await ledger.request_return(actor, _line_items(body.line_items))


@router.post("/returns/all", response_model=ReturnRequestRecord, status_code=status.HTTP_201_CREATED)
async def request_return_all(
    actor: Actor = Depends(get_actor),
    ledger: RequestLedger = Depends(get_ledger),
) -> ReturnRequestRecord:
    """Return everything currently held in one request."""
    return await ledger.request_return_all(actor)


@router.get("/returns/pending", response_model=list[ReturnRequestRecord])
async def pending_returns(
    actor: Actor = Depends(get_actor),
    ledger: RequestLedger = Depends(get_ledger),
) -> list[ReturnRequestRecord]:
    require_sports_admin(actor)
    return await ledger.list_pending_returns()


@router.post("/returns/{return_id}/approve", response_model=ReturnRequestRecord)
async def approve_return(
    return_id: str,
    actor: Actor = Depends(get_actor),
    returns: ReturnEngine = Depends(get_returns),
) -> ReturnRequestRecord:
    require_sports_admin(actor)
    return await returns.approve_return(return_id, actor.id)


@router.post("/returns/{return_id}/reject", response_model=ReturnRequestRecord)
async def reject_return(
    return_id: str,
    body: RejectBody = RejectBody(),
    actor: Actor = Depends(get_actor),
    returns: ReturnEngine = Depends(get_returns),
) -> ReturnRequestRecord:
    require_sports_admin(actor)
    return await returns.reject_return(return_id, actor.id, reason=body.reason)


# Canteen orders


@router.post("/orders", response_model=RequestRecord, status_code=status.HTTP_201_CREATED)
async def place_order(
    body: PlaceOrderBody,
    actor: Actor = Depends(get_actor),
    ledger: RequestLedger = Depends(get_ledger),
) -> RequestRecord:
    return await ledger.place_order(actor, body.shop_id, _line_items(body.line_items))


@router.get("/shops/{shop_id}/orders", response_model=list[RequestRecord])
async def shop_orders(
    shop_id: str,
    statuses: list[RequestStatus] | None = Query(default=None, alias="status"),
    actor: Actor = Depends(get_actor),
    ledger: RequestLedger = Depends(get_ledger),
) -> list[RequestRecord]:
    require_vendor(actor, shop_id)
    return await ledger.list_shop_orders(shop_id, statuses)


@router.post("/orders/{order_id}/status", response_model=RequestRecord)
async def advance_order(
    order_id: str,
    body: AdvanceOrderBody,
    actor: Actor = Depends(get_actor),
    ledger: RequestLedger = Depends(get_ledger),
    orders: OrderWorkflow = Depends(get_orders),
) -> RequestRecord:
    """Move an order along preparing, out for delivery and delivered."""
    order = await ledger.get_request(order_id)
    require_vendor(actor, order.owner_group)
    return await orders.advance_order(order_id, actor.id, body.status)


@router.post("/orders/{order_id}/reject", response_model=RequestRecord)
async def reject_order(
    order_id: str,
    body: RejectBody = RejectBody(),
    actor: Actor = Depends(get_actor),
    ledger: RequestLedger = Depends(get_ledger),
    orders: OrderWorkflow = Depends(get_orders),
) -> RequestRecord:
    order = await ledger.get_request(order_id)
    require_vendor(actor, order.owner_group)
    return await orders.reject_order(
        order_id, actor.id, item_unavailable=body.item_unavailable, reason=body.reason
    )


# Vendor dashboards


@router.get("/shops/{shop_id}/kitchen", response_model=KitchenSummaryResponse)
async def shop_kitchen(
    shop_id: str,
    actor: Actor = Depends(get_actor),
    ledger: RequestLedger = Depends(get_ledger),
) -> KitchenSummaryResponse:
    require_vendor(actor, shop_id)
    orders = await ledger.list_shop_orders(shop_id)
    return KitchenSummaryResponse(
        shop_id=shop_id,
        items=kitchen_summary(orders),
        status_counts=status_counts(orders),
    )


@router.get("/shops/{shop_id}/report", response_model=SalesReport)
async def shop_report(
    shop_id: str,
    window: ReportWindow | None = None,
    actor: Actor = Depends(get_actor),
    ledger: RequestLedger = Depends(get_ledger),
) -> SalesReport:
    """Sales over today, the last week or the last month."""
    require_vendor(actor, shop_id)
    orders = await ledger.list_shop_orders(shop_id)
    return sales_report(orders, window or get_settings().default_report_window)


@router.get("/me")
async def whoami(actor: Actor = Depends(get_actor)) -> dict[str, Any]:
    return {
        "id": actor.id,
        "name": actor.name,
        "is_sports_admin": actor.is_sports_admin,
        "vendor_shops": sorted(actor.vendor_shops),
    }
