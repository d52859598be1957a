"""Tests for the canteen order lifecycle."""

from decimal import Decimal

import pytest

from conftest import line, read_item
from campus_rentals.errors import (
    InsufficientStockError,
    InvalidRequestError,
    InvalidStateError,
)
from campus_rentals.events import WorkflowEventType
from campus_rentals.models import Actor, CatalogItem, RequestStatus
from campus_rentals.state import InMemoryDocumentStore
from campus_rentals.workflow import CatalogService, OrderWorkflow, RequestLedger


@pytest.mark.asyncio
async def test_order_is_priced_from_the_menu(
    ledger: RequestLedger,
    student: Actor,
    samosa: CatalogItem,
    chai: CatalogItem,
) -> None:
    order = await ledger.place_order(student, "main-canteen", [line(samosa, 2), line(chai, 1)])

    assert order.status == RequestStatus.PENDING
    assert order.owner_group == "main-canteen"
    assert order.total == Decimal("40.00")


@pytest.mark.asyncio
async def test_order_from_wrong_shop_is_refused(
    ledger: RequestLedger,
    student: Actor,
    samosa: CatalogItem,
) -> None:
    with pytest.raises(InvalidRequestError):
        await ledger.place_order(student, "juice-corner", [line(samosa, 1)])


@pytest.mark.asyncio
async def test_order_full_lifecycle(
    store: InMemoryDocumentStore,
    ledger: RequestLedger,
    orders: OrderWorkflow,
    student: Actor,
    samosa: CatalogItem,
) -> None:
    order = await ledger.place_order(student, "main-canteen", [line(samosa, 3)])

    preparing = await orders.advance_order(order.id, "vendor-1", RequestStatus.PREPARING)
    assert preparing.status == RequestStatus.PREPARING
    assert (await read_item(store, samosa.id)).reserved == 3

    out = await orders.advance_order(order.id, "vendor-1", RequestStatus.OUT_FOR_DELIVERY)
    assert out.status == RequestStatus.OUT_FOR_DELIVERY

    delivered = await orders.advance_order(order.id, "vendor-1", RequestStatus.DELIVERED)
    assert delivered.status == RequestStatus.DELIVERED
    assert delivered.delivered_at is not None
    assert (await read_item(store, samosa.id)).reserved == 3


@pytest.mark.asyncio
async def test_orders_cannot_skip_or_reverse_states(
    ledger: RequestLedger,
    orders: OrderWorkflow,
    student: Actor,
    samosa: CatalogItem,
) -> None:
    order = await ledger.place_order(student, "main-canteen", [line(samosa, 1)])

    with pytest.raises(InvalidStateError):
        await orders.advance_order(order.id, "vendor-1", RequestStatus.DELIVERED)

    await orders.advance_order(order.id, "vendor-1", RequestStatus.PREPARING)
    await orders.advance_order(order.id, "vendor-1", RequestStatus.OUT_FOR_DELIVERY)

    with pytest.raises(InvalidStateError):
        await orders.advance_order(order.id, "vendor-1", RequestStatus.PREPARING)
    with pytest.raises(InvalidStateError):
        await orders.reject_order(order.id, "vendor-1")


@pytest.mark.asyncio
async def test_rejecting_preparing_order_releases_stock(
    store: InMemoryDocumentStore,
    ledger: RequestLedger,
    orders: OrderWorkflow,
    student: Actor,
    samosa: CatalogItem,
) -> None:
    order = await ledger.place_order(student, "main-canteen", [line(samosa, 4)])
    await orders.advance_order(order.id, "vendor-1", RequestStatus.PREPARING)

    rejected = await orders.reject_order(order.id, "vendor-1", reason="Kitchen closed")

    assert rejected.status == RequestStatus.REJECTED
    assert rejected.rejection_reason == "Kitchen closed"
    assert (await read_item(store, samosa.id)).reserved == 0


@pytest.mark.asyncio
async def test_reject_as_unavailable_then_mark_item_inactive(
    store: InMemoryDocumentStore,
    ledger: RequestLedger,
    orders: OrderWorkflow,
    catalog: CatalogService,
    student: Actor,
    samosa: CatalogItem,
    published: list,
) -> None:
    order = await ledger.place_order(student, "main-canteen", [line(samosa, 1)])

    rejected = await orders.reject_order(order.id, "vendor-1", item_unavailable=True)
    await catalog.set_item_active(samosa.id, "vendor-1", False)

    assert rejected.item_unavailable is True
    assert rejected.rejection_reason == "Item unavailable"
    assert (await read_item(store, samosa.id)).reserved == 0
    assert (await catalog.get_availability(samosa.id))["permanently_unavailable"] is True

    status_events = [e for e in published if e.type == WorkflowEventType.ORDER_STATUS_CHANGED]
    assert status_events[-1].payload["item_unavailable"] is True


@pytest.mark.asyncio
async def test_order_approval_checks_stock(
    store: InMemoryDocumentStore,
    ledger: RequestLedger,
    orders: OrderWorkflow,
    student: Actor,
    other_student: Actor,
    samosa: CatalogItem,
) -> None:
    first = await ledger.place_order(student, "main-canteen", [line(samosa, 8)])
    second = await ledger.place_order(other_student, "main-canteen", [line(samosa, 3)])
    await orders.advance_order(first.id, "vendor-1", RequestStatus.PREPARING)

    with pytest.raises(InsufficientStockError) as exc_info:
        await orders.advance_order(second.id, "vendor-1", RequestStatus.PREPARING)

    assert exc_info.value.available == 2
    assert (await read_item(store, samosa.id)).reserved == 8


@pytest.mark.asyncio
async def test_rent_request_is_not_an_order(
    ledger: RequestLedger,
    orders: OrderWorkflow,
    student: Actor,
    bat: CatalogItem,
) -> None:
    request = await ledger.submit_rent_request(student, [line(bat, 1)])

    with pytest.raises(InvalidRequestError):
        await orders.advance_order(request.id, "vendor-1", RequestStatus.OUT_FOR_DELIVERY)
    with pytest.raises(InvalidRequestError):
        await orders.reject_order(request.id, "vendor-1")
