"""Tests for the approval transaction."""

import asyncio

import pytest

from conftest import line, put_item, read_item
from campus_rentals.errors import InsufficientStockError, InvalidStateError, NotFoundError
from campus_rentals.events import WorkflowEventType
from campus_rentals.models import Actor, CatalogItem, RequestStatus
from campus_rentals.state import InMemoryDocumentStore
from campus_rentals.workflow import ApprovalEngine, RequestLedger


@pytest.mark.asyncio
async def test_approve_reserves_stock_and_creates_holding(
    store: InMemoryDocumentStore,
    ledger: RequestLedger,
    approvals: ApprovalEngine,
    student: Actor,
    bat: CatalogItem,
) -> None:
    """Approving 5 bats with 2 already reserved leaves 7 reserved and a new holding."""
    request = await ledger.submit_rent_request(student, [line(bat, 5)])

    approved = await approvals.approve_request(request.id, "coach-1")

    assert approved.status == RequestStatus.APPROVED
    assert approved.approved_by == "coach-1"
    assert approved.approved_at is not None
    assert (await read_item(store, bat.id)).reserved == 7

    holding = await ledger.get_holding(student.id)
    assert holding is not None
    assert holding.quantity_of(bat.id) == 5


@pytest.mark.asyncio
async def test_second_request_exceeding_available_is_refused(
    store: InMemoryDocumentStore,
    ledger: RequestLedger,
    approvals: ApprovalEngine,
    student: Actor,
    other_student: Actor,
    bat: CatalogItem,
) -> None:
    first = await ledger.submit_rent_request(student, [line(bat, 5)])
    second = await ledger.submit_rent_request(other_student, [line(bat, 4)])
    await approvals.approve_request(first.id, "coach-1")

    with pytest.raises(InsufficientStockError) as exc_info:
        await approvals.approve_request(second.id, "coach-1")

    assert exc_info.value.available == 3
    assert exc_info.value.requested == 4
    assert 'Insufficient stock for "Cricket Bat"' in exc_info.value.message

    assert (await read_item(store, bat.id)).reserved == 7
    assert (await ledger.get_request(second.id)).status == RequestStatus.PENDING
    assert await ledger.get_holding(other_student.id) is None


@pytest.mark.asyncio
async def test_approval_merges_into_existing_holding(
    ledger: RequestLedger,
    approvals: ApprovalEngine,
    student: Actor,
    bat: CatalogItem,
    ball: CatalogItem,
) -> None:
    first = await ledger.submit_rent_request(student, [line(bat, 1)])
    second = await ledger.submit_rent_request(student, [line(bat, 2), line(ball, 3)])

    await approvals.approve_request(first.id, "coach-1")
    await approvals.approve_request(second.id, "coach-1")

    holding = await ledger.get_holding(student.id)
    assert holding.quantity_of(bat.id) == 3
    assert holding.quantity_of(ball.id) == 3
    assert len(holding.line_items) == 2


@pytest.mark.asyncio
async def test_one_short_line_blocks_the_whole_request(
    store: InMemoryDocumentStore,
    ledger: RequestLedger,
    approvals: ApprovalEngine,
    student: Actor,
    bat: CatalogItem,
) -> None:
    """No partial approval: nothing is reserved if any line is short."""
    scarce = await put_item(
        store, id="pads-1", name="Batting Pads", owner_group="cricket", total_stock=2, reserved=1
    )
    request = await ledger.submit_rent_request(student, [line(bat, 1), line(scarce, 2)])

    with pytest.raises(InsufficientStockError):
        await approvals.approve_request(request.id, "coach-1")

    assert (await read_item(store, bat.id)).reserved == 2
    assert (await read_item(store, scarce.id)).reserved == 1
    assert await ledger.get_holding(student.id) is None


@pytest.mark.asyncio
async def test_concurrent_approvals_never_oversell(
    store: InMemoryDocumentStore,
    ledger: RequestLedger,
    approvals: ApprovalEngine,
    student: Actor,
    other_student: Actor,
) -> None:
    """Two approvals racing for the last unit: exactly one wins."""
    last = await put_item(
        store, id="racket-1", name="Badminton Racket", owner_group="badminton", total_stock=1
    )
    first = await ledger.submit_rent_request(student, [line(last, 1)])
    second = await ledger.submit_rent_request(other_student, [line(last, 1)])

    results = await asyncio.gather(
        approvals.approve_request(first.id, "coach-1"),
        approvals.approve_request(second.id, "coach-2"),
        return_exceptions=True,
    )

    successes = [result for result in results if not isinstance(result, Exception)]
    failures = [result for result in results if isinstance(result, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], InsufficientStockError)
    assert (await read_item(store, last.id)).reserved == 1


@pytest.mark.asyncio
async def test_terminal_requests_are_immutable(
    store: InMemoryDocumentStore,
    ledger: RequestLedger,
    approvals: ApprovalEngine,
    student: Actor,
    bat: CatalogItem,
) -> None:
    approved = await ledger.submit_rent_request(student, [line(bat, 1)])
    rejected = await ledger.submit_rent_request(student, [line(bat, 1)])
    await approvals.approve_request(approved.id, "coach-1")
    await approvals.reject_request(rejected.id, "coach-1", reason="Out of season")

    for request_id in (approved.id, rejected.id):
        with pytest.raises(InvalidStateError):
            await approvals.approve_request(request_id, "coach-2")
        with pytest.raises(InvalidStateError):
            await approvals.reject_request(request_id, "coach-2")

    assert (await read_item(store, bat.id)).reserved == 3
    holding = await ledger.get_holding(student.id)
    assert holding.quantity_of(bat.id) == 1


@pytest.mark.asyncio
async def test_rejection_has_no_inventory_effect(
    store: InMemoryDocumentStore,
    ledger: RequestLedger,
    approvals: ApprovalEngine,
    student: Actor,
    bat: CatalogItem,
) -> None:
    request = await ledger.submit_rent_request(student, [line(bat, 4)])

    rejected = await approvals.reject_request(request.id, "coach-1", reason="Damaged stock")

    assert rejected.status == RequestStatus.REJECTED
    assert rejected.rejected_by == "coach-1"
    assert rejected.rejection_reason == "Damaged stock"
    assert (await read_item(store, bat.id)).reserved == 2
    assert await ledger.get_holding(student.id) is None


@pytest.mark.asyncio
async def test_approve_missing_request(approvals: ApprovalEngine) -> None:
    with pytest.raises(NotFoundError):
        await approvals.approve_request("does-not-exist", "coach-1")


@pytest.mark.asyncio
async def test_deactivated_item_cannot_be_approved(
    store: InMemoryDocumentStore,
    ledger: RequestLedger,
    approvals: ApprovalEngine,
    student: Actor,
    bat: CatalogItem,
) -> None:
    request = await ledger.submit_rent_request(student, [line(bat, 1)])
    item = await read_item(store, bat.id)
    item.active = False
    await store.put_document("catalog", item.id, item.model_dump(mode="json"))

    with pytest.raises(InsufficientStockError) as exc_info:
        await approvals.approve_request(request.id, "coach-1")

    assert exc_info.value.available == 0


@pytest.mark.asyncio
async def test_approval_publishes_event_to_requester(
    ledger: RequestLedger,
    approvals: ApprovalEngine,
    student: Actor,
    bat: CatalogItem,
    published: list,
) -> None:
    request = await ledger.submit_rent_request(student, [line(bat, 1)])
    await approvals.approve_request(request.id, "coach-1")

    event = published[-1]
    assert event.type == WorkflowEventType.REQUEST_APPROVED
    assert event.recipient_id == student.id
    assert event.record_id == request.id
