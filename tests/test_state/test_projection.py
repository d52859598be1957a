"""Tests for live projections and transition tables."""

import pytest

from conftest import line
from campus_rentals.models import Actor, CatalogItem, RequestKind, RequestRecord, RequestStatus
from campus_rentals.state import InMemoryDocumentStore, LiveProjection
from campus_rentals.state.workflow import OrderTransitions, RentTransitions, can_transition
from campus_rentals.workflow import REQUESTS, ApprovalEngine, RequestLedger


@pytest.mark.asyncio
async def test_projection_follows_pending_queue(
    store: InMemoryDocumentStore,
    ledger: RequestLedger,
    approvals: ApprovalEngine,
    student: Actor,
    bat: CatalogItem,
) -> None:
    changes: list[int] = []

    async def on_change(records: list[RequestRecord]) -> None:
        changes.append(len(records))

    projection = LiveProjection(
        store,
        REQUESTS,
        RequestRecord,
        where={"status": RequestStatus.PENDING.value},
        on_change=on_change,
    )
    await projection.start()
    assert len(projection) == 0

    request = await ledger.submit_rent_request(student, [line(bat, 1)])
    assert projection.get(request.id) is not None

    await approvals.approve_request(request.id, "coach-1")
    assert projection.get(request.id) is None

    await projection.stop()
    await ledger.submit_rent_request(student, [line(bat, 1)])

    assert len(projection) == 0
    assert changes == [0, 1, 0]


@pytest.mark.asyncio
async def test_projection_skips_malformed_records(store: InMemoryDocumentStore) -> None:
    await store.put_document(REQUESTS, "broken", {"kind": "rent", "status": "pending"})

    projection = LiveProjection(store, REQUESTS, RequestRecord)
    await projection.start()

    assert len(projection) == 0
    await projection.stop()


def test_rent_transitions() -> None:
    assert RentTransitions.can_transition(RequestStatus.PENDING, RequestStatus.APPROVED)
    assert RentTransitions.can_transition(RequestStatus.PENDING, RequestStatus.REJECTED)
    assert not RentTransitions.can_transition(RequestStatus.APPROVED, RequestStatus.REJECTED)
    assert not can_transition(RequestKind.RENT, RequestStatus.PENDING, RequestStatus.PREPARING)


def test_order_transitions() -> None:
    assert OrderTransitions.can_transition(RequestStatus.PENDING, RequestStatus.PREPARING)
    assert OrderTransitions.can_transition(RequestStatus.PREPARING, RequestStatus.REJECTED)
    assert not OrderTransitions.can_transition(RequestStatus.OUT_FOR_DELIVERY, RequestStatus.REJECTED)
    assert not OrderTransitions.can_transition(RequestStatus.COMPLETED, RequestStatus.DELIVERED)
    assert not can_transition(RequestKind.ORDER, RequestStatus.PENDING, RequestStatus.APPROVED)
