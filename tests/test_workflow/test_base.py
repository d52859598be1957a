"""Tests for the shared transaction retry loop."""

import pytest

from campus_rentals.config import Settings
from campus_rentals.errors import InvalidRequestError, TransactionConflictError
from campus_rentals.state import InMemoryDocumentStore
from campus_rentals.state.store import Transaction
from campus_rentals.workflow.base import BaseEngine


@pytest.fixture
def engine(store: InMemoryDocumentStore, settings: Settings) -> BaseEngine:
    return BaseEngine(store, settings=settings)


@pytest.mark.asyncio
async def test_conflict_is_retried_against_fresh_state(
    store: InMemoryDocumentStore, engine: BaseEngine
) -> None:
    await store.put_document("counters", "c", {"value": 0})
    seen: list[int] = []

    async def increment(tx: Transaction) -> int:
        current = await tx.get("counters", "c")
        seen.append(current["value"])
        if len(seen) == 1:
            # Another writer commits between our read and our commit
            await store.put_document("counters", "c", {"value": 10})
        tx.set("counters", "c", {"value": current["value"] + 1})
        return current["value"] + 1

    result = await engine.run_atomic("increment", "c", increment)

    assert seen == [0, 10]
    assert result == 11
    assert (await store.get_document("counters", "c"))["value"] == 11


@pytest.mark.asyncio
async def test_retry_budget_runs_out(store: InMemoryDocumentStore, settings: Settings) -> None:
    engine = BaseEngine(store, settings=settings.model_copy(update={"max_transaction_retries": 2}))
    calls = 0

    async def always_conflicts(tx: Transaction) -> None:
        nonlocal calls
        calls += 1
        raise TransactionConflictError(record_id="c")

    with pytest.raises(TransactionConflictError):
        await engine.run_atomic("increment", "c", always_conflicts)

    # One first attempt plus two retries
    assert calls == 3


@pytest.mark.asyncio
async def test_zero_retries_means_one_attempt(
    store: InMemoryDocumentStore, settings: Settings
) -> None:
    engine = BaseEngine(store, settings=settings.model_copy(update={"max_transaction_retries": 0}))
    calls = 0

    async def always_conflicts(tx: Transaction) -> None:
        nonlocal calls
        calls += 1
        raise TransactionConflictError(record_id="c")

    with pytest.raises(TransactionConflictError):
        await engine.run_atomic("increment", "c", always_conflicts)

    assert calls == 1


@pytest.mark.asyncio
async def test_business_errors_are_not_retried(engine: BaseEngine) -> None:
    calls = 0

    async def invalid(tx: Transaction) -> None:
        nonlocal calls
        calls += 1
        raise InvalidRequestError("Empty request")

    with pytest.raises(InvalidRequestError):
        await engine.run_atomic("submit", "r1", invalid)

    assert calls == 1
