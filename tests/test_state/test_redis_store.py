"""Tests for the Redis document store; server-backed tests skip when Redis is unreachable."""

import asyncio
from typing import AsyncGenerator
from uuid import uuid4

import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, WatchError

from campus_rentals.errors import PersistenceError, TransactionConflictError
from campus_rentals.state import RedisDocumentStore
from campus_rentals.state.manager import RedisSubscription, _translate_errors
from campus_rentals.state.store import Transaction


@pytest_asyncio.fixture
async def redis_store() -> AsyncGenerator[RedisDocumentStore, None]:
    """Create a Redis store under a throwaway key prefix."""
    store = RedisDocumentStore(key_prefix=f"test-{uuid4().hex[:8]}")
    await store.connect()
    try:
        await store.redis_client.ping()
    except (RedisError, OSError):
        await store.disconnect()
        pytest.skip("Redis server not available")
    yield store
    await store.clear()
    await store.disconnect()


@pytest.mark.asyncio
async def test_round_trip(redis_store: RedisDocumentStore) -> None:
    await redis_store.put_document("things", "a", {"status": "pending"})

    assert await redis_store.get_document("things", "a") == {"id": "a", "status": "pending"}
    assert len(await redis_store.query_documents("things", where={"status": "pending"})) == 1

    await redis_store.delete_document("things", "a")
    assert await redis_store.get_document("things", "a") is None
    assert await redis_store.query_documents("things") == []


@pytest.mark.asyncio
async def test_watched_key_change_conflicts(redis_store: RedisDocumentStore) -> None:
    await redis_store.put_document("counters", "c", {"value": 0})

    async def body(tx: Transaction) -> None:
        current = await tx.get("counters", "c")
        await redis_store.put_document("counters", "c", {"value": 10})
        tx.set("counters", "c", {"value": current["value"] + 1})

    with pytest.raises(TransactionConflictError):
        await redis_store.run_transaction(body)

    assert (await redis_store.get_document("counters", "c"))["value"] == 10


@pytest.mark.asyncio
async def test_subscription_sees_commits(redis_store: RedisDocumentStore) -> None:
    snapshots: list[int] = []
    changed = asyncio.Event()

    async def callback(documents: list[dict]) -> None:
        snapshots.append(len(documents))
        if documents:
            changed.set()

    subscription = await redis_store.subscribe("things", callback)

    async def body(tx: Transaction) -> None:
        tx.set("things", "a", {"value": 1})

    await redis_store.run_transaction(body)
    await asyncio.wait_for(changed.wait(), timeout=5)
    await subscription.cancel()

    assert snapshots[0] == 0
    assert snapshots[-1] == 1


@pytest.mark.asyncio
async def test_redis_failures_surface_as_persistence_errors() -> None:
    with pytest.raises(PersistenceError) as exc_info:
        async with _translate_errors("get"):
            raise RedisConnectionError("connection refused")

    assert exc_info.value.details["operation"] == "get"
    assert isinstance(exc_info.value.__cause__, RedisConnectionError)


@pytest.mark.asyncio
async def test_watch_errors_pass_through_untranslated() -> None:
    with pytest.raises(WatchError):
        async with _translate_errors("transaction"):
            raise WatchError("watched key changed")


class BrokenPubSub:
    """Pub/sub whose connection drops on the first read."""

    async def listen(self):
        raise RedisConnectionError("connection lost")
        yield


@pytest.mark.asyncio
async def test_listener_failure_stops_subscription() -> None:
    async def callback(documents: list[dict]) -> None:
        pass

    subscription = RedisSubscription(RedisDocumentStore(key_prefix="unused"), "things", callback)
    subscription.pubsub = BrokenPubSub()

    await subscription._listen()

    assert subscription.active is False
