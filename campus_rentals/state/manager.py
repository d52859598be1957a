"""Redis-backed document store shared by every approver session."""

import asyncio
import json
from collections.abc import Collection
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar

import redis.asyncio as redis
from redis.exceptions import RedisError, WatchError

from campus_rentals.config import get_settings
from campus_rentals.errors import PersistenceError, TransactionConflictError
from campus_rentals.state.store import (
    Document,
    DocumentStore,
    SnapshotCallback,
    Subscription,
    Transaction,
    matches,
)
from campus_rentals.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@asynccontextmanager
async def _translate_errors(operation: str) -> AsyncIterator[None]:
    """Surface Redis infrastructure failures as PersistenceError."""
    try:
        yield
    except WatchError:
        raise
    except RedisError as e:
        logger.error("redis_operation_failed", operation=operation, error=str(e))
        raise PersistenceError(f"Store {operation} failed: {e}", operation=operation) from e


class RedisTransaction(Transaction):
    """Transaction that WATCHes every key it reads."""

    def __init__(self, store: "RedisDocumentStore", pipe: Any):
        super().__init__()
        self.store = store
        self.pipe = pipe

    async def _read(self, collection: str, doc_id: str) -> Document | None:
        key = self.store._document_key(collection, doc_id)
        # While watching, pipeline commands execute immediately
        await self.pipe.watch(key)
        raw = await self.pipe.get(key)
        return self.store._decode(raw)


class RedisSubscription(Subscription):
    """Subscription fed by the collection's pub/sub change channel."""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.pubsub: Any = None
        self.task: asyncio.Task | None = None

    async def _listen(self) -> None:
        try:
            async for message in self.pubsub.listen():
                if not self.active:
                    break
                if message.get("type") == "message":
                    await self.deliver()
        except (RedisError, PersistenceError) as e:
            self.active = False
            logger.error(
                "subscription_listener_failed",
                collection=self.collection,
                error=str(e),
            )

    async def cancel(self) -> None:
        self.active = False
        if self.task:
            self.task.cancel()
            try:
                await self.task
            except asyncio.CancelledError:
                pass
            self.task = None
        if self.pubsub is not None:
            await self.pubsub.unsubscribe()
            await self.pubsub.aclose()
            self.pubsub = None
        if self in self.store._subscriptions:
            self.store._subscriptions.remove(self)


class RedisDocumentStore(DocumentStore):
    """
    Document store on Redis.

    Documents are JSON strings under `{prefix}:{collection}:{id}`, each
    collection keeps an id index set, and every commit publishes on the
    collection's change channel.
    """

    def __init__(self, redis_url: str | None = None, key_prefix: str | None = None) -> None:
        settings = get_settings()
        self.redis_client: redis.Redis | None = None
        self.redis_url = redis_url or settings.redis_url
        self.key_prefix = key_prefix or settings.key_prefix
        self._subscriptions: list[RedisSubscription] = []

    async def connect(self) -> None:
        """Establish Redis connection."""
        if self.redis_client is None:
            self.redis_client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            logger.info("redis_connected", url=self.redis_url)

    async def disconnect(self) -> None:
        """Close Redis connection."""
        for subscription in list(self._subscriptions):
            await subscription.cancel()
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None
            logger.info("redis_disconnected")

    async def _client(self) -> redis.Redis:
        if not self.redis_client:
            await self.connect()
        return self.redis_client

    def _document_key(self, collection: str, doc_id: str) -> str:
        return f"{self.key_prefix}:{collection}:{doc_id}"

    def _index_key(self, collection: str) -> str:
        return f"{self.key_prefix}:{collection}:__ids__"

    def _channel(self, collection: str) -> str:
        return f"{self.key_prefix}:{collection}:__changes__"

    @staticmethod
    def _decode(raw: str | None) -> Document | None:
        if raw is None:
            return None
        return json.loads(raw)

    async def get_document(self, collection: str, doc_id: str) -> Document | None:
        client = await self._client()
        async with _translate_errors("get"):
            raw = await client.get(self._document_key(collection, doc_id))
        return self._decode(raw)

    async def query_documents(
        self,
        collection: str,
        where: dict[str, Any] | None = None,
        within: dict[str, Collection[Any]] | None = None,
    ) -> list[Document]:
        client = await self._client()
        async with _translate_errors("query"):
            doc_ids = sorted(await client.smembers(self._index_key(collection)))
            if not doc_ids:
                return []
            raws = await client.mget([self._document_key(collection, doc_id) for doc_id in doc_ids])

        documents = []
        for raw in raws:
            document = self._decode(raw)
            if document is not None and matches(document, where, within):
                documents.append(document)
        return documents

    async def put_document(self, collection: str, doc_id: str, data: Document) -> None:
        client = await self._client()
        document = dict(data)
        document["id"] = doc_id
        async with _translate_errors("put"):
            async with client.pipeline(transaction=True) as pipe:
                pipe.set(self._document_key(collection, doc_id), json.dumps(document))
                pipe.sadd(self._index_key(collection), doc_id)
                await pipe.execute()
        await self._publish_changes({collection})

    async def delete_document(self, collection: str, doc_id: str) -> None:
        client = await self._client()
        async with _translate_errors("delete"):
            async with client.pipeline(transaction=True) as pipe:
                pipe.delete(self._document_key(collection, doc_id))
                pipe.srem(self._index_key(collection), doc_id)
                await pipe.execute()
        await self._publish_changes({collection})

    async def run_transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        client = await self._client()
        async with _translate_errors("transaction"):
            async with client.pipeline(transaction=True) as pipe:
                tx = RedisTransaction(self, pipe)
                result = await fn(tx)

                if not tx.has_writes:
                    await pipe.reset()
                    return result

                pipe.multi()
                for (collection, doc_id), data in tx.writes.items():
                    key = self._document_key(collection, doc_id)
                    if data is None:
                        pipe.delete(key)
                        pipe.srem(self._index_key(collection), doc_id)
                    else:
                        pipe.set(key, json.dumps(data))
                        pipe.sadd(self._index_key(collection), doc_id)

                try:
                    await pipe.execute()
                except WatchError as e:
                    logger.debug("transaction_conflict", collections=sorted(tx.touched_collections))
                    raise TransactionConflictError() from e

        await self._publish_changes(tx.touched_collections)
        return result

    async def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        where: dict[str, Any] | None = None,
        within: dict[str, Collection[Any]] | None = None,
    ) -> Subscription:
        client = await self._client()
        subscription = RedisSubscription(self, collection, callback, where, within)
        async with _translate_errors("subscribe"):
            subscription.pubsub = client.pubsub()
            await subscription.pubsub.subscribe(self._channel(collection))
        self._subscriptions.append(subscription)

        await subscription.deliver()
        subscription.task = asyncio.create_task(subscription._listen())
        return subscription

    async def server_timestamp(self) -> datetime:
        client = await self._client()
        async with _translate_errors("time"):
            seconds, microseconds = await client.time()
        return datetime.fromtimestamp(seconds + microseconds / 1_000_000, tz=timezone.utc)

    async def clear(self) -> None:
        client = await self._client()
        async with _translate_errors("clear"):
            keys = [key async for key in client.scan_iter(match=f"{self.key_prefix}:*")]
            if keys:
                await client.delete(*keys)
        logger.info("store_cleared", prefix=self.key_prefix, keys=len(keys))

    async def _publish_changes(self, collections: set[str]) -> None:
        """Notify subscribers; a failed publish never undoes a commit."""
        client = await self._client()
        for collection in collections:
            try:
                await client.publish(self._channel(collection), "changed")
            except RedisError as e:
                logger.warning("change_publish_failed", collection=collection, error=str(e))
            else:
                logger.debug("message_published", channel=self._channel(collection))
