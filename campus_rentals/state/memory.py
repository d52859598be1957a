"""In-process document store for single-process deployments and tests."""

import asyncio
import copy
from collections import defaultdict
from collections.abc import Collection
from datetime import datetime
from typing import Any, Awaitable, Callable, TypeVar

from campus_rentals.errors import TransactionConflictError
from campus_rentals.models.common import utcnow
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


class MemoryTransaction(Transaction):
    """Transaction that remembers the version of every document it read."""

    def __init__(self, store: "InMemoryDocumentStore"):
        super().__init__()
        self.store = store
        self.read_versions: dict[tuple[str, str], int] = {}

    async def _read(self, collection: str, doc_id: str) -> Document | None:
        # Yield like a network round trip so concurrent transactions interleave
        await asyncio.sleep(0)
        key = (collection, doc_id)
        self.read_versions.setdefault(key, self.store._versions[key])
        return self.store._peek(collection, doc_id)


class MemorySubscription(Subscription):
    """Subscription registered directly on the in-memory store."""

    async def cancel(self) -> None:
        self.active = False
        if self in self.store._subscriptions:
            self.store._subscriptions.remove(self)


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed store with per-document versions and an asyncio lock."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = defaultdict(dict)
        self._versions: dict[tuple[str, str], int] = defaultdict(int)
        self._lock = asyncio.Lock()
        self._subscriptions: list[MemorySubscription] = []

    def _peek(self, collection: str, doc_id: str) -> Document | None:
        document = self._collections[collection].get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    def _apply(self, collection: str, doc_id: str, data: Document | None) -> None:
        if data is None:
            self._collections[collection].pop(doc_id, None)
        else:
            document = copy.deepcopy(data)
            document["id"] = doc_id
            self._collections[collection][doc_id] = document
        self._versions[(collection, doc_id)] += 1

    async def get_document(self, collection: str, doc_id: str) -> Document | None:
        return self._peek(collection, doc_id)

    async def query_documents(
        self,
        collection: str,
        where: dict[str, Any] | None = None,
        within: dict[str, Collection[Any]] | None = None,
    ) -> list[Document]:
        return [
            copy.deepcopy(document)
            for document in self._collections[collection].values()
            if matches(document, where, within)
        ]

    async def put_document(self, collection: str, doc_id: str, data: Document) -> None:
        async with self._lock:
            self._apply(collection, doc_id, data)
        await self._notify({collection})

    async def delete_document(self, collection: str, doc_id: str) -> None:
        async with self._lock:
            self._apply(collection, doc_id, None)
        await self._notify({collection})

    async def run_transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        tx = MemoryTransaction(self)
        result = await fn(tx)

        if not tx.has_writes:
            return result

        async with self._lock:
            for key, version in tx.read_versions.items():
                if self._versions[key] != version:
                    logger.debug("transaction_conflict", collection=key[0], doc_id=key[1])
                    raise TransactionConflictError(collection=key[0], record_id=key[1])

            for (collection, doc_id), data in tx.writes.items():
                self._apply(collection, doc_id, data)

        await self._notify(tx.touched_collections)
        return result

    async def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        where: dict[str, Any] | None = None,
        within: dict[str, Collection[Any]] | None = None,
    ) -> Subscription:
        subscription = MemorySubscription(self, collection, callback, where, within)
        self._subscriptions.append(subscription)
        await subscription.deliver()
        return subscription

    async def server_timestamp(self) -> datetime:
        return utcnow()

    async def clear(self) -> None:
        async with self._lock:
            touched = set(self._collections)
            for collection, documents in self._collections.items():
                for doc_id in documents:
                    self._versions[(collection, doc_id)] += 1
            self._collections.clear()
        await self._notify(touched)

    async def _notify(self, collections: set[str]) -> None:
        for subscription in list(self._subscriptions):
            if subscription.collection in collections:
                await subscription.deliver()
