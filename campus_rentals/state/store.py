"""Document store contract used by the workflow engines."""

import copy
from abc import ABC, abstractmethod
from collections.abc import Collection
from datetime import datetime
from typing import Any, Awaitable, Callable, TypeVar
from uuid import uuid4

from campus_rentals.errors import NotFoundError
from campus_rentals.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Document = dict[str, Any]
SnapshotCallback = Callable[[list[Document]], Awaitable[None]]


def matches(
    document: Document,
    where: dict[str, Any] | None = None,
    within: dict[str, Collection[Any]] | None = None,
) -> bool:
    """Equality and in-set filters on top-level fields."""
    for field, expected in (where or {}).items():
        if document.get(field) != expected:
            return False
    for field, allowed in (within or {}).items():
        if document.get(field) not in allowed:
            return False
    return True


class Transaction(ABC):
    """
    Optimistic unit of work.

    Reads go through `get`, which records what was read so the store can
    verify nothing changed before commit. Writes are buffered and applied
    all together, or not at all.
    """

    def __init__(self) -> None:
        self.writes: dict[tuple[str, str], Document | None] = {}

    @abstractmethod
    async def _read(self, collection: str, doc_id: str) -> Document | None:
        """Read a document and register it in the read set."""

    async def get(self, collection: str, doc_id: str) -> Document | None:
        """Read a document, seeing this transaction's own pending writes."""
        key = (collection, doc_id)
        if key in self.writes:
            return copy.deepcopy(self.writes[key])
        return await self._read(collection, doc_id)

    def set(self, collection: str, doc_id: str, data: Document) -> None:
        """Replace a document."""
        document = copy.deepcopy(data)
        document["id"] = doc_id
        self.writes[(collection, doc_id)] = document

    async def update(self, collection: str, doc_id: str, fields: Document) -> Document:
        """Merge top-level fields into an existing document."""
        current = await self.get(collection, doc_id)
        if current is None:
            raise NotFoundError(collection, doc_id)
        current.update(fields)
        self.set(collection, doc_id, current)
        return current

    def create(self, collection: str, data: Document) -> str:
        """Create a document under a new id and return the id."""
        doc_id = data.get("id") or uuid4().hex
        self.set(collection, doc_id, data)
        return doc_id

    def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document."""
        self.writes[(collection, doc_id)] = None

    @property
    def has_writes(self) -> bool:
        return bool(self.writes)

    @property
    def touched_collections(self) -> "set[str]":
        # Quoted: `set` in this class body is the write method above
        return {collection for collection, _ in self.writes}


class Subscription(ABC):
    """Live snapshot feed for one collection and filter."""

    def __init__(
        self,
        store: "DocumentStore",
        collection: str,
        callback: SnapshotCallback,
        where: dict[str, Any] | None = None,
        within: dict[str, Collection[Any]] | None = None,
    ):
        self.store = store
        self.collection = collection
        self.callback = callback
        self.where = where
        self.within = within
        self.active = True

    async def deliver(self) -> None:
        """Push the current matching snapshot to the callback."""
        if not self.active:
            return
        documents = await self.store.query_documents(
            self.collection, where=self.where, within=self.within
        )
        try:
            await self.callback(documents)
        except Exception as e:
            logger.error(
                "subscription_callback_error",
                collection=self.collection,
                error=str(e),
            )

    @abstractmethod
    async def cancel(self) -> None:
        """Stop receiving snapshots."""


class DocumentStore(ABC):
    """Persistent document storage with queries, transactions and live feeds."""

    @abstractmethod
    async def get_document(self, collection: str, doc_id: str) -> Document | None:
        """Fetch one document, or None if it does not exist."""

    @abstractmethod
    async def query_documents(
        self,
        collection: str,
        where: dict[str, Any] | None = None,
        within: dict[str, Collection[Any]] | None = None,
    ) -> list[Document]:
        """Fetch every document in a collection matching the filters."""

    @abstractmethod
    async def put_document(self, collection: str, doc_id: str, data: Document) -> None:
        """Write a document outside a transaction (uncontended fields only)."""

    @abstractmethod
    async def delete_document(self, collection: str, doc_id: str) -> None:
        """Delete a document outside a transaction."""

    @abstractmethod
    async def run_transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        """
        Run `fn` inside an optimistic transaction.

        Raises:
            TransactionConflictError: a document read by `fn` changed before commit
            PersistenceError: the store could not be reached or rejected the write
        """

    @abstractmethod
    async def subscribe(
        self,
        collection: str,
        callback: SnapshotCallback,
        where: dict[str, Any] | None = None,
        within: dict[str, Collection[Any]] | None = None,
    ) -> Subscription:
        """Deliver the matching snapshot now and again after every change."""

    @abstractmethod
    async def server_timestamp(self) -> datetime:
        """Store clock used for createdAt/approvedAt ordering."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every document owned by this store."""

    async def connect(self) -> None:
        """Open connections, if the backend has any."""

    async def disconnect(self) -> None:
        """Close connections, if the backend has any."""
