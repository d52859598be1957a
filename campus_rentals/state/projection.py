"""Read-only live projections of store collections for presentation."""

from collections.abc import Collection
from typing import Any, Awaitable, Callable, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from campus_rentals.state.store import Document, DocumentStore, Subscription
from campus_rentals.utils.logging import get_logger

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class LiveProjection(Generic[ModelT]):
    """
    In-memory mirror of the records matching a filter.

    The projection may lag behind the store. Workflow engines never read
    from it; every commit decision re-reads the store inside a transaction.
    """

    def __init__(
        self,
        store: DocumentStore,
        collection: str,
        model: type[ModelT],
        where: dict[str, Any] | None = None,
        within: dict[str, Collection[Any]] | None = None,
        on_change: Callable[[list[ModelT]], Awaitable[None]] | None = None,
    ):
        self.store = store
        self.collection = collection
        self.model = model
        self.where = where
        self.within = within
        self.on_change = on_change
        self.records: dict[str, ModelT] = {}
        self._subscription: Subscription | None = None

    async def start(self) -> None:
        """Subscribe and load the initial snapshot."""
        if self._subscription is None:
            self._subscription = await self.store.subscribe(
                self.collection,
                self._apply_snapshot,
                where=self.where,
                within=self.within,
            )

    async def stop(self) -> None:
        """Cancel the subscription; the last snapshot stays readable."""
        if self._subscription is not None:
            await self._subscription.cancel()
            self._subscription = None

    async def _apply_snapshot(self, documents: list[Document]) -> None:
        records: dict[str, ModelT] = {}
        for document in documents:
            try:
                record = self.model(**document)
            except ValidationError as e:
                logger.warning(
                    "projection_record_skipped",
                    collection=self.collection,
                    doc_id=document.get("id"),
                    error=str(e),
                )
                continue
            records[document["id"]] = record
        self.records = records

        if self.on_change:
            await self.on_change(self.values())

    def get(self, record_id: str) -> ModelT | None:
        return self.records.get(record_id)

    def values(self) -> list[ModelT]:
        """Records newest first when they carry a creation time."""
        return sorted(
            self.records.values(),
            key=lambda record: getattr(record, "created_at", None) or 0,
            reverse=True,
        )

    def __len__(self) -> int:
        return len(self.records)
