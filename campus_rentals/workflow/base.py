"""Base engine with shared store access, retry and event plumbing."""

import asyncio
import time
from typing import Awaitable, Callable, TypeVar

from pydantic import BaseModel

from campus_rentals.config import Settings, get_settings
from campus_rentals.errors import NotFoundError, TransactionConflictError, WorkflowError
from campus_rentals.events import EventPublisher, WorkflowEvent
from campus_rentals.models.catalog import CatalogItem
from campus_rentals.models.common import LineItem
from campus_rentals.state.store import DocumentStore, Transaction
from campus_rentals.utils.logging import WorkflowLogger

T = TypeVar("T")
ModelT = TypeVar("ModelT", bound=BaseModel)

# Collection names
CATALOG = "catalog"
REQUESTS = "requests"
HOLDINGS = "holdings"
RETURNS = "return_requests"


async def load_record(
    tx: Transaction,
    collection: str,
    record_id: str,
    model: type[ModelT],
) -> ModelT:
    """Read a record inside a transaction or raise NotFoundError."""
    data = await tx.get(collection, record_id)
    if data is None:
        raise NotFoundError(collection, record_id)
    return model(**data)


async def load_catalog_items(
    tx: Transaction,
    line_items: list[LineItem],
) -> dict[str, CatalogItem]:
    """Read every catalog item a set of lines refers to."""
    items: dict[str, CatalogItem] = {}
    for line in line_items:
        if line.catalog_item_id not in items:
            items[line.catalog_item_id] = await load_record(
                tx, CATALOG, line.catalog_item_id, CatalogItem
            )
    return items


class BaseEngine:
    """Common wiring for every workflow engine."""

    component = "workflow"

    def __init__(
        self,
        store: DocumentStore,
        publisher: EventPublisher | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.publisher = publisher or EventPublisher()
        self.settings = settings or get_settings()
        self.logger = WorkflowLogger(self.component)

    async def run_atomic(
        self,
        action: str,
        record_id: str,
        fn: Callable[[Transaction], Awaitable[T]],
    ) -> T:
        """
        Run a read-validate-write unit, retrying on concurrent modification.

        Every retry re-reads and re-validates from the store, so a retried
        approval either commits against fresh state or fails with a business
        error. Business errors are never retried.

        Args:
            action: Name of the operation, for logs
            record_id: Primary record being transitioned
            fn: Transaction body

        Returns:
            Whatever `fn` returned on the committed attempt
        """
        max_attempts = self.settings.max_transaction_retries + 1
        retry_delay = self.settings.retry_delay
        start_time = time.time()

        for attempt in range(max_attempts):
            try:
                result = await self.store.run_transaction(fn)
            except TransactionConflictError as e:
                if attempt == max_attempts - 1:
                    self.logger.log_error(action, record_id, e.message, attempts=max_attempts)
                    raise

                # Exponential backoff
                wait_time = retry_delay * (2**attempt)
                self.logger.log_retry(
                    action,
                    record_id,
                    attempt=attempt + 1,
                    max_attempts=max_attempts,
                    wait_seconds=wait_time,
                )
                await asyncio.sleep(wait_time)
            except WorkflowError as e:
                self.logger.log_error(action, record_id, e.message, code=e.code)
                raise
            else:
                self.logger.logger.debug(
                    "transaction_committed",
                    action=action,
                    record_id=record_id,
                    attempts=attempt + 1,
                    duration_ms=(time.time() - start_time) * 1000,
                )
                return result

        raise TransactionConflictError(record_id=record_id)

    async def emit(self, event: WorkflowEvent) -> None:
        """Publish an event for a committed transition."""
        await self.publisher.publish(event)
