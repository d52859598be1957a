"""Error taxonomy for the approval, return and order workflows."""

from typing import Any


class WorkflowError(Exception):
    """Base class for every workflow failure surfaced to callers."""

    code = "workflow_error"
    retryable = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for API responses and notifications."""
        return {"code": self.code, "message": self.message, **self.details}


class NotFoundError(WorkflowError):
    """A referenced request, return, holding or catalog record does not exist."""

    code = "not_found"

    def __init__(self, collection: str, record_id: str):
        super().__init__(
            f"{collection} record {record_id} not found",
            collection=collection,
            record_id=record_id,
        )
        self.collection = collection
        self.record_id = record_id


class InvalidStateError(WorkflowError):
    """The record is not in the state the transition requires."""

    code = "invalid_state"

    def __init__(self, record_id: str, current: str, attempted: str):
        super().__init__(
            f"Cannot move {record_id} from {current} to {attempted}",
            record_id=record_id,
            current=current,
            attempted=attempted,
        )
        self.record_id = record_id
        self.current = current
        self.attempted = attempted


class InvalidRequestError(WorkflowError):
    """The submitted line items or ownership data are malformed."""

    code = "invalid_request"


class InsufficientStockError(WorkflowError):
    """Not enough unreserved stock to satisfy a line item."""

    code = "insufficient_stock"

    def __init__(self, item_name: str, available: int, requested: int, catalog_item_id: str | None = None):
        super().__init__(
            f'Insufficient stock for "{item_name}". Available: {available}, Requested: {requested}',
            item_name=item_name,
            catalog_item_id=catalog_item_id,
            available=available,
            requested=requested,
        )
        self.item_name = item_name
        self.catalog_item_id = catalog_item_id
        self.available = available
        self.requested = requested


class OverReturnError(WorkflowError):
    """A return asks for more units than the holding contains."""

    code = "over_return"

    def __init__(self, item_name: str, held: int, requested: int, catalog_item_id: str | None = None):
        super().__init__(
            f'Cannot return {requested} of "{item_name}", only {held} held',
            item_name=item_name,
            catalog_item_id=catalog_item_id,
            held=held,
            requested=requested,
        )
        self.item_name = item_name
        self.catalog_item_id = catalog_item_id
        self.held = held
        self.requested = requested


class TransactionConflictError(WorkflowError):
    """A document read by the transaction changed before commit."""

    code = "conflict"
    retryable = True

    def __init__(self, message: str = "Concurrent modification detected", **details: Any):
        super().__init__(message, **details)


class PersistenceError(WorkflowError):
    """The underlying store was unreachable or rejected the write."""

    code = "persistence_failure"


class PermissionDeniedError(WorkflowError):
    """The caller lacks the role claim for the requested entry point."""

    code = "permission_denied"
