"""FastAPI dependencies: caller identity, store and workflow engines."""

from fastapi import Depends, Header, Request
from fastapi.responses import JSONResponse

from campus_rentals.errors import (
    InsufficientStockError,
    InvalidRequestError,
    InvalidStateError,
    NotFoundError,
    OverReturnError,
    PermissionDeniedError,
    PersistenceError,
    TransactionConflictError,
    WorkflowError,
)
from campus_rentals.events import EventPublisher
from campus_rentals.models.identity import Actor
from campus_rentals.state import DocumentStore, get_document_store
from campus_rentals.utils.logging import get_logger
from campus_rentals.workflow import (
    ApprovalEngine,
    CatalogService,
    OrderWorkflow,
    RequestLedger,
    ReturnEngine,
)

logger = get_logger(__name__)

# Global event publisher shared by every engine
event_publisher = EventPublisher()

ERROR_STATUS_CODES: dict[type[WorkflowError], int] = {
    NotFoundError: 404,
    InvalidStateError: 409,
    InvalidRequestError: 400,
    InsufficientStockError: 422,
    OverReturnError: 422,
    TransactionConflictError: 409,
    PersistenceError: 503,
    PermissionDeniedError: 403,
}


def status_code_for(error: WorkflowError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(error, error_type):
            return status_code
    return 500


async def workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    """Render workflow failures as JSON with the matching status code."""
    status_code = status_code_for(exc)
    logger.warning(
        "request_failed",
        path=request.url.path,
        status_code=status_code,
        code=exc.code,
        error=exc.message,
    )
    return JSONResponse(status_code=status_code, content={"error": exc.to_dict()})


async def get_actor(
    x_actor_id: str = Header(...),
    x_actor_name: str | None = Header(default=None),
    x_actor_claims: str = Header(default=""),
) -> Actor:
    """Caller identity, as forwarded by the authenticating gateway."""
    claims = {claim.strip() for claim in x_actor_claims.split(",") if claim.strip()}
    return Actor(id=x_actor_id, display_name=x_actor_name, claims=claims)


async def get_store() -> DocumentStore:
    return await get_document_store()


def get_publisher() -> EventPublisher:
    return event_publisher


async def get_catalog(
    store: DocumentStore = Depends(get_store),
    publisher: EventPublisher = Depends(get_publisher),
) -> CatalogService:
    return CatalogService(store, publisher)


async def get_ledger(
    store: DocumentStore = Depends(get_store),
    publisher: EventPublisher = Depends(get_publisher),
) -> RequestLedger:
    return RequestLedger(store, publisher)


async def get_approvals(
    store: DocumentStore = Depends(get_store),
    publisher: EventPublisher = Depends(get_publisher),
) -> ApprovalEngine:
    return ApprovalEngine(store, publisher)


async def get_returns(
    store: DocumentStore = Depends(get_store),
    publisher: EventPublisher = Depends(get_publisher),
) -> ReturnEngine:
    return ReturnEngine(store, publisher)


async def get_orders(
    store: DocumentStore = Depends(get_store),
    publisher: EventPublisher = Depends(get_publisher),
) -> OrderWorkflow:
    return OrderWorkflow(store, publisher)


def require_sports_admin(actor: Actor) -> None:
    if not actor.is_sports_admin:
        raise PermissionDeniedError(
            "Sports admin role required", actor_id=actor.id
        )


def require_vendor(actor: Actor, shop_id: str | None) -> None:
    if shop_id is None or not actor.is_vendor_for(shop_id):
        raise PermissionDeniedError(
            f"Vendor role for {shop_id} required", actor_id=actor.id, shop_id=shop_id
        )


def require_catalog_manager(actor: Actor, owner_group: str) -> None:
    """Sports admins manage equipment; vendors manage their own menu."""
    if not (actor.is_sports_admin or actor.is_vendor_for(owner_group)):
        raise PermissionDeniedError(
            f"Not allowed to manage items for {owner_group}",
            actor_id=actor.id,
            owner_group=owner_group,
        )
