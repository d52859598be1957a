"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from campus_rentals.api.dependencies import event_publisher, workflow_error_handler
from campus_rentals.api.routes import router
from campus_rentals.api.websocket import handle_websocket_feed, manager
from campus_rentals.config import get_settings
from campus_rentals.errors import WorkflowError
from campus_rentals.models.identity import Actor
from campus_rentals.state import close_document_store, get_document_store
from campus_rentals.utils.logging import get_logger, setup_logging

# Setup logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    logger.info("application_starting")

    store = await get_document_store()
    event_publisher.register(manager.notify)
    logger.info("document_store_initialized", backend=type(store).__name__)

    yield

    # Shutdown
    logger.info("application_shutting_down")
    event_publisher.unregister(manager.notify)
    await close_document_store()


# Create FastAPI app
app = FastAPI(
    title="Campus Rentals",
    description="Approval, return and order workflows for sports equipment and canteen shops",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(WorkflowError, workflow_error_handler)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "campus-rentals"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "message": "Campus Rentals API",
        "docs": "/docs",
        "health": "/health",
    }


app.include_router(router, prefix="/api/v1", tags=["api"])


# WebSocket endpoint
@app.websocket("/ws/feed")
async def websocket_endpoint(
    websocket: WebSocket,
    actor_id: str,
    claims: str = "",
    name: str | None = None,
) -> None:
    """Live approval queues and notifications for one caller."""
    if not actor_id:
        await websocket.close(code=1008, reason="Missing actor")
        return

    actor = Actor(
        id=actor_id,
        display_name=name,
        claims={claim.strip() for claim in claims.split(",") if claim.strip()},
    )
    store = await get_document_store()
    await handle_websocket_feed(websocket, store, actor)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "campus_rentals.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.environment == "development",
    )
