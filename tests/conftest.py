"""Pytest configuration and fixtures."""

from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from campus_rentals.api.dependencies import get_publisher, get_store
from campus_rentals.config import Settings
from campus_rentals.events import EventPublisher, WorkflowEvent
from campus_rentals.main import app
from campus_rentals.models import Actor, CatalogItem, LineItem
from campus_rentals.state import InMemoryDocumentStore
from campus_rentals.workflow import (
    CATALOG,
    ApprovalEngine,
    CatalogService,
    OrderWorkflow,
    RequestLedger,
    ReturnEngine,
)


@pytest.fixture
def settings() -> Settings:
    """Settings with zero conflict backoff."""
    return Settings(store_backend="memory", retry_delay=0, max_transaction_retries=5)


@pytest_asyncio.fixture
async def store() -> AsyncGenerator[InMemoryDocumentStore, None]:
    """Create a test document store."""
    store = InMemoryDocumentStore()
    await store.connect()
    yield store
    await store.disconnect()


@pytest.fixture
def published() -> list[WorkflowEvent]:
    return []


@pytest.fixture
def publisher(published: list[WorkflowEvent]) -> EventPublisher:
    """Publisher that records every event."""
    publisher = EventPublisher()

    async def record(event: WorkflowEvent) -> None:
        published.append(event)

    publisher.register(record)
    return publisher


@pytest.fixture
def catalog(store: InMemoryDocumentStore, publisher: EventPublisher, settings: Settings) -> CatalogService:
    return CatalogService(store, publisher, settings)


@pytest.fixture
def ledger(store: InMemoryDocumentStore, publisher: EventPublisher, settings: Settings) -> RequestLedger:
    return RequestLedger(store, publisher, settings)


@pytest.fixture
def approvals(store: InMemoryDocumentStore, publisher: EventPublisher, settings: Settings) -> ApprovalEngine:
    return ApprovalEngine(store, publisher, settings)


@pytest.fixture
def returns(store: InMemoryDocumentStore, publisher: EventPublisher, settings: Settings) -> ReturnEngine:
    return ReturnEngine(store, publisher, settings)


@pytest.fixture
def orders(store: InMemoryDocumentStore, publisher: EventPublisher, settings: Settings) -> OrderWorkflow:
    return OrderWorkflow(store, publisher, settings)


# Sample data fixtures


async def put_item(store: InMemoryDocumentStore, **fields) -> CatalogItem:
    """Write a catalog item directly, bypassing the catalog service."""
    item = CatalogItem(**fields)
    await store.put_document(CATALOG, item.id, item.model_dump(mode="json"))
    return item


async def read_item(store: InMemoryDocumentStore, item_id: str) -> CatalogItem:
    return CatalogItem(**(await store.get_document(CATALOG, item_id)))


def line(item: CatalogItem, quantity: int) -> LineItem:
    return LineItem(catalog_item_id=item.id, name=item.name, quantity=quantity)


@pytest.fixture
def student() -> Actor:
    return Actor(id="student-1", display_name="Asha Rao")


@pytest.fixture
def other_student() -> Actor:
    return Actor(id="student-2", display_name="Vikram Shah")


@pytest.fixture
def sports_admin() -> Actor:
    return Actor(id="coach-1", display_name="Coach", claims={"sports_admin"})


@pytest.fixture
def vendor() -> Actor:
    return Actor(id="vendor-1", display_name="Canteen Owner", claims={"vendor:main-canteen"})


@pytest_asyncio.fixture
async def bat(store: InMemoryDocumentStore) -> CatalogItem:
    """Cricket bat with 10 in stock and 2 already reserved."""
    return await put_item(
        store, id="bat-1", name="Cricket Bat", owner_group="cricket", total_stock=10, reserved=2
    )


@pytest_asyncio.fixture
async def ball(store: InMemoryDocumentStore) -> CatalogItem:
    return await put_item(
        store, id="ball-1", name="Cricket Ball", owner_group="cricket", total_stock=5
    )


@pytest_asyncio.fixture
async def samosa(store: InMemoryDocumentStore) -> CatalogItem:
    return await put_item(
        store,
        id="samosa",
        name="Samosa",
        owner_group="main-canteen",
        total_stock=10,
        unit_price=Decimal("15.00"),
    )


@pytest_asyncio.fixture
async def chai(store: InMemoryDocumentStore) -> CatalogItem:
    return await put_item(
        store,
        id="chai",
        name="Masala Chai",
        owner_group="main-canteen",
        total_stock=50,
        unit_price=Decimal("10.00"),
    )


@pytest_asyncio.fixture
async def test_client(
    store: InMemoryDocumentStore,
    publisher: EventPublisher,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client backed by the test store."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_publisher] = lambda: publisher
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
