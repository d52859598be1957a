"""Process-wide document store selection."""

from campus_rentals.config import get_settings
from campus_rentals.state.memory import InMemoryDocumentStore
from campus_rentals.state.manager import RedisDocumentStore
from campus_rentals.state.store import DocumentStore

# Global store instance
_document_store: DocumentStore | None = None


async def get_document_store() -> DocumentStore:
    """Get the global document store, creating it from settings on first use."""
    global _document_store
    if _document_store is None:
        settings = get_settings()
        if settings.store_backend == "redis":
            _document_store = RedisDocumentStore()
        else:
            _document_store = InMemoryDocumentStore()
        await _document_store.connect()
    return _document_store


async def close_document_store() -> None:
    """Disconnect and forget the global document store."""
    global _document_store
    if _document_store is not None:
        await _document_store.disconnect()
        _document_store = None
