"""State management modules."""

from campus_rentals.state.manager import RedisDocumentStore
from campus_rentals.state.memory import InMemoryDocumentStore
from campus_rentals.state.projection import LiveProjection
from campus_rentals.state.provider import close_document_store, get_document_store
from campus_rentals.state.store import DocumentStore, Subscription, Transaction

__all__ = [
    "DocumentStore",
    "Transaction",
    "Subscription",
    "InMemoryDocumentStore",
    "RedisDocumentStore",
    "LiveProjection",
    "get_document_store",
    "close_document_store",
]
