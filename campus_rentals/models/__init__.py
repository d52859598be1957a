"""Data models for the rental and ordering workflow."""

from campus_rentals.models.catalog import CatalogItem, availability_view
from campus_rentals.models.common import LineItem, merge_line_items, utcnow
from campus_rentals.models.holding import HoldingRecord, holding_id_for
from campus_rentals.models.identity import Actor
from campus_rentals.models.requests import (
    RequestKind,
    RequestRecord,
    RequestStatus,
    ReturnRequestRecord,
    ReturnStatus,
)

__all__ = [
    # Catalog
    "CatalogItem",
    "availability_view",
    # Common
    "LineItem",
    "merge_line_items",
    "utcnow",
    # Holdings
    "HoldingRecord",
    "holding_id_for",
    # Identity
    "Actor",
    # Requests
    "RequestKind",
    "RequestRecord",
    "RequestStatus",
    "ReturnRequestRecord",
    "ReturnStatus",
]
