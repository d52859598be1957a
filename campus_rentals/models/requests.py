"""Rent request, food order and return request records."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from campus_rentals.models.common import LineItem, utcnow


class RequestKind(str, Enum):
    """What a request asks for."""

    RENT = "rent"
    ORDER = "order"


class RequestStatus(str, Enum):
    """Status progression for rent requests and food orders."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    # Food orders only
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    COMPLETED = "completed"


class ReturnStatus(str, Enum):
    """Status of a return request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RequestRecord(BaseModel):
    """A rent request or food order routed to an approver."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: uuid4().hex)
    kind: RequestKind
    requester_id: str
    requester_display_name: str | None = None
    owner_group: str | None = None
    line_items: list[LineItem] = Field(min_length=1)
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime | None = None

    approved_by: str | None = None
    approved_at: datetime | None = None
    rejected_by: str | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    item_unavailable: bool = False
    delivered_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    @property
    def total(self) -> Decimal:
        """Order value from the priced line items."""
        return sum((item.subtotal for item in self.line_items), Decimal("0.00"))

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.line_items)


class ReturnRequestRecord(BaseModel):
    """A request to give back part or all of a holding."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: uuid4().hex)
    holder_id: str
    holder_display_name: str | None = None
    holding_record_id: str
    line_items: list[LineItem] = Field(min_length=1)
    status: ReturnStatus = ReturnStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime | None = None

    approved_by: str | None = None
    approved_at: datetime | None = None
    rejected_by: str | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == ReturnStatus.PENDING
