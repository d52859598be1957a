"""Catalog models for sports equipment and canteen menu items."""

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

from campus_rentals.models.common import utcnow


class CatalogItem(BaseModel):
    """Inventory entry with total and reserved counts."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str
    owner_group: str
    total_stock: int = Field(ge=0)
    reserved: int = Field(default=0, ge=0)
    unit_price: Decimal | None = Field(default=None, ge=0)
    active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def check_reserved_within_stock(self) -> "CatalogItem":
        """Reserved units can never exceed total stock."""
        if self.reserved > self.total_stock:
            raise ValueError(
                f"reserved ({self.reserved}) exceeds total_stock ({self.total_stock})"
            )
        return self

    @property
    def available_quantity(self) -> int:
        """Units that can still be approved, never negative."""
        if not self.active:
            return 0
        return max(self.total_stock - self.reserved, 0)

    @property
    def is_permanently_unavailable(self) -> bool:
        """Items with no stock at all, or switched off, are shown as unavailable."""
        return self.total_stock == 0 or not self.active


def availability_view(item: CatalogItem) -> dict[str, object]:
    """Stock-level figures as presented to requesters."""
    return {
        "item_id": item.id,
        "name": item.name,
        "owner_group": item.owner_group,
        "available": item.available_quantity,
        "total_stock": item.total_stock,
        "unavailable": item.is_permanently_unavailable or item.available_quantity == 0,
        "permanently_unavailable": item.is_permanently_unavailable,
    }
