"""Shared building blocks for persisted records."""

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


class LineItem(BaseModel):
    """One catalog item and quantity inside a request, order or holding."""

    model_config = ConfigDict(extra="ignore")

    catalog_item_id: str = Field(min_length=1)
    name: str
    quantity: int = Field(ge=1)
    unit_price: Decimal | None = Field(default=None, ge=0)

    @property
    def subtotal(self) -> Decimal:
        """Price of this line, zero when the item is not priced."""
        if self.unit_price is None:
            return Decimal("0.00")
        return self.unit_price * Decimal(self.quantity)


def merge_line_items(items: list[LineItem]) -> list[LineItem]:
    """Collapse lines with the same catalog item into one, keeping first-seen order."""
    merged: dict[str, LineItem] = {}
    for item in items:
        existing = merged.get(item.catalog_item_id)
        if existing is None:
            merged[item.catalog_item_id] = item.model_copy()
        else:
            existing.quantity += item.quantity
    return list(merged.values())
