"""Holding records: what a requester currently has checked out."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from campus_rentals.errors import OverReturnError
from campus_rentals.models.common import LineItem, utcnow


def holding_id_for(holder_id: str) -> str:
    """Each holder has at most one holding document, keyed by the holder."""
    return f"holder-{holder_id}"


class HoldingRecord(BaseModel):
    """Materialized record of items a holder possesses after approval."""

    model_config = ConfigDict(extra="ignore")

    id: str
    holder_id: str
    holder_display_name: str | None = None
    line_items: list[LineItem] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime | None = None

    @classmethod
    def for_holder(cls, holder_id: str, holder_display_name: str | None = None) -> "HoldingRecord":
        """Create an empty holding for a holder."""
        return cls(
            id=holding_id_for(holder_id),
            holder_id=holder_id,
            holder_display_name=holder_display_name,
        )

    @property
    def is_empty(self) -> bool:
        return not self.line_items

    def quantity_of(self, catalog_item_id: str) -> int:
        """Units of an item currently held."""
        for item in self.line_items:
            if item.catalog_item_id == catalog_item_id:
                return item.quantity
        return 0

    def add_items(self, items: list[LineItem]) -> None:
        """Merge approved items: same item id sums quantities, otherwise append."""
        for incoming in items:
            for held in self.line_items:
                if held.catalog_item_id == incoming.catalog_item_id:
                    held.quantity += incoming.quantity
                    break
            else:
                self.line_items.append(
                    LineItem(
                        catalog_item_id=incoming.catalog_item_id,
                        name=incoming.name,
                        quantity=incoming.quantity,
                    )
                )

    def check_can_remove(self, items: list[LineItem]) -> None:
        """Raise OverReturnError if any returned quantity exceeds what is held."""
        for returned in items:
            held = self.quantity_of(returned.catalog_item_id)
            if returned.quantity > held:
                raise OverReturnError(
                    item_name=returned.name,
                    held=held,
                    requested=returned.quantity,
                    catalog_item_id=returned.catalog_item_id,
                )

    def remove_items(self, items: list[LineItem]) -> None:
        """Shrink held quantities, dropping lines that reach zero."""
        self.check_can_remove(items)
        for returned in items:
            for held in self.line_items:
                if held.catalog_item_id == returned.catalog_item_id:
                    held.quantity -= returned.quantity
                    break
        self.line_items = [item for item in self.line_items if item.quantity > 0]
