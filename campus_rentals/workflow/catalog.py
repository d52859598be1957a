"""Catalog management for equipment and menu items."""

from decimal import Decimal
from typing import Any

from campus_rentals.errors import InvalidRequestError, NotFoundError
from campus_rentals.events import WorkflowEvent, WorkflowEventType
from campus_rentals.models.catalog import CatalogItem, availability_view
from campus_rentals.state.store import Transaction
from campus_rentals.workflow.base import CATALOG, BaseEngine, load_record


class CatalogService(BaseEngine):
    """
    Inventory-management entry points.

    None of these operations touches `reserved`; only the approval and
    return engines move that counter.
    """

    component = "catalog"

    async def add_item(
        self,
        actor_id: str,
        name: str,
        owner_group: str,
        total_stock: int,
        unit_price: Decimal | None = None,
        item_id: str | None = None,
    ) -> CatalogItem:
        """Create a catalog item with nothing reserved."""
        now = await self.store.server_timestamp()
        fields: dict[str, Any] = {
            "name": name,
            "owner_group": owner_group,
            "total_stock": total_stock,
            "unit_price": unit_price,
            "created_at": now,
            "updated_at": now,
        }
        if item_id:
            fields["id"] = item_id
        item = CatalogItem(**fields)

        async def apply(tx: Transaction) -> None:
            if await tx.get(CATALOG, item.id) is not None:
                raise InvalidRequestError(f"Catalog item {item.id} already exists", record_id=item.id)
            tx.set(CATALOG, item.id, item.model_dump(mode="json"))

        await self.run_atomic("add_item", item.id, apply)

        self.logger.log_transition("add_item", item.id, actor_id, total_stock=total_stock)
        await self.emit(
            WorkflowEvent(
                type=WorkflowEventType.CATALOG_UPDATED,
                record_id=item.id,
                actor_id=actor_id,
                payload={"change": "created"},
            )
        )
        return item

    async def get_item(self, item_id: str) -> CatalogItem:
        data = await self.store.get_document(CATALOG, item_id)
        if data is None:
            raise NotFoundError(CATALOG, item_id)
        return CatalogItem(**data)

    async def list_items(self, owner_group: str | None = None) -> list[CatalogItem]:
        """List catalog items, optionally for one shop or sport."""
        where = {"owner_group": owner_group} if owner_group else None
        documents = await self.store.query_documents(CATALOG, where=where)
        items = [CatalogItem(**document) for document in documents]
        return sorted(items, key=lambda item: item.name.lower())

    async def get_availability(self, item_id: str) -> dict[str, object]:
        """Stock figures for display."""
        return availability_view(await self.get_item(item_id))

    async def set_total_stock(self, item_id: str, actor_id: str, total_stock: int) -> CatalogItem:
        """Change total stock; it can never drop below what is reserved."""
        if total_stock < 0:
            raise InvalidRequestError("Total stock cannot be negative", requested=total_stock)

        now = await self.store.server_timestamp()

        async def apply(tx: Transaction) -> CatalogItem:
            item = await load_record(tx, CATALOG, item_id, CatalogItem)
            if total_stock < item.reserved:
                raise InvalidRequestError(
                    f"Total stock for {item.name} cannot be below reserved units ({item.reserved})",
                    record_id=item_id,
                    reserved=item.reserved,
                    requested=total_stock,
                )
            item.total_stock = total_stock
            item.updated_at = now
            tx.set(CATALOG, item.id, item.model_dump(mode="json"))
            return item

        item = await self.run_atomic("set_total_stock", item_id, apply)

        self.logger.log_transition("set_total_stock", item_id, actor_id, total_stock=total_stock)
        await self.emit(
            WorkflowEvent(
                type=WorkflowEventType.CATALOG_UPDATED,
                record_id=item_id,
                actor_id=actor_id,
                payload={"change": "stock", "total_stock": total_stock},
            )
        )
        return item

    async def set_item_active(self, item_id: str, actor_id: str, active: bool) -> CatalogItem:
        """Soft-deactivate or re-enable an item, e.g. after an order rejected as unavailable."""
        now = await self.store.server_timestamp()

        async def apply(tx: Transaction) -> CatalogItem:
            item = await load_record(tx, CATALOG, item_id, CatalogItem)
            item.active = active
            item.updated_at = now
            tx.set(CATALOG, item.id, item.model_dump(mode="json"))
            return item

        item = await self.run_atomic("set_item_active", item_id, apply)

        self.logger.log_transition("set_item_active", item_id, actor_id, active=active)
        await self.emit(
            WorkflowEvent(
                type=WorkflowEventType.CATALOG_UPDATED,
                record_id=item_id,
                actor_id=actor_id,
                payload={"change": "active", "active": active},
            )
        )
        return item
