"""Notification hooks fired after committed workflow transitions."""

from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, Field

from campus_rentals.models.common import utcnow
from campus_rentals.utils.logging import get_logger

logger = get_logger(__name__)


class WorkflowEventType(str, Enum):
    """Kinds of committed transitions."""

    REQUEST_SUBMITTED = "request_submitted"
    REQUEST_APPROVED = "request_approved"
    REQUEST_REJECTED = "request_rejected"
    ORDER_PLACED = "order_placed"
    ORDER_STATUS_CHANGED = "order_status_changed"
    RETURN_REQUESTED = "return_requested"
    RETURN_APPROVED = "return_approved"
    RETURN_REJECTED = "return_rejected"
    CATALOG_UPDATED = "catalog_updated"


class WorkflowEvent(BaseModel):
    """Something that happened, addressed to the person who should hear about it."""

    type: WorkflowEventType
    record_id: str
    actor_id: str
    recipient_id: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=utcnow)


EventHook = Callable[[WorkflowEvent], Awaitable[None]]


def describe_event(event: WorkflowEvent) -> tuple[str, str]:
    """Title and body for a push notification or toast."""
    payload = event.payload
    if event.type == WorkflowEventType.REQUEST_APPROVED:
        return "Request approved", "Your rental request has been approved."
    if event.type == WorkflowEventType.REQUEST_REJECTED:
        reason = payload.get("reason")
        body = "Your request was rejected."
        if reason:
            body = f"{body} Reason: {reason}"
        return "Request rejected", body
    if event.type == WorkflowEventType.ORDER_STATUS_CHANGED:
        status = str(payload.get("status", "")).replace("_", " ")
        body = f"Your order is now {status}."
        if payload.get("item_unavailable"):
            body = "Your order was rejected because an item is unavailable."
        return "Order update", body
    if event.type == WorkflowEventType.RETURN_APPROVED:
        return "Return approved", "Your return has been accepted."
    if event.type == WorkflowEventType.RETURN_REJECTED:
        return "Return rejected", "Your return request was rejected."
    if event.type == WorkflowEventType.ORDER_PLACED:
        return "New order", f"Order {event.record_id} is waiting for approval."
    if event.type in (WorkflowEventType.REQUEST_SUBMITTED, WorkflowEventType.RETURN_REQUESTED):
        return "New request", f"Request {event.record_id} is waiting for approval."
    return "Catalog updated", f"Item {event.record_id} was updated."


class EventPublisher:
    """Fan-out of workflow events to registered hooks."""

    def __init__(self) -> None:
        self.hooks: list[EventHook] = []

    def register(self, hook: EventHook) -> None:
        """Register a hook called for every published event."""
        self.hooks.append(hook)

    def unregister(self, hook: EventHook) -> None:
        if hook in self.hooks:
            self.hooks.remove(hook)

    async def publish(self, event: WorkflowEvent) -> None:
        """Deliver an event; a failing hook is logged and never undoes the commit."""
        logger.info(
            "workflow_event",
            event_type=event.type.value,
            record_id=event.record_id,
            actor_id=event.actor_id,
            recipient_id=event.recipient_id,
        )

        for hook in list(self.hooks):
            try:
                await hook(event)
            except Exception as e:
                logger.error(
                    "event_hook_error",
                    event_type=event.type.value,
                    record_id=event.record_id,
                    error=str(e),
                )
