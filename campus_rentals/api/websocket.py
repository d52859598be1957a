"""WebSocket handlers for live approval queues and notifications."""

import json
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError

from campus_rentals.events import WorkflowEvent, describe_event
from campus_rentals.models.identity import Actor
from campus_rentals.models.requests import (
    RequestKind,
    RequestRecord,
    RequestStatus,
    ReturnRequestRecord,
    ReturnStatus,
)
from campus_rentals.state import DocumentStore, LiveProjection
from campus_rentals.utils.logging import get_logger
from campus_rentals.workflow.base import REQUESTS, RETURNS

logger = get_logger(__name__)


class WebSocketMessage(BaseModel):
    """Client message format."""

    type: str  # "ping"
    content: str | None = None
    metadata: dict[str, Any] = {}


class ConnectionManager:
    """Manages WebSocket connections, keyed by the connected actor."""

    def __init__(self) -> None:
        self.active_connections: dict[str, list[WebSocket]] = {}

    async def connect(self, actor_id: str, websocket: WebSocket) -> None:
        """Accept and register a WebSocket connection."""
        await websocket.accept()
        self.active_connections.setdefault(actor_id, []).append(websocket)
        logger.info("websocket_connected", actor_id=actor_id)

    def disconnect(self, actor_id: str, websocket: WebSocket) -> None:
        """Remove a WebSocket connection."""
        connections = self.active_connections.get(actor_id, [])
        if websocket in connections:
            connections.remove(websocket)
            logger.info("websocket_disconnected", actor_id=actor_id)
        if not connections:
            self.active_connections.pop(actor_id, None)

    async def send_message(self, actor_id: str, message: dict[str, Any]) -> None:
        """Send a message to every connection of one actor."""
        for websocket in list(self.active_connections.get(actor_id, [])):
            await websocket.send_json(message)

    async def notify(self, event: WorkflowEvent) -> None:
        """Event hook: push a notification to the event's recipient."""
        if event.recipient_id is None:
            return
        title, body = describe_event(event)
        await self.send_message(
            event.recipient_id,
            {
                "type": "notification",
                "event": event.type.value,
                "record_id": event.record_id,
                "title": title,
                "body": body,
            },
        )


# Global connection manager
manager = ConnectionManager()


def pending_feed(store: DocumentStore, actor: Actor, on_change: Any) -> list[LiveProjection]:
    """Projections of what this actor may approve."""
    projections: list[LiveProjection] = []
    if actor.is_sports_admin:
        projections.append(
            LiveProjection(
                store,
                REQUESTS,
                RequestRecord,
                where={"status": RequestStatus.PENDING.value, "kind": RequestKind.RENT.value},
                on_change=on_change("requests"),
            )
        )
        projections.append(
            LiveProjection(
                store,
                RETURNS,
                ReturnRequestRecord,
                where={"status": ReturnStatus.PENDING.value},
                on_change=on_change("returns"),
            )
        )
    for shop_id in sorted(actor.vendor_shops):
        projections.append(
            LiveProjection(
                store,
                REQUESTS,
                RequestRecord,
                where={"kind": RequestKind.ORDER.value, "owner_group": shop_id},
                within={
                    "status": [
                        RequestStatus.PENDING.value,
                        RequestStatus.PREPARING.value,
                        RequestStatus.OUT_FOR_DELIVERY.value,
                    ]
                },
                on_change=on_change(f"orders:{shop_id}"),
            )
        )
    return projections


async def handle_websocket_feed(
    websocket: WebSocket,
    store: DocumentStore,
    actor: Actor,
) -> None:
    """
    Stream live snapshots of the actor's approval queues.

    Args:
        websocket: WebSocket connection
        store: Document store to subscribe to
        actor: Connected caller
    """
    await manager.connect(actor.id, websocket)

    def on_change(feed: str):
        async def send(records: list[BaseModel]) -> None:
            await websocket.send_json(
                {
                    "type": "snapshot",
                    "feed": feed,
                    "records": [record.model_dump(mode="json") for record in records],
                }
            )

        return send

    await websocket.send_json({"type": "connected", "actor_id": actor.id})

    projections = pending_feed(store, actor, on_change)
    for projection in projections:
        await projection.start()

    try:
        while True:
            data = await websocket.receive_text()

            try:
                ws_message = WebSocketMessage(**json.loads(data))
            except (ValidationError, json.JSONDecodeError, TypeError) as e:
                await websocket.send_json(
                    {
                        "type": "error",
                        "message": "Invalid message format",
                        "details": str(e),
                    }
                )
                continue

            if ws_message.type == "ping":
                await websocket.send_json({"type": "pong"})

    except WebSocketDisconnect:
        logger.info("websocket_client_disconnected", actor_id=actor.id)

    finally:
        for projection in projections:
            await projection.stop()
        manager.disconnect(actor.id, websocket)
