"""Live order snapshots for display clients."""
import json
import logging
from typing import Any, Dict, List

from fastapi import BackgroundTasks, WebSocket
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pos_api.models.order import OrderStatus
from pos_api.schemas.order import OrderSummary
from pos_api.services.order_service import OrderService

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "1"


def build_snapshot(db: Session) -> Dict[str, List[dict]]:
    """
    Current preparing and finished orders, reduced to {id, number, status, createdAt}.

    Hidden orders are left out of both lists.
    """
    service = OrderService(db)
    active = service.find_active(include_hidden=False)
    finished = service.find_finished(include_hidden=False)

    def summarize(orders):
        return [
            OrderSummary.model_validate(order).model_dump(mode="json", by_alias=True)
            for order in orders
        ]

    return {
        "preparing": summarize(o for o in active if o.status == OrderStatus.PREPARING),
        "finished": summarize(finished),
    }


def hello_message() -> Dict[str, Any]:
    return {"type": "hello", "data": {"version": PROTOCOL_VERSION}}


def update_message(snapshot: Dict[str, List[dict]]) -> Dict[str, Any]:
    return {"type": "orders:update", "data": snapshot}


class ConnectionManager:
    """
    Registry of connected display clients.

    Delivery is best effort: a client whose send fails is dropped from the
    registry and the broadcast continues with the others.
    """

    def __init__(self):
        self.active_connections: List[WebSocket] = []

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.append(websocket)
        logger.info(f"Display client connected ({len(self.active_connections)} active)")

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
            logger.info(f"Display client disconnected ({len(self.active_connections)} active)")

    async def send(self, websocket: WebSocket, message: Dict[str, Any]) -> None:
        await websocket.send_text(json.dumps(message))

    async def broadcast(self, message: Dict[str, Any]) -> int:
        """
        Send a message to every connected client.

        Returns:
            Number of clients the message reached
        """
        raw = json.dumps(message)
        delivered = 0
        for websocket in list(self.active_connections):
            try:
                await websocket.send_text(raw)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping display client after failed send: {e}")
                self.disconnect(websocket)
        return delivered

    async def broadcast_snapshot(self, snapshot: Dict[str, List[dict]]) -> int:
        return await self.broadcast(update_message(snapshot))


# Process-wide registry used by the websocket endpoint and the order routes
manager = ConnectionManager()


def schedule_broadcast(background_tasks: BackgroundTasks, db: Session) -> None:
    """
    Recompute the snapshot now and push it after the response is sent.

    A failure here is logged and never changes the outcome of the request
    that caused the mutation.
    """
    try:
        snapshot = build_snapshot(db)
    except SQLAlchemyError as e:
        logger.error(f"Failed to build order snapshot for broadcast: {e}")
        return
    background_tasks.add_task(_deliver, snapshot)


async def _deliver(snapshot: Dict[str, List[dict]]) -> None:
    try:
        await manager.broadcast_snapshot(snapshot)
    except Exception as e:
        logger.error(f"Order broadcast failed: {e}")
