import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pos_api.config import get_settings
from pos_api.database import get_db
from pos_api.services.realtime_service import (
    build_snapshot,
    hello_message,
    manager,
    update_message,
)

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(tags=["Realtime"])


@router.websocket(settings.WS_PATH)
async def orders_feed(websocket: WebSocket, db: Session = Depends(get_db)):
    """
    Push-only order feed for display clients.

    Sends a greeting and the current snapshot on connect, then a new snapshot
    after every order mutation. Messages from the client are ignored.
    """
    await manager.connect(websocket)
    try:
        await manager.send(websocket, hello_message())
        try:
            snapshot = await run_in_threadpool(build_snapshot, db)
            await manager.send(websocket, update_message(snapshot))
        except SQLAlchemyError as e:
            logger.error(f"Failed to build initial snapshot: {e}")
        finally:
            # Don't hold a pooled connection for the lifetime of the socket
            await run_in_threadpool(db.close)

        while True:
            # Text or binary, the payload is discarded
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)
