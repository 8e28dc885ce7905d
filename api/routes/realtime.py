"""WebSocket endpoint for real-time events"""

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
import logging

from adapters.socket_hub import OWNER_ROOM, hub, user_room
from app.exceptions import ServiceError
from domain.enums import UserRole
from domain.models import SessionLocal
from services.auth_service import AuthService

router = APIRouter(tags=["Socket"])
logger = logging.getLogger("tiffinmate.api.socket")


@router.websocket("/ws")
async def socket_endpoint(websocket: WebSocket, token: str = Query(...)):
    """
    Authenticate with ``?token=`` and receive events for the caller's rooms.

    Owners join ``owner``; everybody joins ``user_{id}``.
    """
    db = SessionLocal()
    try:
        user = AuthService.authenticate_token(db, token)
        rooms = [user_room(user.id)]
        if user.role == UserRole.OWNER:
            rooms.append(OWNER_ROOM)
    except ServiceError as exc:
        logger.warning("Socket rejected: %s", exc)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    finally:
        db.close()

    await websocket.accept()
    await hub.join(websocket, rooms)
    await websocket.send_json({"event": "connected", "data": {"rooms": rooms}})
    try:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_json({"event": "pong", "data": {}})
    except WebSocketDisconnect:
        logger.info("Socket disconnected from %s", rooms)
    finally:
        hub.leave(websocket)
