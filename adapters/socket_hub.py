"""Real-time event hub over WebSockets.

Clients join the ``owner`` room (owner accounts) and their personal
``user_{id}`` room. Services call ``publish(event, payload, ...)`` from
synchronous code; delivery to sockets is scheduled on the event loop bound
at startup. Recent events are kept in a bounded history.
"""

from collections import defaultdict, deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional, Set
import asyncio
import functools
import logging

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger("tiffinmate.socket")

OWNER_ROOM = "owner"


def user_room(user_id) -> str:
    return f"user_{user_id}"


def _log_broadcast_failure(room: str, future) -> None:
    if future.cancelled():
        logger.warning("Broadcast to %s was cancelled", room)
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Broadcast to %s failed: %s", room, exc, exc_info=exc)


class SocketHub:
    def __init__(self, history_size: int = 200):
        self._rooms: Dict[str, Set[WebSocket]] = defaultdict(set)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self.history: Deque[Dict[str, Any]] = deque(maxlen=history_size)

    def bind_loop(self, loop: Optional[asyncio.AbstractEventLoop]) -> None:
        self._loop = loop

    async def join(self, websocket: WebSocket, rooms: List[str]) -> None:
        for room in rooms:
            self._rooms[room].add(websocket)
        logger.info("Socket joined rooms %s", rooms)

    def leave(self, websocket: WebSocket) -> None:
        for members in self._rooms.values():
            members.discard(websocket)

    def connection_count(self, room: Optional[str] = None) -> int:
        if room is not None:
            return len(self._rooms.get(room, ()))
        return len({ws for members in self._rooms.values() for ws in members})

    def publish(
        self,
        event: str,
        payload: Dict[str, Any],
        user_id=None,
        owner: bool = True,
    ) -> List[str]:
        """Fan ``event`` out to the owner room and/or the user's room.

        Returns the rooms the event was addressed to.
        """
        rooms = []
        if owner:
            rooms.append(OWNER_ROOM)
        if user_id is not None:
            rooms.append(user_room(user_id))

        message = jsonable_encoder(
            {"event": event, "data": payload, "timestamp": datetime.utcnow()}
        )
        for room in rooms:
            self.history.append({"room": room, **message})

        if self._loop is not None and self._loop.is_running():
            for room in rooms:
                future = asyncio.run_coroutine_threadsafe(self._broadcast(room, message), self._loop)
                future.add_done_callback(functools.partial(_log_broadcast_failure, room))
        logger.debug("Published %s to %s", event, rooms)
        return rooms

    def events(self, event: Optional[str] = None, room: Optional[str] = None) -> List[Dict[str, Any]]:
        """Recent events, optionally filtered by name and room."""
        return [
            e
            for e in self.history
            if (event is None or e["event"] == event) and (room is None or e["room"] == room)
        ]

    async def _broadcast(self, room: str, message: Dict[str, Any]) -> None:
        stale = []
        for websocket in list(self._rooms.get(room, ())):
            try:
                await websocket.send_json(message)
            except (WebSocketDisconnect, RuntimeError, ConnectionError) as exc:
                logger.warning("Dropping socket in %s: %s", room, exc)
                stale.append(websocket)
        for websocket in stale:
            self.leave(websocket)


hub = SocketHub()


def publish(event: str, payload: Dict[str, Any], user_id=None, owner: bool = True) -> List[str]:
    return hub.publish(event, payload, user_id=user_id, owner=owner)
