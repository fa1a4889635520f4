"""
Realtime hub - WebSocket connections grouped into per-user rooms

Emits are fire-and-forget: a failed delivery is logged and dropped, and never
propagates into the HTTP request that triggered it.
"""

import asyncio
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session

from .auth import get_user_from_token
from .database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


class ConnectionManager:
    """Tracks open sockets by user id; a user's sockets form that user's room"""

    def __init__(self):
        self.rooms: dict[str, set[WebSocket]] = {}
        self.loop: Optional[asyncio.AbstractEventLoop] = None

    def connect(self, user_id: int, websocket: WebSocket) -> None:
        # Sockets live on this loop; emits from worker threads are handed back to it
        self.loop = asyncio.get_running_loop()
        self.rooms.setdefault(str(user_id), set()).add(websocket)
        logger.info(f"🔌 User {user_id} connected ({len(self.rooms[str(user_id)])} socket(s))")

    def disconnect(self, user_id: int, websocket: WebSocket) -> None:
        room = self.rooms.get(str(user_id))
        if not room:
            return
        room.discard(websocket)
        if not room:
            del self.rooms[str(user_id)]
        logger.info(f"🔌 User {user_id} disconnected")

    def is_online(self, user_id: int) -> bool:
        return str(user_id) in self.rooms

    async def send_to_room(self, room: str, event: str, data: Any) -> None:
        for websocket in list(self.rooms.get(room, ())):
            try:
                await websocket.send_json({"event": event, "data": data})
            except Exception as e:
                logger.warning(f"⚠️ Dropping {event} for room {room}: {e}")
                self.rooms.get(room, set()).discard(websocket)

    async def broadcast(self, event: str, data: Any) -> None:
        for room in list(self.rooms):
            await self.send_to_room(room, event, data)

    def emit(self, user_id: int, event: str, data: Any) -> None:
        """Schedule delivery to a user's room without waiting for it"""
        room = str(user_id)
        if room not in self.rooms:
            return
        loop = self.loop
        if loop is None or loop.is_closed():
            logger.debug(f"No event loop for sockets; skipping {event} for user {user_id}")
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._schedule(room, event, data)
        else:
            loop.call_soon_threadsafe(self._schedule, room, event, data)

    def _schedule(self, room: str, event: str, data: Any) -> None:
        task = self.loop.create_task(self.send_to_room(room, event, data))
        task.add_done_callback(_log_task_error)


def _log_task_error(task: "asyncio.Task") -> None:
    if not task.cancelled() and task.exception():
        logger.error(f"❌ Realtime emit failed: {task.exception()}")


manager = ConnectionManager()


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """Authenticate with ?token=<access token>, then join the user's own room"""
    user = get_user_from_token(db, token) if token else None
    if not user or user.blocked:
        logger.warning("⚠️ WebSocket connection rejected: invalid token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user_id = user.id
    db.close()

    await websocket.accept()
    manager.connect(user_id, websocket)
    await websocket.send_json(
        {"event": "welcome", "data": {"message": "Connected successfully", "userId": user_id}}
    )

    try:
        while True:
            # Clients only listen; inbound frames are read to detect disconnects
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(user_id, websocket)
        if not manager.is_online(user_id):
            await manager.broadcast("user_offline", {"userId": user_id})
