"""
Realtime fan-out of domain events to family rooms.

Clients connect to the ``/ws`` endpoint and join ``family:<id>`` rooms. Services
call ``emit_to_family`` after their write commits; delivery is at-most-once
with no acknowledgement or replay.
"""

import logging
from typing import Any, Optional

from fastapi import WebSocket
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)


def family_room(family_id: str) -> str:
    return f"family:{family_id}"


class RealtimeHub:
    """In-process registry of WebSocket connections grouped by room"""

    def __init__(self):
        self.rooms: dict[str, set[WebSocket]] = {}
        self.connection_users: dict[WebSocket, str] = {}

    def connect(self, websocket: WebSocket, user_id: str) -> None:
        self.connection_users[websocket] = user_id

    def disconnect(self, websocket: WebSocket) -> None:
        self.connection_users.pop(websocket, None)
        for room in list(self.rooms):
            self._leave_room(room, websocket)

    def join(self, websocket: WebSocket, family_id: str) -> None:
        self.rooms.setdefault(family_room(family_id), set()).add(websocket)
        logger.debug(f"User {self.connection_users.get(websocket)} joined {family_room(family_id)}")

    def leave(self, websocket: WebSocket, family_id: str) -> None:
        self._leave_room(family_room(family_id), websocket)

    def _leave_room(self, room: str, websocket: WebSocket) -> None:
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(websocket)
        if not members:
            del self.rooms[room]

    def room_size(self, family_id: str) -> int:
        return len(self.rooms.get(family_room(family_id), ()))

    def remove_user_from_family(self, family_id: str, user_id: str) -> int:
        """Drop every socket of ``user_id`` from the family room. Returns sockets removed."""
        room = family_room(family_id)
        removed = [ws for ws in self.rooms.get(room, ()) if self.connection_users.get(ws) == user_id]
        for websocket in removed:
            self._leave_room(room, websocket)
        if removed:
            logger.info(f"🔌 Removed {len(removed)} socket(s) of user {user_id} from {room}")
        return len(removed)

    async def emit_to_family(
        self,
        family_id: str,
        event: str,
        payload: Any,
        exclude_user_id: Optional[str] = None,
    ) -> int:
        """Send ``{"event", "data"}`` to every socket in the family room. Returns sockets reached."""
        message = {"event": event, "data": jsonable_encoder(payload)}
        delivered = 0
        for websocket in list(self.rooms.get(family_room(family_id), ())):
            if exclude_user_id and self.connection_users.get(websocket) == exclude_user_id:
                continue
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"⚠️ Dropping socket after failed {event} send: {e}")
                self.disconnect(websocket)
        return delivered


hub = RealtimeHub()


async def emit_to_family(
    family_id: str, event: str, payload: Any, exclude_user_id: Optional[str] = None
) -> None:
    """Best-effort broadcast; never raises"""
    try:
        await hub.emit_to_family(family_id, event, payload, exclude_user_id)
    except Exception as e:
        logger.error(f"❌ Failed to emit {event} to family {family_id}: {str(e)}")


def evict_user_from_family(family_id: str, user_id: str) -> None:
    """Stop delivering a family's events to a user who is no longer a member"""
    try:
        hub.remove_user_from_family(family_id, user_id)
    except Exception as e:
        logger.error(f"❌ Failed to evict user {user_id} from family {family_id}: {str(e)}")
