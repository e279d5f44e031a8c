import json
import logging

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect

from ..auth import authenticate_token
from ..database import SessionLocal
from ..membership import is_family_member
from ..realtime import hub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])

# Close code sent when the token is missing or rejected
WS_UNAUTHORIZED = 4401


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, token: str = Query("")):
    """
    Realtime channel.

    Clients send ``{"action": "join" | "leave", "familyId": ...}``. Joining is
    limited to families the user belongs to. Server messages are
    ``{"event": ..., "data": ...}``.
    """
    db = SessionLocal()
    try:
        user = await authenticate_token(token, db)
        user_id = user.id
    except HTTPException as e:
        logger.warning(f"🔌 Rejected realtime connection: {e.detail}")
        await websocket.close(code=WS_UNAUTHORIZED)
        return
    finally:
        db.close()

    await websocket.accept()
    hub.connect(websocket, user_id)
    logger.info(f"🔌 Realtime connection opened for user {user_id}")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                message = None
            action = message.get("action") if isinstance(message, dict) else None
            family_id = message.get("familyId") if isinstance(message, dict) else None
            if action not in ("join", "leave") or not family_id:
                await websocket.send_json({"event": "error", "data": {"error": "invalid-message"}})
                continue

            if action == "leave":
                hub.leave(websocket, family_id)
                await websocket.send_json({"event": "left", "data": {"familyId": family_id}})
                continue

            db = SessionLocal()
            try:
                allowed = is_family_member(db, family_id, user_id)
            finally:
                db.close()
            if not allowed:
                await websocket.send_json(
                    {"event": "error", "data": {"error": "not-family-member", "familyId": family_id}}
                )
                continue

            hub.join(websocket, family_id)
            await websocket.send_json({"event": "joined", "data": {"familyId": family_id}})
    except WebSocketDisconnect:
        logger.info(f"🔌 Realtime connection closed for user {user_id}")
    finally:
        hub.disconnect(websocket)
