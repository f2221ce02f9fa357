"""
WebSocket Router
Live notification channel: one socket per user, authenticated with the JWT
passed as ``?token=`` or an ``Authorization: Bearer`` header.
"""
import json
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status

from app.routers.deps import user_id_from_token
from app.utils.date_ranges import to_iso, utcnow

router = APIRouter()
logger = logging.getLogger(__name__)


def _token(websocket: WebSocket, token: Optional[str]) -> Optional[str]:
    if token:
        return token
    authorization = websocket.headers.get("authorization", "")
    if authorization.startswith("Bearer "):
        return authorization.replace("Bearer ", "")
    return None


def _message_type(text: str) -> Optional[str]:
    try:
        message = json.loads(text)
    except ValueError:
        return None
    return message.get("type") if isinstance(message, dict) else None


@router.websocket("/ws")
async def notifications_socket(websocket: WebSocket, token: Optional[str] = None):
    raw_token = _token(websocket, token)
    try:
        if not raw_token:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token required")
        user_id = user_id_from_token(raw_token)
    except HTTPException as e:
        logger.info(f"Rejected WebSocket connection: {e.detail}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    connections = websocket.app.state.connections
    await websocket.accept()
    connections.connect(user_id, websocket)
    try:
        await websocket.send_json({"type": "connected", "data": {"user_id": user_id, "timestamp": to_iso(utcnow())}})
        while True:
            if _message_type(await websocket.receive_text()) == "ping":
                await websocket.send_json({"type": "pong", "data": {"timestamp": to_iso(utcnow())}})
    except WebSocketDisconnect:
        pass
    finally:
        connections.disconnect(user_id, websocket)
