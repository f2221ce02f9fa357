"""
Live WebSocket connections keyed by user id.

The application creates one ``ConnectionRegistry`` and keeps it on
``app.state``; routes and the scheduler receive it explicitly. Each user has
at most one connection (the latest connect replaces the previous one).
"""
import asyncio
import logging
import threading
from typing import Any, Dict, Optional, Tuple

from starlette.websockets import WebSocket, WebSocketState

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._connections: Dict[str, Tuple[WebSocket, asyncio.AbstractEventLoop]] = {}

    def connect(self, user_id: str, websocket: WebSocket, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Register an accepted socket; must be called from its event loop unless ``loop`` is given."""
        loop = loop or asyncio.get_running_loop()
        with self._lock:
            self._connections[user_id] = (websocket, loop)
        logger.info(f"WebSocket connected: {user_id}")

    def disconnect(self, user_id: str, websocket: Optional[WebSocket] = None) -> None:
        """Evict a user's connection. With ``websocket`` given, only if it is still the current one."""
        with self._lock:
            current = self._connections.get(user_id)
            if current is None:
                return
            if websocket is not None and current[0] is not websocket:
                return
            del self._connections[user_id]
        logger.info(f"WebSocket disconnected: {user_id}")

    def is_connected(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._connections

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def send_to_user(self, user_id: str, data: Dict[str, Any]) -> bool:
        """
        Queue ``data`` for the user's socket without waiting for delivery.

        Safe to call from worker threads. Returns False when the user has no
        open connection.
        """
        with self._lock:
            entry = self._connections.get(user_id)
        if entry is None:
            return False
        websocket, loop = entry
        if loop.is_closed() or websocket.client_state != WebSocketState.CONNECTED:
            self.disconnect(user_id, websocket)
            return False
        asyncio.run_coroutine_threadsafe(self._send(user_id, websocket, data), loop)
        return True

    def broadcast(self, data: Dict[str, Any]) -> int:
        with self._lock:
            user_ids = list(self._connections)
        return sum(1 for user_id in user_ids if self.send_to_user(user_id, data))

    async def _send(self, user_id: str, websocket: WebSocket, data: Dict[str, Any]) -> None:
        try:
            await websocket.send_json(data)
        except Exception as e:
            logger.warning(f"Dropping WebSocket message for {user_id}: {str(e)}")
            self.disconnect(user_id, websocket)
