import logging
from typing import Dict, List

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Sockets of the users connected to this process, keyed by user id."""

    def __init__(self) -> None:
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.setdefault(user_id, []).append(websocket)

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        connections = self.active_connections.get(user_id)
        if not connections:
            return
        if websocket in connections:
            connections.remove(websocket)
        if not connections:
            del self.active_connections[user_id]

    def is_connected(self, user_id: str) -> bool:
        return bool(self.active_connections.get(user_id))

    async def send_personal_message(self, receiver_id: str, message: str) -> int:
        return await self._send(receiver_id, message)

    async def broadcast(self, message: str) -> int:
        sent = 0
        for user_id in list(self.active_connections):
            sent += await self._send(user_id, message)
        return sent

    async def _send(self, user_id: str, message: str) -> int:
        sent = 0
        for conn in list(self.active_connections.get(user_id, [])):
            try:
                await conn.send_text(message)
                sent += 1
            except Exception as exc:
                # closed without a disconnect frame
                logger.debug("Dropping dead socket of user %s: %s", user_id, exc)
                self.disconnect(user_id, conn)
        return sent
