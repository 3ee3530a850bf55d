from typing import Any

from messenger.utils.realtime_bus import BROADCAST_CHANNEL, user_channel
from messenger.utils.serialization import dumps
from messenger.utils.websocket_manager import ConnectionManager


class SocketEmitter:
    """Realtime transport: Redis fan-out when enabled, local sockets otherwise."""

    def __init__(self, bus: Any, manager: ConnectionManager) -> None:
        self._bus = bus
        self._manager = manager

    async def emit(self, to: Any, event: str, data: Any = None) -> None:
        message = dumps({"event": event, "data": data})
        if getattr(self._bus, "enabled", False):
            await self._bus.publish(user_channel(str(to)), message)
        else:
            await self._manager.send_personal_message(str(to), message)

    async def emit_broadcast(self, event: str, data: Any = None) -> None:
        message = dumps({"event": event, "data": data})
        if getattr(self._bus, "enabled", False):
            await self._bus.publish(BROADCAST_CHANNEL, message)
        else:
            await self._manager.broadcast(message)
