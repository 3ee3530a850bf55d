import asyncio
import contextlib
import logging
from typing import Any, Awaitable, Callable, Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)

BROADCAST_CHANNEL = "broadcast"


def user_channel(user_id: str) -> str:
    return f"user:{user_id}"


class NoopBus:

    enabled = False

    async def publish(self, channel: str, message: str) -> None:
        return

    async def subscribe(self, channel: str, on_message: Callable[[str], Awaitable[None]], *extra_channels: str):
        class _Sub:
            def start(self):
                return None

            async def cancel(self):
                return

        return _Sub()

    async def close(self) -> None:
        return


class _RedisSubscription:

    def __init__(self, pubsub, channels, on_message: Callable[[str], Awaitable[None]]) -> None:
        self._pubsub = pubsub
        self._channels = channels
        self._on_message = on_message
        self._running = True
        self._task: Optional[asyncio.Task] = None

    def start(self) -> asyncio.Task:
        self._task = asyncio.create_task(self.run())
        return self._task

    async def run(self) -> None:
        while self._running:
            try:
                msg = await self._pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if msg and msg.get("type") == "message":
                    data = msg.get("data")
                    if isinstance(data, bytes):
                        data = data.decode("utf-8")
                    await self._on_message(data)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.warning("Realtime subscription on %s failed: %s", self._channels, exc)
                await asyncio.sleep(0.5)

    async def cancel(self) -> None:
        """Stop the reader task before the pubsub connection is released."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        await self._pubsub.unsubscribe(*self._channels)
        await self._pubsub.aclose()


class RedisBus:

    enabled = True

    def __init__(self, client: Any) -> None:
        self._redis = client

    async def publish(self, channel: str, message: str) -> None:
        await self._redis.publish(channel, message)

    async def subscribe(self, channel: str, on_message: Callable[[str], Awaitable[None]], *extra_channels: str):
        pubsub = self._redis.pubsub()
        channels = (channel, *extra_channels)
        await pubsub.subscribe(*channels)
        return _RedisSubscription(pubsub, channels, on_message)

    async def close(self) -> None:
        await self._redis.aclose()


def build_bus(url: Optional[str]) -> Any:
    if not url:
        logger.info("REDIS_URL not set, realtime events stay in-process")
        return NoopBus()
    return RedisBus(redis.from_url(url))
