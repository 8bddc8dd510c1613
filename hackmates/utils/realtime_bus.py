import asyncio
from typing import Awaitable, Callable, Dict, Optional, Set

from loguru import logger


OnMessage = Callable[[str], Awaitable[None]]


class LocalBus:
    """In-process fan-out used when no Redis is configured."""

    def __init__(self) -> None:
        self._queues: Dict[str, Set[asyncio.Queue]] = {}

    async def publish(self, channel: str, message: str) -> None:
        for queue in list(self._queues.get(channel, ())):
            queue.put_nowait(message)

    async def subscribe(self, channel: str, on_message: OnMessage):
        queue: asyncio.Queue = asyncio.Queue()
        self._queues.setdefault(channel, set()).add(queue)
        queues = self._queues

        class _Sub:
            _running = True

            async def run(self_inner):
                while self_inner._running:
                    message = await queue.get()
                    await on_message(message)

            async def cancel(self_inner):
                self_inner._running = False
                listeners = queues.get(channel)
                if listeners is not None:
                    listeners.discard(queue)
                    if not listeners:
                        del queues[channel]

        return _Sub()

    async def close(self) -> None:
        self._queues.clear()


class RedisBus:

    def __init__(self, url: str) -> None:
        import redis.asyncio as redis

        self._redis = redis.from_url(url)

    async def publish(self, channel: str, message: str) -> None:
        await self._redis.publish(channel, message)

    async def subscribe(self, channel: str, on_message: OnMessage):
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(channel)

        class _Sub:
            _running = True

            async def run(self_inner):
                while self_inner._running:
                    msg = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                    if msg and msg.get("type") == "message":
                        data = msg.get("data")
                        if isinstance(data, bytes):
                            data = data.decode("utf-8")
                        await on_message(data)

            async def cancel(self_inner):
                self_inner._running = False
                try:
                    await pubsub.unsubscribe(channel)
                    await pubsub.aclose()
                except Exception as exc:
                    # connection may already be gone
                    logger.debug("redis unsubscribe from {} failed: {}", channel, exc)

        return _Sub()

    async def close(self) -> None:
        await self._redis.aclose()


def create_bus(redis_url: Optional[str]):
    if not redis_url:
        logger.info("REDIS_URL not set, using in-process realtime bus")
        return LocalBus()
    logger.info("Using Redis realtime bus")
    return RedisBus(redis_url)
