"""
Event transports.

Redis pub/sub is used when ``REDIS_URL`` is configured so that several app
workers can share one channel space; otherwise events are fanned out to the
WebSocket subscribers of this process only.

Both transports carry JSON-serialisable dicts and expose the same surface:
``publish(topic, data)``, ``subscribe(topic)`` (an async iterator of dicts),
``ping()`` and ``close()``.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Set

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


class LocalTransport:
    """In-process broadcaster: one queue per subscriber per topic."""

    def __init__(self, max_queue: int = 100):
        self.max_queue = max_queue
        self._subscribers: Dict[str, Set[asyncio.Queue]] = {}

    async def publish(self, topic: str, data: Dict[str, Any]) -> int:
        queues = self._subscribers.get(topic, set())
        for queue in list(queues):
            if queue.full():
                # Slow consumer: drop the oldest signal, clients re-fetch anyway.
                queue.get_nowait()
            queue.put_nowait(data)
        return len(queues)

    @asynccontextmanager
    async def _queue(self, topic: str):
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue)
        self._subscribers.setdefault(topic, set()).add(queue)
        try:
            yield queue
        finally:
            subscribers = self._subscribers.get(topic)
            if subscribers is not None:
                subscribers.discard(queue)
                if not subscribers:
                    del self._subscribers[topic]

    async def subscribe(self, topic: str) -> AsyncIterator[Dict[str, Any]]:
        async with self._queue(topic) as queue:
            while True:
                yield await queue.get()

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._subscribers.clear()


class RedisTransport:
    """Redis pub/sub with JSON payloads."""

    def __init__(self, url: str):
        self.url = url
        self.client = aioredis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=20,
        )

    async def publish(self, topic: str, data: Dict[str, Any]) -> int:
        return await self.client.publish(topic, json.dumps(data))

    async def subscribe(self, topic: str) -> AsyncIterator[Dict[str, Any]]:
        pubsub = self.client.pubsub(ignore_subscribe_messages=True)
        await pubsub.subscribe(topic)
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    yield json.loads(message["data"])
                except (TypeError, ValueError):
                    logger.warning("Dropping malformed message on %s", topic)
        finally:
            await pubsub.unsubscribe(topic)
            await pubsub.aclose()

    async def ping(self) -> bool:
        return await self.client.ping()

    async def close(self) -> None:
        await self.client.aclose()
        logger.info("Redis event transport closed")


def create_transport(redis_url: str = ""):
    if redis_url:
        logger.info("Using Redis event transport")
        return RedisTransport(redis_url)
    logger.info("REDIS_URL not set; using in-process event transport")
    return LocalTransport()
