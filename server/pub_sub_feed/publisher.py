"""
Feed Publisher

Redis pub/sub publisher used by the broadcast sink. Takes explicit channel
names and plain dict payloads; channel selection is the caller's job.

Usage:
    async with FeedPublisher(redis_url="redis://localhost:6379/0") as pub:
        await pub.publish("eddn:mining", payload)
        await pub.publish_many(["eddn:all", "eddn:schema:commodity"], payload)
"""
from __future__ import annotations

import logging
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .serializer import serialize

logger = logging.getLogger(__name__)


class PublisherError(Exception):
    """Raised when Redis is unreachable or rejects a publish."""


class FeedPublisher:
    """
    Writes JSON envelopes to Redis pub/sub channels.

    Delivery counts returned by publish() and publish_many() are the number
    of subscribers Redis reports; zero is not an error.

    Args:
        redis_url: Redis connection URL (e.g. "redis://localhost:6379/0").
    """

    def __init__(self, redis_url: str) -> None:
        if not redis_url:
            raise ValueError("redis_url must be non-empty")
        self._redis_url = redis_url
        self._redis: Redis | None = None

    @property
    def connected(self) -> bool:
        return self._redis is not None

    def _client(self) -> Redis:
        if self._redis is None:
            raise PublisherError("FeedPublisher is not connected, call connect() first")
        return self._redis

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def connect(self) -> None:
        """Open the connection and PING so a bad URL fails at startup."""
        client = Redis.from_url(self._redis_url, decode_responses=False)
        try:
            await client.ping()
        except RedisError as exc:
            await client.aclose()
            raise PublisherError(f"Cannot connect to Redis: {exc}") from exc

        self._redis = client
        logger.info("Broadcasting to Redis at %s", self._redis_url)

    async def close(self) -> None:
        """Close the connection. No-op when not connected."""
        client, self._redis = self._redis, None
        if client is not None:
            await client.aclose()
            logger.info("Stopped broadcasting to Redis")

    async def __aenter__(self) -> FeedPublisher:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    # ── Publish ───────────────────────────────────────────────────────────────

    async def publish(self, channel: str, data: dict[str, Any]) -> int:
        """
        Publish one envelope to a single channel.

        Raises:
            PublisherError: Not connected, or Redis failed.
            SerializationError: data is not JSON-encodable.
        """
        client = self._client()
        envelope = serialize(channel, data)
        try:
            return int(await client.publish(channel, envelope))
        except RedisError as exc:
            raise PublisherError(f"Redis publish failed on channel '{channel}'") from exc

    async def publish_many(self, channels: list[str], data: dict[str, Any]) -> int:
        """
        Publish the same payload to several channels in one round trip.

        Each channel gets its own envelope so subscribers can tell which
        channel a message arrived on. Returns deliveries summed over channels.

        Raises:
            PublisherError: Not connected, or the pipeline failed.
            SerializationError: data is not JSON-encodable.
        """
        client = self._client()
        if not channels:
            return 0

        pipe = client.pipeline(transaction=False)
        for name in channels:
            pipe.publish(name, serialize(name, data))

        try:
            replies = await pipe.execute()
        except RedisError as exc:
            raise PublisherError(f"Redis pipeline publish failed on {channels}") from exc

        delivered = sum(int(n) for n in replies)
        logger.debug("Broadcast to %s reached %d subscriber(s)", ",".join(channels), delivered)
        return delivered
