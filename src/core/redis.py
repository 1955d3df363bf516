"""
Redis client for change-feed fan-out.

Redis is optional: every operation returns a safe default (False / None)
when Redis is disabled or unreachable, and callers fall back to in-process
delivery.
"""
import logging

from redis.asyncio import ConnectionPool, Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class RedisClient:
    """Async Redis client with connection pooling and graceful fallback."""

    def __init__(self, url: str, enabled: bool = True, pool_size: int = 20) -> None:
        self._url = url
        self._enabled = enabled
        self._pool_size = pool_size
        self._client: Redis | None = None

    @property
    def is_connected(self) -> bool:
        """True once connect() has reached the server."""
        return self._client is not None

    async def connect(self) -> None:
        """Create the connection pool and verify the server answers."""
        if not self._enabled:
            logger.info("Redis disabled by configuration")
            return
        client = Redis(
            connection_pool=ConnectionPool.from_url(self._url, max_connections=self._pool_size),
        )
        try:
            await client.ping()
        except RedisError as e:
            logger.warning("Redis connection failed, using in-process delivery: %s", e)
            await client.aclose()
            return
        self._client = client
        logger.info("Redis connected successfully")

    async def close(self) -> None:
        """Close the connection pool."""
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None
        logger.info("Redis connection closed")

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        if self._client is None:
            return False
        try:
            return await self._client.ping()
        except RedisError:
            return False

    async def publish(self, channel: str, message: str | bytes) -> bool:
        """Publish a message; False if Redis is unavailable or the call fails."""
        if self._client is None:
            return False
        try:
            await self._client.publish(channel, message)
        except RedisError as e:
            logger.warning("Redis PUBLISH to %s failed: %s", channel, e)
            return False
        return True

    async def subscribe(self, channel: str) -> PubSub | None:
        """
        Open a pub/sub connection subscribed to channel.

        Subscribe confirmations are filtered out, so listen() yields only
        published messages. Returns None if Redis is unavailable.
        """
        if self._client is None:
            return None
        pubsub = self._client.pubsub(ignore_subscribe_messages=True)
        try:
            await pubsub.subscribe(channel)
        except RedisError as e:
            logger.warning("Redis SUBSCRIBE to %s failed: %s", channel, e)
            await pubsub.aclose()
            return None
        return pubsub

