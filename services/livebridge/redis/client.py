"""
Redis storage for in-flight login attempts.

Redis holds nothing but flow states here: each one is a JSON blob under
``lb:flow_state:<token>`` with a TTL, written once and taken once.
``FlowStateRedis`` owns the connection, the key layout and the TTL; the
state store in ``livebridge.auth.state_store`` only serializes.
"""

import redis.asyncio as aioredis

from livebridge.config import settings
from livebridge.logging_config import get_logger

logger = get_logger(__name__)

FLOW_STATE_PREFIX = "lb:flow_state:"


class FlowStateRedis:
    """Connection to the Redis instance backing the flow state store."""

    def __init__(self, ttl_seconds: int | None = None) -> None:
        self.ttl_seconds = (
            ttl_seconds if ttl_seconds is not None else settings.auth.state_ttl_seconds
        )
        self._client: aioredis.Redis | None = None

    @staticmethod
    def key(token: str) -> str:
        return FLOW_STATE_PREFIX + token

    @property
    def client(self) -> aioredis.Redis:
        if self._client is None:
            raise RuntimeError("Flow state Redis not connected, call connect() first")
        return self._client

    async def connect(self, url: str | None = None) -> None:
        url = url or str(settings.redis_url)
        logger.info("Connecting flow state Redis")
        self._client = aioredis.from_url(url, decode_responses=True)
        await self._client.ping()
        logger.info("Flow state Redis connected", ttl_seconds=self.ttl_seconds)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Flow state Redis closed")

    async def put(self, token: str, payload: str) -> None:
        """Store payload under token; it expires after ttl_seconds."""
        await self.client.set(self.key(token), payload, ex=self.ttl_seconds)

    async def take(self, token: str) -> str | None:
        """Atomically read and delete. None if unknown or expired."""
        key = self.key(token)
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.get(key)
            pipe.delete(key)
            results = await pipe.execute()
        return results[0]

    async def ping(self) -> bool:
        """Readiness: connected and answering."""
        if self._client is None:
            return False
        try:
            await self._client.ping()
        except aioredis.RedisError as e:
            logger.error("Flow state Redis unreachable", error=str(e))
            return False
        return True


# Shared by every request; connected in the app lifespan.
flow_state_redis = FlowStateRedis()
