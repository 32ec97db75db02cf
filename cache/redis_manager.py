from typing import Optional

import redis.asyncio as redis
import structlog

from monitoring.persistence_metrics import track_storage_operation

logger = structlog.get_logger()


class RedisStorage:
    """Redis storage backend for persisted client state."""

    backend = "redis"

    def __init__(self, redis_url: str, ttl: Optional[int] = None, namespace: str = "lunie"):
        """
        Initialize Redis storage with connection URL.

        Args:
            redis_url: Redis connection URL
            ttl: Expire records after this many seconds, None to keep them
            namespace: Prefix of every key written
        """
        self.redis_url = redis_url
        self.ttl = ttl
        self.namespace = namespace
        self.redis: Optional[redis.Redis] = None

    async def connect(self) -> None:
        """Establish connection to Redis."""
        try:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True
            )
            await self.redis.ping()
            logger.info("redis_connection_established")
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info("redis_connection_closed")

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}" if self.namespace else key

    async def _client(self) -> redis.Redis:
        if not self.redis:
            await self.connect()
        return self.redis

    @track_storage_operation("get", backend="redis")
    async def get(self, key: str) -> Optional[str]:
        """Get a serialized record."""
        client = await self._client()
        return await client.get(self._key(key))

    @track_storage_operation("set")
    async def set(self, key: str, value: str) -> bool:
        """Store a serialized record."""
        client = await self._client()
        await client.set(self._key(key), value, ex=self.ttl)
        return True

    @track_storage_operation("delete")
    async def delete(self, key: str) -> bool:
        """Delete a record."""
        client = await self._client()
        return bool(await client.delete(self._key(key)))

    async def clear_pattern(self, pattern: str) -> int:
        """Delete all records whose key matches ``pattern``."""
        client = await self._client()
        deleted = 0
        cursor = 0
        while True:
            cursor, keys = await client.scan(
                cursor=cursor,
                match=self._key(pattern),
                count=100
            )
            if keys:
                deleted += await client.delete(*keys)
            if cursor == 0:
                break
        logger.info("redis_pattern_cleared", pattern=pattern, deleted=deleted)
        return deleted
