"""
Redis session backend.

Session payloads are stored as JSON strings with a TTL. Unlike a cache, a
lost write silently drops the user's answers, so backend failures raise
RedisError instead of degrading to a miss.
"""

import json
from typing import Any, Optional

import structlog
from benefitflow.core.config import settings
from benefitflow.core.exceptions import RedisError
from redis import asyncio as aioredis
from redis.exceptions import RedisError as RedisLibraryError

logger = structlog.get_logger()


class RedisClient:
    def __init__(self, url: Optional[str] = None, max_connections: int = 10):
        self.url = url or settings.redis_url
        self.max_connections = max_connections
        self.redis: Optional[aioredis.Redis] = None
        self.pool: Optional[aioredis.ConnectionPool] = None

    async def connect(self) -> None:
        self.pool = aioredis.ConnectionPool.from_url(
            self.url,
            max_connections=self.max_connections,
            encoding="utf-8",
            decode_responses=True,
            socket_keepalive=True,
        )
        self.redis = aioredis.Redis(connection_pool=self.pool)
        try:
            await self.redis.ping()
        except RedisLibraryError as e:
            logger.error("redis_connection_failed", error=str(e))
            raise RedisError("Session store unavailable", details={"error": str(e)}) from e
        logger.info("redis_connected", pool_size=self.max_connections)

    async def disconnect(self) -> None:
        if self.redis:
            await self.redis.aclose()
        if self.pool:
            await self.pool.disconnect()
        self.redis = None
        logger.info("redis_disconnected")

    def _client(self) -> aioredis.Redis:
        if self.redis is None:
            raise RedisError("Session store is not connected")
        return self.redis

    async def get(self, key: str) -> Optional[Any]:
        try:
            value = await self._client().get(key)
        except RedisLibraryError as e:
            logger.error("redis_get_error", key=key, error=str(e))
            raise RedisError("Could not read session", details={"key": key}) from e
        if value is None:
            return None
        try:
            return json.loads(value)
        except ValueError:
            logger.warning("redis_payload_not_json", key=key)
            return None

    async def set(self, key: str, value: Any, expire: int = 3600) -> bool:
        try:
            await self._client().set(key, json.dumps(value), ex=expire)
        except RedisLibraryError as e:
            logger.error("redis_set_error", key=key, error=str(e))
            raise RedisError("Could not write session", details={"key": key}) from e
        return True

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self._client().delete(key))
        except RedisLibraryError as e:
            logger.error("redis_delete_error", key=key, error=str(e))
            raise RedisError("Could not delete session", details={"key": key}) from e


redis_client = RedisClient()
