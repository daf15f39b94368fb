"""Async Redis client for revoked-token bookkeeping."""
from __future__ import annotations
from typing import Optional
from redis.asyncio import Redis, from_url

from pokerpal.config import config
from pokerpal.utils.logger import get_logger

logger = get_logger(__name__)

REVOKED_PREFIX = "revoked:"


class RedisClient:
    """Holds one connection and the revocation keyspace.

    A revoked token is stored under ``revoked:<fingerprint>`` and expires on
    its own once the token would have expired anyway.
    """

    _instance: Optional["RedisClient"] = None
    _redis: Optional[Redis] = None

    def __new__(cls) -> "RedisClient":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def connect(self) -> None:
        if self._redis is None:
            self._redis = from_url(config.redis_url, encoding="utf-8", decode_responses=True)
            logger.info(f"Connected to Redis at {config.redis_url}")

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            logger.info("Disconnected from Redis")

    @property
    def redis(self) -> Redis:
        """Get Redis connection, raise if not connected."""
        if self._redis is None:
            raise RuntimeError("Redis not connected. Call connect() first.")
        return self._redis

    async def revoke(self, fingerprint: str, ttl_seconds: int) -> None:
        """Mark a token revoked for ``ttl_seconds`` (at least one second)."""
        await self.redis.set(REVOKED_PREFIX + fingerprint, "1", ex=max(ttl_seconds, 1))

    async def is_revoked(self, fingerprint: str) -> bool:
        return await self.redis.exists(REVOKED_PREFIX + fingerprint) > 0


redis_client = RedisClient()
