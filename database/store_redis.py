"""
RedisKeyValueStore — Redis-backed KV store for production.

Uses redis.asyncio with decode_responses so values round-trip as str.
The client is created lazily on first use; no connection is opened at
import or construction time.
"""
from __future__ import annotations

import structlog
from typing import Any, Optional

from database.store_base import BaseKeyValueStore, SessionStoreError

logger = structlog.get_logger()


class RedisKeyValueStore(BaseKeyValueStore):

    backend_name = "redis"

    def __init__(self, redis_url: str = "redis://localhost:6379", client: Any = None):
        self._redis_url = redis_url
        self._redis = client

    def _client(self):
        if self._redis is None:
            import redis.asyncio as aioredis
            self._redis = aioredis.from_url(
                self._redis_url,
                decode_responses=True,
            )
            logger.info("redis_kv_store_connected", url=self._redis_url)
        return self._redis

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._client().get(key)
        except Exception as e:
            raise SessionStoreError(f"GET {key} failed: {e}", self.backend_name) from e

    async def set_with_expiry(self, key: str, ttl_seconds: int, value: str) -> None:
        try:
            await self._client().setex(key, ttl_seconds, value)
        except Exception as e:
            raise SessionStoreError(f"SETEX {key} failed: {e}", self.backend_name) from e

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return await self._client().delete(*keys)
        except Exception as e:
            raise SessionStoreError(f"DEL failed: {e}", self.backend_name) from e

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def health_check(self) -> dict[str, Any]:
        try:
            await self._client().ping()
            return {"backend": self.backend_name, "healthy": True}
        except Exception as e:
            logger.warning("redis_health_check_failed", error=str(e))
            return {"backend": self.backend_name, "healthy": False, "error": str(e)}
