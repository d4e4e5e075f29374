"""
InMemoryKeyValueStore — Dict-backed KV store for development and testing.

Features:
  - Zero dependencies (no Redis)
  - Same interface and expiry semantics as RedisKeyValueStore
  - Injectable clock so tests can fast-forward past a TTL
  - All data lost on process restart

Best for: local development, unit tests, quick prototyping.
"""
from __future__ import annotations

import time
import structlog
from typing import Any, Callable, Optional

from database.store_base import BaseKeyValueStore

logger = structlog.get_logger()


class InMemoryKeyValueStore(BaseKeyValueStore):
    """
    key → (value, expires_at). Expired entries are dropped lazily on read
    and purged on every write.
    """

    backend_name = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._data: dict[str, tuple[str, float]] = {}
        logger.info("inmemory_kv_store_initialized")

    async def get(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    async def set_with_expiry(self, key: str, ttl_seconds: int, value: str) -> None:
        self._purge_expired()
        self._data[key] = (value, self._clock() + ttl_seconds)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._data.pop(key, None) is not None:
                removed += 1
        return removed

    def ttl(self, key: str) -> Optional[float]:
        """Seconds until key expires, or None if absent."""
        entry = self._data.get(key)
        if entry is None:
            return None
        remaining = entry[1] - self._clock()
        return remaining if remaining > 0 else None

    def _purge_expired(self):
        now = self._clock()
        expired = [k for k, (_, exp) in self._data.items() if now >= exp]
        for k in expired:
            del self._data[k]

    # ── Stats (for debugging) ─────────────────────────────

    def stats(self) -> dict[str, int]:
        self._purge_expired()
        return {"keys": len(self._data)}

    async def health_check(self) -> dict[str, Any]:
        return {"backend": self.backend_name, "healthy": True, **self.stats()}
