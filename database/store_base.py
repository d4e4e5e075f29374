"""
Abstract Key-Value Store — Interface for all session storage backends.

Implementations:
  - InMemoryKeyValueStore (dict-based, single-process, expiry via monotonic clock)
  - RedisKeyValueStore    (redis.asyncio, SETEX / GET / DEL)

The contract is deliberately tiny so that any TTL-capable KV service can
back the session repository in database/session_store.py.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional


class SessionStoreError(Exception):
    """Raised by backends when the underlying store cannot be reached."""

    def __init__(self, message: str, backend: str = ""):
        self.backend = backend
        super().__init__(message)


class BaseKeyValueStore(ABC):
    """Interface that all key-value store backends must implement."""

    backend_name: str = "base"

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if absent or expired."""

    @abstractmethod
    async def set_with_expiry(self, key: str, ttl_seconds: int, value: str) -> None:
        """Store value under key; the key expires ttl_seconds after this write."""

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""

    async def close(self) -> None:
        return None

    async def health_check(self) -> dict[str, Any]:
        return {"backend": self.backend_name, "healthy": True}
