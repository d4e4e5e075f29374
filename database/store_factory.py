"""
Store Factory — Create the right key-value backend from configuration.

Configuration in settings.yaml:
    session:
      # Where session records live
      #   "memory": in-process dict (development, testing)
      #   "redis":  Redis / any Redis-protocol service (production)
      backend: "memory"
      redis_url: "redis://localhost:6379"

Usage:
    from database.store_factory import create_kv_store, get_kv_store
    store = create_kv_store(config)     # Create from config dict
    store = get_kv_store()              # Get singleton instance
"""
from __future__ import annotations

import structlog
from typing import Optional

from database.store_base import BaseKeyValueStore

logger = structlog.get_logger()

_instance: Optional[BaseKeyValueStore] = None


def create_kv_store(config: dict = None) -> BaseKeyValueStore:
    """
    Factory: create the appropriate key-value store backend.

    Args:
        config: dict with keys:
            backend:   "memory" | "redis"  (default: "memory")
            redis_url: str (for redis backend)
    """
    global _instance
    if _instance is not None:
        return _instance

    config = config or {}
    backend = config.get("backend", "memory")

    if backend == "redis":
        from database.store_redis import RedisKeyValueStore
        url = config.get("redis_url") or "redis://localhost:6379"
        _instance = RedisKeyValueStore(redis_url=url)
        logger.info("kv_store_created", backend="redis", url=url)

    else:  # "memory" or default
        from database.store_memory import InMemoryKeyValueStore
        _instance = InMemoryKeyValueStore()
        logger.info("kv_store_created", backend="memory")

    return _instance


def get_kv_store() -> BaseKeyValueStore:
    """Return the singleton store instance, creating a memory store if none exists."""
    global _instance
    if _instance is None:
        _instance = create_kv_store()
    return _instance


def reset_kv_store() -> None:
    """Reset the singleton (for testing)."""
    global _instance
    _instance = None
