"""
Database layer — Session persistence over a TTL key-value store.

Backends:
  - In-memory (dict-based, for development/testing)
  - Redis (redis.asyncio, for production)

Quick start:
  from database import create_kv_store, SessionStore
  store = SessionStore(create_kv_store({"backend": "memory"}))
  session = await store.load("+919876543210")
"""
from database.store_base import BaseKeyValueStore, SessionStoreError
from database.store_memory import InMemoryKeyValueStore
from database.store_redis import RedisKeyValueStore
from database.store_factory import create_kv_store, get_kv_store, reset_kv_store
from database.session_store import SessionStore, DEFAULT_TTL_SECONDS, DEFAULT_HISTORY_LIMIT

__all__ = [
    # Store interface
    "BaseKeyValueStore", "SessionStoreError",
    # Store backends
    "InMemoryKeyValueStore", "RedisKeyValueStore",
    # Factory
    "create_kv_store", "get_kv_store", "reset_kv_store",
    # Session repository
    "SessionStore", "DEFAULT_TTL_SECONDS", "DEFAULT_HISTORY_LIMIT",
]
