"""
Key-value store abstraction for kvorm.

This module provides a pluggable store backend interface supporting:
- Redis (redis-py asyncio client with a connection pool)
- In-memory (for testing)

Invariants:
    - Values cross the boundary as strings
    - Every top-level mapper operation uses exactly one session
    - Transport errors propagate unchanged; retries belong to the backend
"""

from .base import StoreClient, StoreSession, create_store_client
from .memory import InMemoryStoreClient, InMemoryStoreSession
from .redis_store import RedisStoreClient, RedisStoreSession

__all__ = [
    # Protocols
    "StoreClient",
    "StoreSession",
    # Factory
    "create_store_client",
    # Implementations
    "RedisStoreClient",
    "RedisStoreSession",
    "InMemoryStoreClient",
    "InMemoryStoreSession",
]
