"""
Base protocols for the key-value store abstraction.

This module defines the narrow command surface the mapper consumes:
- StoreSession: primitive hash/list/set/key commands on one connection
- StoreClient: owns the connection pool and hands out sessions

Invariants:
    - All keys, fields, values and members cross this boundary as str
    - Each primitive is atomic in the backend except list_replace (clear, then
      write); sequences of primitives are not atomic
    - session() acquires one connection and releases it on every exit path
    - Backends surface their own transport errors unchanged

How to change safely:
    - Protocol changes require updating every backend
    - Keep primitives single-command so atomicity stays per command
"""

from __future__ import annotations

from abc import abstractmethod
from typing import (
    TYPE_CHECKING,
    AsyncContextManager,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Set,
    runtime_checkable,
)
import logging

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


@runtime_checkable
class StoreSession(Protocol):
    """Primitive commands executed over a single store connection.

    Example:
        >>> async with client.session() as session:
        ...     await session.hash_set("person:abc", {"name": "Bob"})
        ...     await session.set_add("person:index", "abc")
    """

    @abstractmethod
    async def hash_set(self, key: str, mapping: Mapping[str, str]) -> None:
        """Set hash fields (HSET). Existing fields not in mapping are kept."""
        ...

    @abstractmethod
    async def hash_get_fields(self, key: str, fields: Sequence[str]) -> List[Optional[str]]:
        """Get hash field values (HMGET); None for absent fields or key."""
        ...

    @abstractmethod
    async def hash_get_all(self, key: str) -> Dict[str, str]:
        """Get all hash fields (HGETALL); empty dict if key is absent."""
        ...

    @abstractmethod
    async def list_replace(self, key: str, values: Sequence[str]) -> None:
        """Replace a list's contents: clear it (DEL), then append values (RPUSH)."""
        ...

    @abstractmethod
    async def list_range(self, key: str) -> List[str]:
        """Get all list elements in order (LRANGE 0 -1)."""
        ...

    @abstractmethod
    async def set_add(self, key: str, *members: str) -> int:
        """Add members to a set (SADD). Returns number newly added."""
        ...

    @abstractmethod
    async def set_remove(self, key: str, *members: str) -> int:
        """Remove members from a set (SREM). Returns number removed."""
        ...

    @abstractmethod
    async def set_contains(self, key: str, member: str) -> bool:
        """Check set membership (SISMEMBER)."""
        ...

    @abstractmethod
    async def set_members(self, key: str) -> Set[str]:
        """Get all set members (SMEMBERS); order is unspecified."""
        ...

    @abstractmethod
    async def set_size(self, key: str) -> int:
        """Get set cardinality (SCARD)."""
        ...

    @abstractmethod
    async def key_exists(self, key: str) -> bool:
        """Check whether a key exists (EXISTS)."""
        ...

    @abstractmethod
    async def key_delete(self, *keys: str) -> int:
        """Delete keys (DEL). Returns number of keys removed."""
        ...


@runtime_checkable
class StoreClient(Protocol):
    """Connection-pool owner for a key-value store backend.

    Lifecycle:
        connect() on startup, close() on shutdown. Every top-level
        operation runs inside ``async with client.session()``.

    Example:
        >>> client = RedisStoreClient(settings)
        >>> await client.connect()
        >>> async with client.session() as session:
        ...     await session.key_exists("person:index")
        >>> await client.close()
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection pool.

        Raises:
            Backend connection errors if the store is unreachable
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release all pooled connections."""
        ...

    @abstractmethod
    def session(self) -> AsyncContextManager[StoreSession]:
        """Acquire one connection for a sequence of commands."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether connect() has completed and close() has not."""
        ...


def create_store_client(settings: "Settings") -> StoreClient:
    """Factory function to create a store client from settings.

    Raises:
        ValueError: If backend is not supported
    """
    from ..config import StoreBackend
    from .memory import InMemoryStoreClient
    from .redis_store import RedisStoreClient

    if settings.store_backend == StoreBackend.REDIS:
        return RedisStoreClient(settings)
    elif settings.store_backend == StoreBackend.MEMORY:
        return InMemoryStoreClient()
    else:
        raise ValueError(f"Unsupported store backend: {settings.store_backend}")
