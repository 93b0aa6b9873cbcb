"""
Redis store backend for kvorm.

Implements the StoreClient/StoreSession protocols on redis-py's asyncio
client. One ConnectionPool is opened per client; each session checks out
a single connection and returns it to the pool when the session exits.

Invariants:
    - decode_responses=True: every value read back is a str
    - list_replace is DEL then RPUSH on the session connection
    - redis.RedisError and subclasses propagate unchanged (no retry here)

How to change safely:
    - Keep each primitive a single command where Redis offers one
    - Test against a live server with KVORM_E2E_TESTS=1
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Sequence, Set

import redis.asyncio as redis

from ..errors import StoreConnectionError

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)


class RedisStoreSession:
    """StoreSession bound to one pooled Redis connection."""

    def __init__(self, conn: redis.Redis) -> None:
        self._conn = conn

    async def hash_set(self, key: str, mapping: Mapping[str, str]) -> None:
        if mapping:
            await self._conn.hset(key, mapping=dict(mapping))

    async def hash_get_fields(self, key: str, fields: Sequence[str]) -> List[Optional[str]]:
        if not fields:
            return []
        return await self._conn.hmget(key, list(fields))

    async def hash_get_all(self, key: str) -> Dict[str, str]:
        return await self._conn.hgetall(key)

    async def list_replace(self, key: str, values: Sequence[str]) -> None:
        await self._conn.delete(key)
        if values:
            await self._conn.rpush(key, *values)

    async def list_range(self, key: str) -> List[str]:
        return await self._conn.lrange(key, 0, -1)

    async def set_add(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return await self._conn.sadd(key, *members)

    async def set_remove(self, key: str, *members: str) -> int:
        if not members:
            return 0
        return await self._conn.srem(key, *members)

    async def set_contains(self, key: str, member: str) -> bool:
        return bool(await self._conn.sismember(key, member))

    async def set_members(self, key: str) -> Set[str]:
        return await self._conn.smembers(key)

    async def set_size(self, key: str) -> int:
        return await self._conn.scard(key)

    async def key_exists(self, key: str) -> bool:
        return await self._conn.exists(key) > 0

    async def key_delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self._conn.delete(*keys)


class RedisStoreClient:
    """StoreClient backed by a redis-py asyncio connection pool.

    Example:
        >>> client = RedisStoreClient(Settings(redis_host="localhost"))
        >>> await client.connect()
        >>> async with client.session() as session:
        ...     await session.set_members("person:index")
        >>> await client.close()
    """

    def __init__(
        self,
        settings: Optional["Settings"] = None,
        pool: Optional[redis.ConnectionPool] = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Connection settings (loaded from env if not provided)
            pool: Optional pre-built connection pool for testing or DI
        """
        if settings is None:
            from ..config import get_settings

            settings = get_settings()
        self.settings = settings
        self._pool = pool
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """Open the pool and verify the server answers PING."""
        if self._connected:
            return
        if self._pool is None:
            password = self.settings.redis_password
            self._pool = redis.ConnectionPool(
                host=self.settings.redis_host,
                port=self.settings.redis_port,
                db=self.settings.redis_db,
                password=password.get_secret_value() if password else None,
                max_connections=self.settings.redis_max_connections,
                socket_timeout=self.settings.redis_socket_timeout,
                socket_connect_timeout=self.settings.redis_socket_connect_timeout,
                decode_responses=True,
            )
        client = redis.Redis(connection_pool=self._pool)
        await client.ping()
        self._connected = True
        logger.info(
            "Redis store connected: %s:%s/%s",
            self.settings.redis_host,
            self.settings.redis_port,
            self.settings.redis_db,
        )

    async def close(self) -> None:
        """Disconnect every pooled connection."""
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None
        self._connected = False
        logger.info("Redis store disconnected")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[RedisStoreSession]:
        """Check out one connection for the duration of the block."""
        if not self._connected or self._pool is None:
            raise StoreConnectionError("Redis store client is not connected")
        conn = redis.Redis(connection_pool=self._pool, single_connection_client=True)
        try:
            await conn.initialize()
            yield RedisStoreSession(conn)
        finally:
            await conn.aclose()
