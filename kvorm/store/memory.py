"""
In-memory store implementation for testing.

This module provides a simple in-process key-value backend for:
- Unit tests
- Integration tests
- Local development without a Redis server

Invariants:
    - All data is lost on process exit
    - Same command semantics as the Redis backend (empty lists/sets vanish,
      commands against the wrong value type fail)
    - Each command holds an asyncio lock, so single commands are atomic

How to change safely:
    - This is test-only code, changes don't affect production
    - Keep interface compatible with StoreClient/StoreSession protocols
    - Add features to help with testing scenarios
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple, Union

from ..errors import StoreConnectionError, StoreError

logger = logging.getLogger(__name__)

Value = Union[Dict[str, str], List[str], Set[str]]


@dataclass
class _InjectedFailure:
    """A failure armed to fire on a later command."""

    exception: Exception
    command: Optional[str]
    skip: int


class InMemoryStoreSession:
    """StoreSession over an InMemoryStoreClient's data."""

    def __init__(self, client: InMemoryStoreClient) -> None:
        self._client = client

    async def hash_set(self, key: str, mapping: Mapping[str, str]) -> None:
        async with self._client._command("hash_set", key):
            if mapping:
                self._client._get(key, dict, create=True).update(mapping)

    async def hash_get_fields(self, key: str, fields: Sequence[str]) -> List[Optional[str]]:
        async with self._client._command("hash_get_fields", key):
            data = self._client._get(key, dict) or {}
            return [data.get(f) for f in fields]

    async def hash_get_all(self, key: str) -> Dict[str, str]:
        async with self._client._command("hash_get_all", key):
            return dict(self._client._get(key, dict) or {})

    async def list_replace(self, key: str, values: Sequence[str]) -> None:
        async with self._client._command("list_replace", key):
            self._client._get(key, list)
            self._client._data.pop(key, None)
            if values:
                self._client._data[key] = list(values)

    async def list_range(self, key: str) -> List[str]:
        async with self._client._command("list_range", key):
            return list(self._client._get(key, list) or [])

    async def set_add(self, key: str, *members: str) -> int:
        async with self._client._command("set_add", key):
            if not members:
                return 0
            data = self._client._get(key, set, create=True)
            before = len(data)
            data.update(members)
            return len(data) - before

    async def set_remove(self, key: str, *members: str) -> int:
        async with self._client._command("set_remove", key):
            data = self._client._get(key, set)
            if not data:
                return 0
            before = len(data)
            data.difference_update(members)
            if not data:
                del self._client._data[key]
            return before - len(data)

    async def set_contains(self, key: str, member: str) -> bool:
        async with self._client._command("set_contains", key):
            return member in (self._client._get(key, set) or ())

    async def set_members(self, key: str) -> Set[str]:
        async with self._client._command("set_members", key):
            return set(self._client._get(key, set) or ())

    async def set_size(self, key: str) -> int:
        async with self._client._command("set_size", key):
            return len(self._client._get(key, set) or ())

    async def key_exists(self, key: str) -> bool:
        async with self._client._command("key_exists", key):
            return key in self._client._data

    async def key_delete(self, *keys: str) -> int:
        async with self._client._command("key_delete", *keys):
            removed = 0
            for key in keys:
                if self._client._data.pop(key, None) is not None:
                    removed += 1
            return removed


class InMemoryStoreClient:
    """In-memory implementation of StoreClient for testing.

    Attributes:
        open_sessions: Number of sessions currently checked out
        commands: Log of (command, keys) executed, in order

    Thread safety:
        Uses an asyncio lock per command. Safe to use from multiple
        coroutines on one event loop.

    Example:
        >>> store = InMemoryStoreClient()
        >>> await store.connect()
        >>> async with store.session() as session:
        ...     await session.set_add("person:index", "abc")
        >>> store.dump()
        {'person:index': {'abc'}}
    """

    def __init__(self) -> None:
        self._data: Dict[str, Value] = {}
        self._connected = False
        self._lock = asyncio.Lock()
        self._failures: List[_InjectedFailure] = []
        self.open_sessions = 0
        self.commands: List[Tuple[str, Tuple[str, ...]]] = []

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """Connect (no-op for in-memory)."""
        self._connected = True
        logger.debug("InMemoryStoreClient connected")

    async def close(self) -> None:
        """Close and clear all data."""
        self._connected = False
        self._data.clear()
        self._failures.clear()
        logger.debug("InMemoryStoreClient closed")

    @asynccontextmanager
    async def session(self) -> AsyncIterator[InMemoryStoreSession]:
        if not self._connected:
            raise StoreConnectionError()
        self.open_sessions += 1
        try:
            yield InMemoryStoreSession(self)
        finally:
            self.open_sessions -= 1

    @asynccontextmanager
    async def _command(self, name: str, *keys: str) -> AsyncIterator[None]:
        if not self._connected:
            raise StoreConnectionError()
        async with self._lock:
            self.commands.append((name, keys))
            self._maybe_fail(name)
            yield

    def _maybe_fail(self, name: str) -> None:
        for failure in self._failures:
            if failure.command is not None and failure.command != name:
                continue
            if failure.skip > 0:
                failure.skip -= 1
                continue
            self._failures.remove(failure)
            raise failure.exception

    def _get(self, key: str, expected: type, create: bool = False) -> Any:
        value = self._data.get(key)
        if value is None:
            if not create:
                return None
            value = expected()
            self._data[key] = value
        elif not isinstance(value, expected):
            raise StoreError(
                f"WRONGTYPE Operation against key '{key}' holding the wrong kind of value",
                code="WRONGTYPE",
            )
        return value

    # Testing helpers

    def inject_failure(
        self,
        exception: Exception,
        command: Optional[str] = None,
        skip: int = 0,
    ) -> None:
        """Arm a failure for a later command.

        Args:
            exception: Exception the command raises
            command: Only fail this command name (any command if None)
            skip: Number of matching commands to let through first
        """
        self._failures.append(_InjectedFailure(exception, command, skip))

    def dump(self) -> Dict[str, Value]:
        """Copy of every key and its value (testing helper)."""
        return {
            key: (dict(v) if isinstance(v, dict) else list(v) if isinstance(v, list) else set(v))
            for key, v in self._data.items()
        }

    def keys(self) -> List[str]:
        """All keys, sorted (testing helper)."""
        return sorted(self._data)

    def clear(self) -> None:
        """Remove all data without disconnecting (testing helper)."""
        self._data.clear()
        self.commands.clear()
