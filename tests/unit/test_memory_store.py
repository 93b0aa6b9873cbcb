"""
Unit tests for the in-memory store implementation.

Tests cover:
- Connection lifecycle and session accounting
- Hash, list, set and key primitives
- Wrong-type errors
- Failure injection
"""

import pytest

from kvorm.errors import StoreConnectionError, StoreError
from kvorm.store import InMemoryStoreClient, StoreClient, StoreSession


class TestInMemoryStoreClient:
    """Tests for InMemoryStoreClient."""

    @pytest.fixture
    def store(self):
        """Create a fresh, unconnected store."""
        return InMemoryStoreClient()

    @pytest.mark.asyncio
    async def test_connect_disconnect(self, store):
        """Test connection lifecycle."""
        assert not store.is_connected

        await store.connect()
        assert store.is_connected

        await store.close()
        assert not store.is_connected

    @pytest.mark.asyncio
    async def test_session_requires_connection(self, store):
        """Sessions fail if not connected."""
        with pytest.raises(StoreConnectionError):
            async with store.session():
                pass

    @pytest.mark.asyncio
    async def test_implements_protocols(self, store):
        """Client and session satisfy the store protocols."""
        await store.connect()

        assert isinstance(store, StoreClient)
        async with store.session() as session:
            assert isinstance(session, StoreSession)

    @pytest.mark.asyncio
    async def test_session_released_on_error(self, store):
        """Sessions are released when the block raises."""
        await store.connect()

        with pytest.raises(RuntimeError):
            async with store.session():
                assert store.open_sessions == 1
                raise RuntimeError("boom")

        assert store.open_sessions == 0

    @pytest.mark.asyncio
    async def test_hash_commands(self, store):
        """HSET merges fields; HMGET returns None for absent fields."""
        await store.connect()

        async with store.session() as session:
            await session.hash_set("h", {"a": "1", "b": "2"})
            await session.hash_set("h", {"b": "3"})

            assert await session.hash_get_fields("h", ["a", "b", "c"]) == ["1", "3", None]
            assert await session.hash_get_all("h") == {"a": "1", "b": "3"}
            assert await session.hash_get_fields("missing", ["a"]) == [None]
            assert await session.hash_get_all("missing") == {}

    @pytest.mark.asyncio
    async def test_list_replace(self, store):
        """list_replace overwrites, and an empty list removes the key."""
        await store.connect()

        async with store.session() as session:
            await session.list_replace("l", ["a", "b"])
            await session.list_replace("l", ["c", "a", "c"])
            assert await session.list_range("l") == ["c", "a", "c"]

            await session.list_replace("l", [])
            assert await session.key_exists("l") is False
            assert await session.list_range("l") == []

    @pytest.mark.asyncio
    async def test_set_commands(self, store):
        """SADD/SREM counts, membership and removal of emptied sets."""
        await store.connect()

        async with store.session() as session:
            assert await session.set_add("s", "a", "b", "a") == 2
            assert await session.set_add("s", "b") == 0
            assert await session.set_contains("s", "a") is True
            assert await session.set_members("s") == {"a", "b"}
            assert await session.set_size("s") == 2

            assert await session.set_remove("s", "a", "z") == 1
            assert await session.set_remove("s", "b") == 1
            assert await session.key_exists("s") is False
            assert await session.set_remove("s", "b") == 0

    @pytest.mark.asyncio
    async def test_key_delete(self, store):
        """DEL counts only keys that existed."""
        await store.connect()

        async with store.session() as session:
            await session.hash_set("h", {"a": "1"})
            await session.set_add("s", "x")

            assert await session.key_delete("h", "s", "missing") == 2
            assert store.keys() == []

    @pytest.mark.asyncio
    async def test_wrong_type(self, store):
        """Commands against a key of another type fail."""
        await store.connect()

        async with store.session() as session:
            await session.set_add("k", "a")
            with pytest.raises(StoreError, match="WRONGTYPE"):
                await session.hash_get_all("k")
            with pytest.raises(StoreError, match="WRONGTYPE"):
                await session.list_replace("k", ["a"])

    @pytest.mark.asyncio
    async def test_inject_failure(self, store):
        """Injected failure fires on the selected command after skips."""
        await store.connect()
        store.inject_failure(ConnectionError("down"), command="set_add", skip=1)

        async with store.session() as session:
            await session.hash_set("h", {"a": "1"})
            await session.set_add("s", "first")
            with pytest.raises(ConnectionError, match="down"):
                await session.set_add("s", "second")
            # One-shot: the next call succeeds
            await session.set_add("s", "third")

        assert store.dump()["s"] == {"first", "third"}

    @pytest.mark.asyncio
    async def test_command_log(self, store):
        """Commands are logged in order with their keys."""
        await store.connect()

        async with store.session() as session:
            await session.hash_set("h", {"a": "1"})
            await session.key_delete("h", "x")

        assert store.commands == [("hash_set", ("h",)), ("key_delete", ("h", "x"))]

    @pytest.mark.asyncio
    async def test_close_clears_data(self, store):
        """Closing drops all data."""
        await store.connect()
        async with store.session() as session:
            await session.set_add("s", "a")

        await store.close()
        await store.connect()

        assert store.dump() == {}
