"""
E2E test fixtures for kvorm.

These tests require a running Redis server. Connection settings come from
the usual KVORM_REDIS_* variables; the database is flushed before and
after each test, so point KVORM_REDIS_DB at a scratch database.
"""

import os

import pytest
import pytest_asyncio

from kvorm import Mapper, RedisStoreClient, Settings
from kvorm.config import StoreBackend

from ..models import make_registry

# Skip E2E tests if not in E2E mode
E2E_ENABLED = os.environ.get("KVORM_E2E_TESTS", "0") == "1"


@pytest.fixture
def redis_settings():
    """Settings for the scratch Redis database."""
    return Settings(store_backend=StoreBackend.REDIS)


@pytest_asyncio.fixture
async def redis_store(redis_settings):
    """Connected Redis store client over an empty database."""
    if not E2E_ENABLED:
        pytest.skip("E2E tests disabled. Set KVORM_E2E_TESTS=1 to enable.")

    client = RedisStoreClient(redis_settings)
    await client.connect()
    async with client.session() as session:
        await session._conn.flushdb()
    yield client
    async with client.session() as session:
        await session._conn.flushdb()
    await client.close()


@pytest.fixture
def redis_mapper(redis_store):
    """Mapper over the live Redis store."""
    return Mapper(make_registry(), redis_store)
