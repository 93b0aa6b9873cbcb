"""Shared fixtures: a populated registry and a mapper over the in-memory store."""

import pytest
import pytest_asyncio

from kvorm import InMemoryStoreClient, Mapper

from .models import make_registry


@pytest.fixture
def registry():
    """Registry with every test model registered."""
    return make_registry()


@pytest_asyncio.fixture
async def store():
    """Connected in-memory store."""
    client = InMemoryStoreClient()
    await client.connect()
    yield client
    await client.close()


@pytest.fixture
def mapper(registry, store):
    """Mapper over the in-memory store."""
    return Mapper(registry, store)
