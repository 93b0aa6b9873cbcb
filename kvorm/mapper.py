"""
Caller-facing API for kvorm.

The Mapper ties a ModelRegistry to a StoreClient and runs each operation
inside its own store session:

    save(record)              -> id (assigned on first save)
    find_by_id(kind, id)      -> new record of the registered class
    get(model_cls, id)        -> typed find_by_id
    scan_by_id(target, id)    -> populate target in place
    find_all(kind)            -> every indexed record, missing data skipped
    delete(record)            -> remove record, aux keys, index entry
    delete_by_id(kind, id)    -> same, by id
    count(kind), exists(kind, id)

Invariants:
    - One session (one pooled connection) per call, released on every exit
    - No locking and no rollback across commands; see the engine modules

Example:
    >>> registry = ModelRegistry()
    >>> registry.register("person", Person)
    >>> async with Mapper(registry) as mapper:
    ...     bob = Person(name="Bob", age=25)
    ...     await mapper.save(bob)
    ...     copy = await mapper.get(Person, bob.id)
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional, Type, TypeVar

from .config import Settings, get_settings
from .engine.deletion import DeletionEngine
from .engine.identity import new_id
from .engine.persistence import PersistenceEngine
from .engine.retrieval import RetrievalEngine
from .schema.registry import ModelRegistry
from .schema.types import ModelMeta
from .store.base import StoreClient, create_store_client

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Mapper:
    """Object mapper over a key-value store.

    Attributes:
        registry: Model registry consulted for every operation
        store: Store client providing sessions
    """

    def __init__(
        self,
        registry: Optional[ModelRegistry] = None,
        store: Optional[StoreClient] = None,
        *,
        settings: Optional[Settings] = None,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        """Initialize the mapper.

        Args:
            registry: Model registry (a new empty one if not provided)
            store: Store client (built from settings if not provided)
            settings: Settings used when store is not provided
            id_factory: Generator for new record ids
        """
        self.registry = registry if registry is not None else ModelRegistry()
        if store is None:
            store = create_store_client(settings or get_settings())
        self.store = store
        self._persistence = PersistenceEngine(self.registry, id_factory=id_factory)
        self._retrieval = RetrievalEngine(self.registry)
        self._deletion = DeletionEngine(self.registry)

    async def connect(self) -> None:
        """Connect the underlying store client."""
        if not self.store.is_connected:
            await self.store.connect()

    async def close(self) -> None:
        """Close the underlying store client."""
        await self.store.close()

    async def __aenter__(self) -> Mapper:
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def register(self, kind: str, model_cls: type, *, id_field: str = "id") -> ModelMeta:
        """Register a model class with this mapper's registry."""
        return self.registry.register(kind, model_cls, id_field=id_field)

    async def save(self, record: Any) -> str:
        """Save a record, assigning an id on first save.

        Returns:
            The record's id

        Raises:
            UnregisteredTypeError: If the record's class is not registered
            ConversionError: If a field value has the wrong type
        """
        async with self.store.session() as session:
            return await self._persistence.save(session, record)

    async def find_by_id(self, kind: str, record_id: str) -> Any:
        """Load the record of kind with the given id.

        Raises:
            UnregisteredTypeError: If kind is not registered
            NotFoundError: If the record does not exist
            ConversionError: If stored data does not decode
        """
        async with self.store.session() as session:
            return await self._retrieval.find_by_id(session, kind, record_id)

    async def get(self, model_cls: Type[T], record_id: str) -> T:
        """Load a record of model_cls with the given id.

        Raises:
            UnregisteredTypeError: If model_cls is not registered
            NotFoundError: If the record does not exist
            ConversionError: If stored data does not decode
        """
        async with self.store.session() as session:
            return await self._retrieval.get(session, model_cls, record_id)

    async def scan_by_id(self, target: Any, record_id: str) -> None:
        """Load the record with the given id into target in place."""
        async with self.store.session() as session:
            await self._retrieval.scan_by_id(session, target, record_id)

    async def find_all(self, kind: str) -> List[Any]:
        """Load every record of kind. Index entries without data are skipped."""
        async with self.store.session() as session:
            return await self._retrieval.find_all(session, kind)

    async def count(self, kind: str) -> int:
        async with self.store.session() as session:
            return await self._retrieval.count(session, kind)

    async def exists(self, kind: str, record_id: str) -> bool:
        async with self.store.session() as session:
            return await self._retrieval.exists(session, kind, record_id)

    async def delete(self, record: Any) -> bool:
        """Delete a record. Deleting an unsaved or absent record is a no-op.

        Returns:
            True if anything was removed
        """
        async with self.store.session() as session:
            return await self._deletion.delete(session, record)

    async def delete_by_id(self, kind: str, record_id: str) -> bool:
        """Delete the record of kind with the given id. Absent ids are a no-op.

        Returns:
            True if anything was removed
        """
        async with self.store.session() as session:
            return await self._deletion.delete_by_id(session, kind, record_id)
