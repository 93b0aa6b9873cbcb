"""
Retrieval engine for kvorm.

Reconstructs records from their stored representation.

Read path for one id:
    1. Ids that cannot be in the key scheme (see keys.is_valid_id) are
       NotFoundError without touching the store
    2. HGETALL primary key in one command (empty -> NotFoundError)
    3. LRANGE / SMEMBERS each auxiliary key
    4. Decode, then build a new instance or assign onto a caller's instance

Invariants:
    - An absent primary key is NotFoundError, never an empty record
    - find_all() skips index ids whose primary key is gone: the index may
      briefly list ids whose save or delete is still in flight
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Type, TypeVar

from ..codec import decode_record_fields
from ..errors import NotFoundError
from ..schema.registry import ModelRegistry
from ..schema.types import ModelMeta, StorageCategory
from ..store.base import StoreSession
from . import keys

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetrievalEngine:
    """Loads records through a store session.

    Example:
        >>> engine = RetrievalEngine(registry)
        >>> async with client.session() as session:
        ...     person = await engine.find_by_id(session, "person", person_id)
    """

    def __init__(self, registry: ModelRegistry) -> None:
        self.registry = registry

    async def find_by_id(self, session: StoreSession, kind: str, record_id: str) -> Any:
        """Load a new instance of the class registered for kind.

        Raises:
            UnregisteredTypeError: If kind is not registered
            NotFoundError: If no primary key exists for the id
            ConversionError: If stored data does not decode
        """
        meta = self.registry.get(kind)
        values = await self._load_values(session, meta, record_id)
        return _construct(meta, values)

    async def get(self, session: StoreSession, model_cls: Type[T], record_id: str) -> T:
        """Typed find_by_id: load an instance of model_cls."""
        meta = self.registry.get(model_cls)
        values = await self._load_values(session, meta, record_id)
        return _construct(meta, values)

    async def scan_by_id(self, session: StoreSession, target: Any, record_id: str) -> None:
        """Populate a caller-supplied instance in place.

        Raises:
            UnregisteredTypeError: If target's class is not registered
            NotFoundError: If no primary key exists for the id
            ConversionError: If stored data does not decode
        """
        meta = self.registry.get_for(target)
        values = await self._load_values(session, meta, record_id)
        for name, value in values.items():
            setattr(target, name, value)

    async def find_all(self, session: StoreSession, kind: str) -> List[Any]:
        """Load every record listed in the kind's index.

        Ids are visited in sorted order; the index itself is unordered.
        """
        meta = self.registry.get(kind)
        ids = await session.set_members(keys.index_key(kind))

        records = []
        for record_id in sorted(ids):
            try:
                values = await self._load_values(session, meta, record_id)
            except NotFoundError:
                logger.warning(f"Skipping {kind} {record_id}: listed in index but has no data")
                continue
            records.append(_construct(meta, values))
        return records

    async def count(self, session: StoreSession, kind: str) -> int:
        """Number of ids in the kind's index."""
        self.registry.get(kind)
        return await session.set_size(keys.index_key(kind))

    async def exists(self, session: StoreSession, kind: str, record_id: str) -> bool:
        """Whether the id is both indexed and has a primary key."""
        self.registry.get(kind)
        if not keys.is_valid_id(record_id):
            return False
        if not await session.set_contains(keys.index_key(kind), record_id):
            return False
        return await session.key_exists(keys.primary_key(kind, record_id))

    async def _load_values(
        self, session: StoreSession, meta: ModelMeta, record_id: str
    ) -> Dict[str, Any]:
        if not keys.is_valid_id(record_id):
            raise NotFoundError(meta.kind, record_id)

        # Saved records always hold their id, so an empty hash means absent
        stored = await session.hash_get_all(keys.primary_key(meta.kind, record_id))
        if not stored:
            raise NotFoundError(meta.kind, record_id)

        scalars = {f.name: stored.get(f.name) for f in meta.scalar_fields}
        if scalars.get(meta.id_field) is None:
            scalars[meta.id_field] = record_id

        collections: Dict[str, List[str]] = {}
        for field in meta.collection_fields:
            aux_key = keys.auxiliary_key(meta.kind, record_id, field.name)
            if field.category == StorageCategory.LIST:
                collections[field.name] = await session.list_range(aux_key)
            else:
                collections[field.name] = sorted(await session.set_members(aux_key))

        logger.debug(f"Loaded {meta.kind} {record_id}")
        return decode_record_fields(meta, scalars, collections)


def _construct(meta: ModelMeta, values: Dict[str, Any]) -> Any:
    """Build a new model instance from decoded field values."""
    init_values = {}
    late_values = {}
    for field in meta.fields:
        if field.init:
            init_values[field.constructor_name] = values[field.name]
        else:
            late_values[field.name] = values[field.name]

    record = meta.model_cls(**init_values)
    for name, value in late_values.items():
        setattr(record, name, value)
    return record
