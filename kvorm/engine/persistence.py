"""
Persistence engine for kvorm.

Writes a record's primary hash, auxiliary list/set keys and index
membership.

Write order for save():
    1. Assign an id if the record has none (written back onto the record);
       ids that would collide with other keys are rejected first
    2. Encode every field (nothing is written if any field fails)
    3. HSET primary key with all scalar fields, identity included
    4. Replace each auxiliary key (list: DEL + RPUSH, set: DEL + SADD)
    5. SADD id to the kind's index key

Invariants:
    - Re-saving unchanged data leaves an identical store state
    - Auxiliary keys are replaced, never merged with prior contents
    - The first failing command propagates; earlier writes stay in place
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from ..codec import encode_record
from ..errors import InvalidIdError
from ..schema.registry import ModelRegistry
from ..schema.types import StorageCategory
from ..store.base import StoreSession
from . import keys
from .identity import new_id

logger = logging.getLogger(__name__)


class PersistenceEngine:
    """Saves records through a store session.

    Example:
        >>> engine = PersistenceEngine(registry)
        >>> async with client.session() as session:
        ...     record_id = await engine.save(session, person)
    """

    def __init__(
        self,
        registry: ModelRegistry,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self.registry = registry
        self.id_factory = id_factory

    async def save(self, session: StoreSession, record: Any) -> str:
        """Save a record and return its id.

        Raises:
            UnregisteredTypeError: If the record's class is not registered
            ConversionError: If a field value has the wrong type
            InvalidIdError: If the id contains ':' or is 'index'
            Backend errors from any store command (partial writes remain)
        """
        meta = self.registry.get_for(record)

        record_id = meta.get_id(record)
        assign = not record_id
        if assign:
            record_id = self.id_factory()
        if not keys.is_valid_id(record_id):
            raise InvalidIdError(meta.kind, record_id)
        if assign:
            meta.set_id(record, record_id)
            logger.debug(f"Assigned id {record_id} to new {meta.kind}")

        scalars, collections = encode_record(meta, record)

        await session.hash_set(keys.primary_key(meta.kind, record_id), scalars)

        for field in meta.collection_fields:
            aux_key = keys.auxiliary_key(meta.kind, record_id, field.name)
            values = collections[field.name]
            if field.category == StorageCategory.LIST:
                await session.list_replace(aux_key, values)
            else:
                await session.key_delete(aux_key)
                if values:
                    await session.set_add(aux_key, *values)

        await session.set_add(keys.index_key(meta.kind), record_id)

        logger.debug(f"Saved {meta.kind} {record_id}")
        return record_id
