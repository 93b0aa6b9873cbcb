"""
Deletion engine for kvorm.

Removes a record's primary key, every auxiliary key of its kind and its
index membership.

Invariants:
    - Deleting an absent id is a no-op, not an error
    - Ids outside the key scheme (see keys.is_valid_id) cannot name a
      record, so deleting one sends no commands
    - Data keys are removed before the index entry
"""

from __future__ import annotations

import logging
from typing import Any

from ..schema.registry import ModelRegistry
from ..store.base import StoreSession
from . import keys

logger = logging.getLogger(__name__)


class DeletionEngine:
    """Deletes records through a store session."""

    def __init__(self, registry: ModelRegistry) -> None:
        self.registry = registry

    async def delete(self, session: StoreSession, record: Any) -> bool:
        """Delete a record by its identity.

        A record that was never saved (empty id) is left alone.

        Returns:
            True if any key was removed
        """
        meta = self.registry.get_for(record)
        record_id = meta.get_id(record)
        if not record_id:
            return False
        return await self.delete_by_id(session, meta.kind, record_id)

    async def delete_by_id(self, session: StoreSession, kind: str, record_id: str) -> bool:
        """Delete the record stored under kind and id.

        Returns:
            True if any key or index entry was removed

        Raises:
            UnregisteredTypeError: If kind is not registered
        """
        meta = self.registry.get(kind)
        if not keys.is_valid_id(record_id):
            return False
        data_keys = [keys.primary_key(kind, record_id), *keys.auxiliary_keys(meta, record_id)]

        removed = await session.key_delete(*data_keys)
        unindexed = await session.set_remove(keys.index_key(kind), record_id)

        if removed or unindexed:
            logger.debug(f"Deleted {kind} {record_id} ({removed} keys)")
        return bool(removed or unindexed)
