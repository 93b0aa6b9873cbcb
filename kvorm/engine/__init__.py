"""
Mapping engines for kvorm.

This module provides the engines that translate records into store
commands:
- PersistenceEngine: save
- RetrievalEngine: find_by_id, get, scan_by_id, find_all, count, exists
- DeletionEngine: delete, delete_by_id

Engines issue commands through a StoreSession supplied by the caller and
never open connections themselves.
"""

from . import keys
from .deletion import DeletionEngine
from .identity import new_id
from .persistence import PersistenceEngine
from .retrieval import RetrievalEngine

__all__ = [
    "PersistenceEngine",
    "RetrievalEngine",
    "DeletionEngine",
    "new_id",
    "keys",
]
