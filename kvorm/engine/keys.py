"""Store key builders for kvorm.

The key scheme is a persisted-state contract; other tooling reads it
directly. Changing any format here is a breaking change.

    <kind>:<id>          hash of scalar fields (primary key)
    <kind>:<id>:<field>  list or set field contents (auxiliary key)
    <kind>:index         set of live ids for the kind (index key)

Ids must be non-empty, must not contain ":" and must not be "index";
is_valid_id() is the single check.
"""

from __future__ import annotations

from typing import List

from ..schema.types import ModelMeta

KEY_SEPARATOR = ":"
INDEX_SUFFIX = "index"


def primary_key(kind: str, record_id: str) -> str:
    return f"{kind}{KEY_SEPARATOR}{record_id}"


def auxiliary_key(kind: str, record_id: str, field_name: str) -> str:
    return f"{kind}{KEY_SEPARATOR}{record_id}{KEY_SEPARATOR}{field_name}"


def index_key(kind: str) -> str:
    return f"{kind}{KEY_SEPARATOR}{INDEX_SUFFIX}"


def auxiliary_keys(meta: ModelMeta, record_id: str) -> List[str]:
    """Auxiliary keys for every list/set field of a record."""
    return [auxiliary_key(meta.kind, record_id, f.name) for f in meta.collection_fields]


def is_valid_id(record_id: str) -> bool:
    """Whether an id addresses only its own record's keys.

    An id containing the separator could name another record's auxiliary
    key, and the index suffix would name the kind's index set.
    """
    return bool(record_id) and KEY_SEPARATOR not in record_id and record_id != INDEX_SUFFIX
