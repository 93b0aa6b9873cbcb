"""
kvorm - Object mapper for Redis-compatible key-value stores.

This package persists typed records (dataclasses or pydantic models) into a
key-value store:
- Scalar fields in one hash per record
- List and set fields in one auxiliary key each
- A per-kind index set listing every live record id

Key layout:
    <kind>:<id>          hash of scalar fields
    <kind>:<id>:<field>  list or set field
    <kind>:index         set of live ids

Example:
    >>> from dataclasses import dataclass
    >>> from kvorm import Mapper, ModelRegistry
    >>>
    >>> @dataclass
    ... class Person:
    ...     name: str = ""
    ...     age: int = 0
    ...     id: str = ""
    >>>
    >>> registry = ModelRegistry()
    >>> registry.register("person", Person)
    >>> async with Mapper(registry) as mapper:
    ...     bob = Person(name="Bob", age=25)
    ...     await mapper.save(bob)
    ...     assert (await mapper.get(Person, bob.id)).age == 25

Invariants:
    - A record exists when its id is in the index AND its hash exists
    - Ids are UUID4 hex strings and are never reused
    - Multi-command operations are not atomic; find_all tolerates stale index entries
"""

from ._version import __version__
from .config import Settings, StoreBackend, get_settings
from .errors import (
    ConversionError,
    DuplicateRegistrationError,
    InvalidIdError,
    KvormError,
    NotFoundError,
    RegistrationError,
    RegistryFrozenError,
    StoreConnectionError,
    StoreError,
    UnregisteredTypeError,
    UnsupportedFieldKindError,
)
from .mapper import Mapper
from .schema import (
    FieldDef,
    ModelMeta,
    ModelRegistry,
    ScalarKind,
    StorageCategory,
    register_model,
)
from .store import InMemoryStoreClient, RedisStoreClient, StoreClient, StoreSession

__all__ = [
    "__version__",
    # Mapper
    "Mapper",
    # Schema
    "ModelRegistry",
    "register_model",
    "ModelMeta",
    "FieldDef",
    "ScalarKind",
    "StorageCategory",
    # Store
    "StoreClient",
    "StoreSession",
    "RedisStoreClient",
    "InMemoryStoreClient",
    # Config
    "Settings",
    "StoreBackend",
    "get_settings",
    # Errors
    "KvormError",
    "RegistrationError",
    "UnsupportedFieldKindError",
    "DuplicateRegistrationError",
    "RegistryFrozenError",
    "UnregisteredTypeError",
    "NotFoundError",
    "InvalidIdError",
    "ConversionError",
    "StoreError",
    "StoreConnectionError",
]
