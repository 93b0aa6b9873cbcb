"""
Core type definitions for the kvorm schema system.

This module defines the static metadata derived from a model class:
- ScalarKind: The string-encodable value types
- StorageCategory: Where a field lives in the store (hash, list, set)
- FieldDef: One persistable field of a model
- ModelMeta: All persistable fields of a registered model class

Invariants:
    - Every persistable field has exactly one StorageCategory
    - The identity field is a STRING scalar stored in the primary hash
    - Kind names never contain ':' (it separates key segments)
    - ModelMeta is computed once at registration and never changes

Example:
    >>> meta = registry.register("person", Person)
    >>> [f.name for f in meta.scalar_fields]
    ['name', 'age', 'id']
"""

from __future__ import annotations

from dataclasses import MISSING, dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any, Callable


class ScalarKind(Enum):
    """String-encodable value types.

    Describes a scalar field, or the element type of a list/set field.
    """

    STRING = "str"
    INTEGER = "int"
    FLOAT = "float"
    BOOLEAN = "bool"

    @classmethod
    def from_type(cls, tp: Any) -> ScalarKind | None:
        """Map a Python type to its scalar kind, or None if not scalar."""
        # bool is a subclass of int, so identity checks only
        if tp is bool:
            return cls.BOOLEAN
        if tp is int:
            return cls.INTEGER
        if tp is float:
            return cls.FLOAT
        if tp is str:
            return cls.STRING
        return None


class StorageCategory(Enum):
    """Where a field's value is stored.

    SCALAR fields share the record's primary hash; LIST and SET fields
    each get their own auxiliary key.
    """

    SCALAR = "scalar"
    LIST = "list"
    SET = "set"

    @classmethod
    def from_str(cls, value: str) -> StorageCategory:
        """Convert string representation to StorageCategory.

        Raises:
            ValueError: If value is not a valid category
        """
        for category in cls:
            if category.value == value:
                return category
        valid = [c.value for c in cls]
        raise ValueError(f"Invalid storage category '{value}'. Valid categories: {valid}")


@dataclass(frozen=True, kw_only=True)
class FieldDef:
    """Definition of a single persistable field.

    Attributes:
        name: Attribute name on the model (also the hash field / key suffix)
        category: Storage category
        kind: Scalar kind of the value, or of each element for LIST/SET
        container: Python container the field holds for LIST/SET
            (list, tuple, set or frozenset); None for SCALAR
        default: Static default value, or MISSING
        default_factory: Default factory, or MISSING
        init: Whether the field is accepted by the model constructor
        init_name: Constructor keyword when it differs from name (pydantic
            validation alias)
    """

    name: str
    category: StorageCategory
    kind: ScalarKind
    container: type | None = None
    default: Any = MISSING
    default_factory: Callable[[], Any] | Any = MISSING
    init: bool = True
    init_name: str | None = None

    @property
    def constructor_name(self) -> str:
        """Keyword the model constructor accepts for this field."""
        return self.init_name or self.name

    @property
    def is_scalar(self) -> bool:
        return self.category == StorageCategory.SCALAR

    @property
    def has_default(self) -> bool:
        """Whether a value can be produced when the store has none."""
        return self.default is not MISSING or self.default_factory is not MISSING

    def get_default(self) -> Any:
        """Return a fresh default value.

        Raises:
            LookupError: If the field has no default
        """
        if self.default_factory is not MISSING:
            return self.default_factory()
        if self.default is not MISSING:
            return self.default
        raise LookupError(f"Field '{self.name}' has no default")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        result: dict[str, Any] = {
            "name": self.name,
            "category": self.category.value,
            "kind": self.kind.value,
        }
        if self.container is not None:
            result["container"] = self.container.__name__
        return result


@dataclass(frozen=True)
class ModelMeta:
    """Static metadata for a registered model class.

    Attributes:
        kind: Logical type name, used as key namespace prefix
        model_cls: The registered class
        id_field: Name of the identity field
        fields: All persistable fields, identity included, in declaration order
        is_pydantic: Whether model_cls is a pydantic BaseModel
    """

    kind: str
    model_cls: type
    id_field: str
    fields: tuple[FieldDef, ...] = dataclass_field(default_factory=tuple)
    is_pydantic: bool = False

    def __post_init__(self) -> None:
        names = [f.name for f in self.fields]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate field name in kind '{self.kind}'")

    @property
    def scalar_fields(self) -> tuple[FieldDef, ...]:
        return tuple(f for f in self.fields if f.category == StorageCategory.SCALAR)

    @property
    def collection_fields(self) -> tuple[FieldDef, ...]:
        """LIST and SET fields, each stored under its own auxiliary key."""
        return tuple(f for f in self.fields if f.category != StorageCategory.SCALAR)

    def get_field(self, name: str) -> FieldDef | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def get_id(self, record: Any) -> str:
        """Read the identity of a record of this kind."""
        return getattr(record, self.id_field)

    def set_id(self, record: Any, record_id: str) -> None:
        setattr(record, self.id_field, record_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "kind": self.kind,
            "model": f"{self.model_cls.__module__}.{self.model_cls.__qualname__}",
            "id_field": self.id_field,
            "fields": [f.to_dict() for f in self.fields],
        }
