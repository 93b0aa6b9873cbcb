"""
Model registry for kvorm.

The ModelRegistry is the central authority for persistable model classes.
It provides:
- Registration of dataclass and pydantic model classes under a kind name
- One-time field classification into scalar/list/set storage categories
- Lookup by kind name, by class, or by record instance
- Freeze mechanism to prevent runtime modifications

Invariants:
    - Field classification happens once, at registration
    - Unsupported field shapes fail registration, never a later save
    - A kind name maps to exactly one class and vice versa
    - Once frozen, no new kinds can be registered

How to change safely:
    - Register all models before serving requests
    - Adding a field to a registered class is safe: records saved before the
      field existed decode it from its default
    - Renaming a kind orphans every key written under the old name

Example:
    >>> registry = ModelRegistry()
    >>> @dataclass
    ... class Person:
    ...     name: str = ""
    ...     age: int = 0
    ...     id: str = ""
    >>> meta = registry.register("person", Person)
    >>> registry.get("person") is meta
    True
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import typing
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, Union

from pydantic import AliasChoices, BaseModel
from pydantic.fields import FieldInfo

from ..errors import (
    DuplicateRegistrationError,
    RegistrationError,
    RegistryFrozenError,
    UnregisteredTypeError,
    UnsupportedFieldKindError,
)
from .types import FieldDef, ModelMeta, ScalarKind, StorageCategory

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Field metadata key used to override a field's storage category
STORAGE_METADATA_KEY = "kvorm"

_SEQUENCE_ORIGINS = (list, tuple)
_SET_ORIGINS = (set, frozenset)


class ModelRegistry:
    """Registry of persistable model classes keyed by kind.

    Thread-safety:
        - Registration is thread-safe (uses internal lock)
        - Lookups are lock-free dictionary reads

    Example:
        >>> registry = ModelRegistry()
        >>> registry.register("person", Person)
        >>> registry.register("modelWithList", ModelWithList)
        >>> registry.freeze()
    """

    def __init__(self) -> None:
        """Initialize an empty, mutable registry."""
        self._by_kind: Dict[str, ModelMeta] = {}
        self._by_class: Dict[type, ModelMeta] = {}
        self._frozen = False
        self._lock = threading.Lock()

    @property
    def frozen(self) -> bool:
        """Whether the registry is frozen."""
        return self._frozen

    def register(self, kind: str, model_cls: type, *, id_field: str = "id") -> ModelMeta:
        """Register a model class under a kind name.

        Args:
            kind: Logical type name used as key prefix
            model_cls: A non-frozen dataclass or pydantic BaseModel subclass
            id_field: Name of the string identity field

        Returns:
            The computed ModelMeta

        Raises:
            RegistryFrozenError: If registry is frozen
            DuplicateRegistrationError: If kind or class is already registered
            RegistrationError: If the class cannot be used as a model
            UnsupportedFieldKindError: If a field has an unsupported shape
        """
        meta = build_model_meta(kind, model_cls, id_field=id_field)

        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(
                    f"Cannot register kind '{kind}': registry is frozen", kind=kind
                )
            if kind in self._by_kind:
                existing = self._by_kind[kind].model_cls
                raise DuplicateRegistrationError(
                    f"Kind '{kind}' already registered for {existing.__qualname__}",
                    kind=kind,
                )
            if model_cls in self._by_class:
                existing_kind = self._by_class[model_cls].kind
                raise DuplicateRegistrationError(
                    f"{model_cls.__qualname__} already registered as kind '{existing_kind}'",
                    kind=kind,
                )

            self._by_kind[kind] = meta
            self._by_class[model_cls] = meta

        logger.debug(
            f"Registered kind: {kind} ({model_cls.__qualname__}, "
            f"{len(meta.scalar_fields)} scalar, {len(meta.collection_fields)} collection fields)"
        )
        return meta

    def get(self, kind_or_cls: Union[str, type]) -> ModelMeta:
        """Get metadata by kind name or model class.

        Raises:
            UnregisteredTypeError: If not registered
        """
        meta = self.find(kind_or_cls)
        if meta is None:
            name = kind_or_cls if isinstance(kind_or_cls, str) else kind_or_cls.__qualname__
            raise UnregisteredTypeError(name)
        return meta

    def get_for(self, record: Any) -> ModelMeta:
        """Get metadata for a record instance.

        Raises:
            UnregisteredTypeError: If the record's class is not registered
        """
        return self.get(type(record))

    def find(self, kind_or_cls: Union[str, type]) -> Optional[ModelMeta]:
        """Get metadata by kind name or class, or None if not registered."""
        if isinstance(kind_or_cls, str):
            return self._by_kind.get(kind_or_cls)
        return self._by_class.get(kind_or_cls)

    def kinds(self) -> Iterator[str]:
        """Iterate over registered kind names."""
        yield from self._by_kind.keys()

    def __contains__(self, kind_or_cls: object) -> bool:
        if isinstance(kind_or_cls, (str, type)):
            return self.find(kind_or_cls) is not None
        return False

    def __len__(self) -> int:
        return len(self._by_kind)

    def freeze(self) -> None:
        """Freeze the registry. Irreversible.

        Raises:
            RegistryFrozenError: If already frozen
        """
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError("Registry is already frozen")
            self._frozen = True
        logger.info(f"Model registry frozen with {len(self._by_kind)} kinds")

    def to_dict(self) -> dict:
        """Convert registry to dictionary representation, sorted by kind."""
        return {"kinds": [self._by_kind[k].to_dict() for k in sorted(self._by_kind)]}


def register_model(
    registry: ModelRegistry, kind: str, *, id_field: str = "id"
) -> Callable[[type[T]], type[T]]:
    """Class decorator that registers a model class.

    Example:
        >>> @register_model(registry, "person")
        ... @dataclass
        ... class Person:
        ...     name: str = ""
        ...     id: str = ""
    """

    def decorator(model_cls: type[T]) -> type[T]:
        registry.register(kind, model_cls, id_field=id_field)
        return model_cls

    return decorator


def build_model_meta(kind: str, model_cls: type, *, id_field: str = "id") -> ModelMeta:
    """Inspect a model class and build its metadata.

    Raises:
        RegistrationError: If kind name or class is unusable
        UnsupportedFieldKindError: If a field has an unsupported shape
    """
    if not kind or ":" in kind:
        raise RegistrationError(f"Invalid kind name '{kind}': must be non-empty without ':'", kind=kind)
    if not isinstance(model_cls, type):
        raise RegistrationError(f"Kind '{kind}' must be registered with a class", kind=kind)

    if issubclass(model_cls, BaseModel):
        fields = _pydantic_fields(kind, model_cls)
        is_pydantic = True
    elif dataclasses.is_dataclass(model_cls):
        fields = _dataclass_fields(kind, model_cls)
        is_pydantic = False
    else:
        raise RegistrationError(
            f"{model_cls.__qualname__} must be a dataclass or pydantic model", kind=kind
        )

    id_def = next((f for f in fields if f.name == id_field), None)
    if id_def is None:
        raise RegistrationError(
            f"{model_cls.__qualname__} has no identity field '{id_field}'", kind=kind
        )
    if not id_def.is_scalar or id_def.kind != ScalarKind.STRING:
        raise RegistrationError(
            f"Identity field '{id_field}' of {model_cls.__qualname__} must be a str", kind=kind
        )

    return ModelMeta(
        kind=kind,
        model_cls=model_cls,
        id_field=id_field,
        fields=tuple(fields),
        is_pydantic=is_pydantic,
    )


def _dataclass_fields(kind: str, model_cls: type) -> list[FieldDef]:
    params = getattr(model_cls, "__dataclass_params__", None)
    if params is not None and params.frozen:
        raise RegistrationError(
            f"{model_cls.__qualname__} is a frozen dataclass; its identity cannot be assigned",
            kind=kind,
        )

    hints = typing.get_type_hints(model_cls)
    result = []
    for f in dataclasses.fields(model_cls):
        category, scalar_kind, container = _classify(
            kind, f.name, hints.get(f.name, f.type), f.metadata.get(STORAGE_METADATA_KEY)
        )
        result.append(
            FieldDef(
                name=f.name,
                category=category,
                kind=scalar_kind,
                container=container,
                default=f.default,
                default_factory=f.default_factory,
                init=f.init,
            )
        )
    return result


def _pydantic_fields(kind: str, model_cls: type[BaseModel]) -> list[FieldDef]:
    if model_cls.model_config.get("frozen"):
        raise RegistrationError(
            f"{model_cls.__qualname__} is a frozen model; its identity cannot be assigned",
            kind=kind,
        )

    result = []
    for name, info in model_cls.model_fields.items():
        extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
        category, scalar_kind, container = _classify(
            kind, name, info.annotation, extra.get(STORAGE_METADATA_KEY)
        )
        default: Any = dataclasses.MISSING
        default_factory: Any = dataclasses.MISSING
        if info.default_factory is not None:
            default_factory = info.default_factory
        elif not info.is_required():
            default = info.default
        result.append(
            FieldDef(
                name=name,
                category=category,
                kind=scalar_kind,
                container=container,
                default=default,
                default_factory=default_factory,
                init_name=_pydantic_init_name(kind, model_cls, name, info),
            )
        )
    return result


def _pydantic_init_name(
    kind: str, model_cls: type, name: str, info: FieldInfo
) -> Optional[str]:
    """Keyword that populates a pydantic field through the constructor.

    Pydantic validates input by alias, so an aliased field must be passed
    under its alias. Alias paths into nested data cannot address a flat
    field and are rejected.
    """
    alias = info.validation_alias
    if alias is None:
        alias = info.alias
    if alias is None or alias == name:
        return None
    if isinstance(alias, str):
        return alias
    if isinstance(alias, AliasChoices):
        for choice in alias.choices:
            if isinstance(choice, str):
                return choice
    raise RegistrationError(
        f"Field '{name}' of {model_cls.__qualname__} uses an alias path; "
        "only plain string aliases are supported",
        kind=kind,
    )


def _classify(
    kind: str, name: str, annotation: Any, storage_hint: Any
) -> tuple[StorageCategory, ScalarKind, Optional[type]]:
    """Classify one field annotation into (category, scalar kind, container)."""
    hint: Optional[StorageCategory] = None
    if storage_hint is not None:
        try:
            hint = StorageCategory.from_str(storage_hint)
        except ValueError:
            raise UnsupportedFieldKindError(kind, name, annotation) from None

    scalar = ScalarKind.from_type(annotation)
    if scalar is not None:
        if hint not in (None, StorageCategory.SCALAR):
            raise UnsupportedFieldKindError(kind, name, annotation)
        return StorageCategory.SCALAR, scalar, None

    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)

    if origin is tuple:
        # Only homogeneous variable-length tuples: tuple[str, ...]
        if len(args) != 2 or args[1] is not Ellipsis:
            raise UnsupportedFieldKindError(kind, name, annotation)
        element = args[0]
    elif origin in _SEQUENCE_ORIGINS or origin in _SET_ORIGINS:
        if len(args) != 1:
            raise UnsupportedFieldKindError(kind, name, annotation)
        element = args[0]
    else:
        raise UnsupportedFieldKindError(kind, name, annotation)

    element_kind = ScalarKind.from_type(element)
    if element_kind is None:
        raise UnsupportedFieldKindError(kind, name, annotation)

    if origin in _SET_ORIGINS:
        if hint not in (None, StorageCategory.SET):
            raise UnsupportedFieldKindError(kind, name, annotation)
        return StorageCategory.SET, element_kind, origin

    if hint in (None, StorageCategory.LIST):
        return StorageCategory.LIST, element_kind, origin
    if hint == StorageCategory.SET:
        return StorageCategory.SET, element_kind, origin
    raise UnsupportedFieldKindError(kind, name, annotation)
