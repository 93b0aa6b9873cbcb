"""
Field codec for kvorm.

Converts field values to and from their string store representation,
dispatched by storage category and scalar kind.

Encoding rules:
    - str: stored as-is
    - int: decimal digits, no decimal point, no leading zeros ("25")
    - float: shortest round-trip repr ("2.5", "25.0", "1e+16", "nan")
    - bool: "true" / "false"

Decoding accepts exactly those forms (a float field also accepts an
integer form). Whitespace, underscores, signs on zero and other spellings
that Python's int()/float() would tolerate are rejected.

Invariants:
    - decode(encode(v)) == v for every supported scalar value
    - Set encoding deduplicates by encoded form, keeping first-seen order
    - List encoding preserves element order
    - Failures raise ConversionError naming the field; nothing is coerced silently
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import ConversionError
from .schema.types import FieldDef, ModelMeta, ScalarKind, StorageCategory

_INTEGER_FORM = re.compile(r"0|-?[1-9][0-9]*")
_FLOAT_FORM = re.compile(r"-?(?:[0-9]+(?:\.[0-9]+)?(?:e[-+]?[0-9]+)?|inf)|nan")
_BOOLEAN_VALUES = {"true": True, "false": False}
_COLLECTION_TYPES = (list, tuple, set, frozenset)


def encode_value(kind: ScalarKind, value: Any, field_name: str) -> str:
    """Encode one scalar value.

    Raises:
        ConversionError: If value has the wrong type for kind, or has no
            string form (an int too large to print or to convert to float)
    """
    try:
        if kind == ScalarKind.STRING:
            if isinstance(value, str):
                return value
        elif kind == ScalarKind.INTEGER:
            if isinstance(value, int) and not isinstance(value, bool):
                return str(value)
        elif kind == ScalarKind.FLOAT:
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return repr(float(value))
        elif kind == ScalarKind.BOOLEAN:
            if isinstance(value, bool):
                return "true" if value else "false"
    except (ValueError, OverflowError) as e:
        raise ConversionError(
            f"Cannot encode field '{field_name}' as {kind.value}: {e}",
            field_name=field_name,
            value=value,
            target=kind.value,
        ) from e

    raise ConversionError(
        f"Field '{field_name}' expects {kind.value}, got {type(value).__name__}",
        field_name=field_name,
        value=value,
        target=kind.value,
    )


def decode_value(kind: ScalarKind, raw: str, field_name: str) -> Any:
    """Decode one stored string into a scalar value.

    Raises:
        ConversionError: If raw is not the exact stored form of kind
    """
    try:
        if kind == ScalarKind.STRING:
            if isinstance(raw, str):
                return raw
        elif kind == ScalarKind.INTEGER:
            if _INTEGER_FORM.fullmatch(raw):
                return int(raw)
        elif kind == ScalarKind.FLOAT:
            if _FLOAT_FORM.fullmatch(raw):
                return float(raw)
        elif kind == ScalarKind.BOOLEAN:
            if raw in _BOOLEAN_VALUES:
                return _BOOLEAN_VALUES[raw]
    except (TypeError, ValueError):
        pass

    raise ConversionError(
        f"Cannot decode {raw!r} as {kind.value} for field '{field_name}'",
        field_name=field_name,
        value=raw,
        target=kind.value,
    )


def encode_scalar(field: FieldDef, value: Any) -> str:
    return encode_value(field.kind, value, field.name)


def decode_scalar(field: FieldDef, raw: str) -> Any:
    return decode_value(field.kind, raw, field.name)


def _check_collection(field: FieldDef, values: Any) -> None:
    if not isinstance(values, _COLLECTION_TYPES):
        raise ConversionError(
            f"Field '{field.name}' expects a collection of {field.kind.value}, "
            f"got {type(values).__name__}",
            field_name=field.name,
            value=values,
            target=field.kind.value,
        )


def encode_list(field: FieldDef, values: Iterable[Any]) -> List[str]:
    """Encode a list field, preserving order."""
    _check_collection(field, values)
    return [encode_value(field.kind, v, field.name) for v in values]


def encode_set(field: FieldDef, values: Iterable[Any]) -> List[str]:
    """Encode a set field; duplicates (by encoded form) are dropped."""
    _check_collection(field, values)
    seen: Dict[str, None] = {}
    for v in values:
        seen.setdefault(encode_value(field.kind, v, field.name), None)
    return list(seen)


def decode_list(field: FieldDef, raws: Iterable[str]) -> Any:
    """Decode stored list elements into the field's container."""
    decoded = [decode_value(field.kind, r, field.name) for r in raws]
    container = field.container or list
    return decoded if container is list else container(decoded)


def decode_set(field: FieldDef, raws: Iterable[str]) -> Any:
    """Decode stored set members into the field's container.

    Fields declared as list/tuple but stored as sets come back as a
    deduplicated sequence in the order the members were given.
    """
    container = field.container or set
    if container in (set, frozenset):
        return container(decode_value(field.kind, r, field.name) for r in raws)
    unique: Dict[Any, None] = {}
    for r in raws:
        unique.setdefault(decode_value(field.kind, r, field.name), None)
    return container(unique)


def encode_collection(field: FieldDef, values: Any) -> List[str]:
    if field.category == StorageCategory.SET:
        return encode_set(field, values)
    return encode_list(field, values)


def decode_collection(field: FieldDef, raws: Iterable[str]) -> Any:
    if field.category == StorageCategory.SET:
        return decode_set(field, raws)
    return decode_list(field, raws)


def encode_record(meta: ModelMeta, record: Any) -> Tuple[Dict[str, str], Dict[str, List[str]]]:
    """Encode every persistable field of a record.

    Returns:
        Tuple of (hash field -> string, collection field -> encoded elements)

    Raises:
        ConversionError: If any field value has the wrong type
    """
    scalars: Dict[str, str] = {}
    collections: Dict[str, List[str]] = {}
    for field in meta.fields:
        value = getattr(record, field.name)
        if field.is_scalar:
            scalars[field.name] = encode_scalar(field, value)
        else:
            collections[field.name] = encode_collection(field, value)
    return scalars, collections


def decode_record_fields(
    meta: ModelMeta,
    scalars: Mapping[str, Optional[str]],
    collections: Mapping[str, Iterable[str]],
) -> Dict[str, Any]:
    """Decode stored strings into field values.

    A scalar absent from the hash (field added after the record was saved)
    takes the field's default.

    Raises:
        ConversionError: If a value does not decode, or an absent scalar
            has no default
    """
    values: Dict[str, Any] = {}
    for field in meta.fields:
        if field.is_scalar:
            raw = scalars.get(field.name)
            if raw is None:
                if not field.has_default:
                    raise ConversionError(
                        f"Field '{field.name}' is missing from stored {meta.kind} "
                        "and has no default",
                        field_name=field.name,
                        target=field.kind.value,
                    )
                values[field.name] = field.get_default()
            else:
                values[field.name] = decode_scalar(field, raw)
        else:
            values[field.name] = decode_collection(field, collections.get(field.name, ()))
    return values
