"""
Error types for kvorm.

This module defines all exception types raised by the mapper:
- KvormError: Base exception
- RegistrationError: Model class cannot be registered
- UnsupportedFieldKindError: Field shape has no storage category
- UnregisteredTypeError: Kind or class was never registered
- NotFoundError: Record id absent from primary storage
- InvalidIdError: Record id cannot be embedded in the key scheme
- ConversionError: Value does not encode/decode for its field
- StoreError: Failures raised by the in-memory store backend

Invariants:
    - All errors inherit from KvormError
    - Registration errors are configuration errors and are never retried
    - Transport errors from redis-py are not wrapped; they surface as-is
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class KvormError(Exception):
    """Base exception for all kvorm errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "KVORM_ERROR"
        self.details = details or {}


class RegistrationError(KvormError):
    """Model class cannot be registered.

    Raised when:
    - Class is neither a dataclass nor a pydantic model
    - Dataclass is frozen (identity cannot be written back)
    - Identity field is missing or not a string
    - Kind name is empty or contains ':'
    """

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        code: str = "REGISTRATION_ERROR",
    ) -> None:
        super().__init__(message, code=code, details={"kind": kind})
        self.kind = kind


class UnsupportedFieldKindError(RegistrationError):
    """A field's declared shape has no storage category.

    Attributes:
        kind: The kind being registered
        field_name: The offending field
        annotation: Text form of the field's annotation
    """

    def __init__(self, kind: str, field_name: str, annotation: Any) -> None:
        annotation_text = getattr(annotation, "__name__", None) or repr(annotation)
        super().__init__(
            f"Field '{field_name}' of kind '{kind}' has unsupported type {annotation_text}",
            kind=kind,
            code="UNSUPPORTED_FIELD_KIND",
        )
        self.details.update({"field_name": field_name, "annotation": annotation_text})
        self.field_name = field_name
        self.annotation = annotation_text


class DuplicateRegistrationError(RegistrationError):
    """Kind name or model class is already registered."""

    def __init__(self, message: str, kind: Optional[str] = None) -> None:
        super().__init__(message, kind=kind, code="DUPLICATE_REGISTRATION")


class RegistryFrozenError(RegistrationError):
    """Registry is frozen and cannot be modified."""

    def __init__(self, message: str, kind: Optional[str] = None) -> None:
        super().__init__(message, kind=kind, code="REGISTRY_FROZEN")


class UnregisteredTypeError(KvormError):
    """Kind or model class was never registered."""

    def __init__(self, kind: str) -> None:
        super().__init__(
            f"Type '{kind}' is not registered",
            code="UNREGISTERED_TYPE",
            details={"kind": kind},
        )
        self.kind = kind


class NotFoundError(KvormError):
    """Record not found in primary storage.

    Attributes:
        kind: Record kind
        record_id: The id that was looked up
    """

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(
            f"{kind} with id '{record_id}' not found",
            code="NOT_FOUND",
            details={"kind": kind, "record_id": record_id},
        )
        self.kind = kind
        self.record_id = record_id


class InvalidIdError(KvormError):
    """Record id would collide with another key of its kind.

    Ids containing ':' would address another record's auxiliary keys, and
    the id 'index' would address the kind's index set.

    Attributes:
        kind: Record kind
        record_id: The rejected id
    """

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(
            f"Invalid {kind} id '{record_id}': ids must not contain ':' or equal 'index'",
            code="INVALID_ID",
            details={"kind": kind, "record_id": record_id},
        )
        self.kind = kind
        self.record_id = record_id


class ConversionError(KvormError):
    """A value does not convert between its field type and stored string.

    Raised when:
    - A stored string does not parse as the field's scalar kind
    - A stored hash lacks a field that has no default
    - A record holds a value of the wrong type for its field on save

    Attributes:
        field_name: Field being converted
        value: The offending raw or in-memory value
        target: Name of the expected scalar kind
    """

    def __init__(
        self,
        message: str,
        field_name: str,
        value: Any = None,
        target: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="CONVERSION_ERROR",
            details={"field_name": field_name, "value": value, "target": target},
        )
        self.field_name = field_name
        self.value = value
        self.target = target


class StoreError(KvormError):
    """Store backend operation failed."""

    def __init__(self, message: str, code: str = "STORE_ERROR") -> None:
        super().__init__(message, code=code)


class StoreConnectionError(StoreError):
    """Store client is not connected."""

    def __init__(self, message: str = "Store client is not connected") -> None:
        super().__init__(message, code="STORE_CONNECTION_ERROR")
