"""
Schema module for kvorm.

This module provides the static metadata layer for model classes:
- Type definitions (FieldDef, ModelMeta, ScalarKind, StorageCategory)
- Model registry that classifies fields once per class

Invariants:
    - Field classification is computed once and cached per kind
    - Unsupported field shapes are rejected at registration time
"""

from .registry import STORAGE_METADATA_KEY, ModelRegistry, build_model_meta, register_model
from .types import FieldDef, ModelMeta, ScalarKind, StorageCategory

__all__ = [
    # Types
    "FieldDef",
    "ModelMeta",
    "ScalarKind",
    "StorageCategory",
    # Registry
    "ModelRegistry",
    "register_model",
    "build_model_meta",
    "STORAGE_METADATA_KEY",
]
