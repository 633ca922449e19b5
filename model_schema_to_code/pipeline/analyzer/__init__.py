"""
Analyzer module.

Contains the schema registry, reference resolution, the Intermediate
Model Graph and invariant validation.
"""

from __future__ import annotations

from .ir_nodes import (
    Cardinality,
    EntityDef,
    EnumDef,
    FieldDef,
    IdentifierDef,
    IndirectionPath,
    ModelDef,
    ModelGraph,
    Ownership,
    PathStep,
    PolymorphicHierarchy,
    RelationDef,
    RelationKind,
    StructureDef,
    TypeKind,
    TypeRef,
)
from .reference_resolver import ReferenceResolver, ResolutionResult
from .registry import SchemaRegistry
from .validator import InvariantValidator

__all__ = [
    "Cardinality",
    "EntityDef",
    "EnumDef",
    "FieldDef",
    "IdentifierDef",
    "IndirectionPath",
    "ModelDef",
    "ModelGraph",
    "Ownership",
    "PathStep",
    "PolymorphicHierarchy",
    "RelationDef",
    "RelationKind",
    "StructureDef",
    "TypeKind",
    "TypeRef",
    "ReferenceResolver",
    "ResolutionResult",
    "SchemaRegistry",
    "InvariantValidator",
]
