"""
Declarations module.

Contains the raw declaration nodes and the structured-input parser.
"""

from __future__ import annotations

from .nodes import (
    Declaration,
    DeclarationKind,
    DeclarationSet,
    EntityDecl,
    EnumDecl,
    FieldDecl,
    IdentifierDecl,
    ModelDecl,
    RelationDecl,
    StructureDecl,
)
from .parser import DeclarationParser

__all__ = [
    "Declaration",
    "DeclarationKind",
    "DeclarationSet",
    "EntityDecl",
    "EnumDecl",
    "FieldDecl",
    "IdentifierDecl",
    "ModelDecl",
    "RelationDecl",
    "StructureDecl",
    "DeclarationParser",
]
