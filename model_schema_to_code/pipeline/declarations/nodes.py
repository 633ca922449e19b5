"""
Raw declaration node definitions.

These nodes represent the structured declarations handed over by the
front-end before any reference resolution happens. They are frozen:
a declaration never changes once it has been registered.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class DeclarationKind(str, Enum):
    """Origin of a declaration; each kind has its own namespace."""

    MODEL = "model"
    ENTITY = "entity"
    ENUM = "enum"
    STRUCTURE = "structure"


@dataclass(frozen=True)
class FieldDecl:
    """A field as declared: name, raw type token and attribute list."""

    name: str
    type_token: str
    attributes: tuple[str, ...] = ()

    @property
    def is_optional(self) -> bool:
        return "optional" in self.attributes


@dataclass(frozen=True)
class IdentifierDecl:
    """A named, ordered set of field names."""

    name: str
    fields: tuple[str, ...] = ()


@dataclass(frozen=True)
class RelationDecl:
    """A relation as declared.

    `type_token` is one of the eight canonical kinds ("HasOne", "ForManyPoly", ...).
    """

    name: str
    type_token: str
    through: str | None = None
    for_: tuple[str, ...] = ()
    aliased: str | None = None
    unique: bool = False


@dataclass(frozen=True)
class Declaration:
    """Base class for all declarations."""

    name: str

    kind = DeclarationKind.MODEL


@dataclass(frozen=True)
class EnumDecl(Declaration):
    """An enum: representation type and ordered symbol -> literal entries."""

    value_type: str = "String"
    entries: tuple[tuple[str, Any], ...] = ()

    kind = DeclarationKind.ENUM


@dataclass(frozen=True)
class StructureDecl(Declaration):
    """A relation-less field grouping."""

    fields: tuple[FieldDecl, ...] = ()

    kind = DeclarationKind.STRUCTURE


@dataclass(frozen=True)
class ModelDecl(Declaration):
    """A persisted data structure."""

    fields: tuple[FieldDecl, ...] = ()
    identifiers: tuple[IdentifierDecl, ...] = ()
    relations: tuple[RelationDecl, ...] = ()

    # Polymorphism
    extends: str | None = None
    identity: Any = None
    discriminator: str | None = None

    kind = DeclarationKind.MODEL


@dataclass(frozen=True)
class EntityDecl(Declaration):
    """A derived aggregation whose fields are indirection paths into Models."""

    fields: tuple[FieldDecl, ...] = ()
    identifiers: tuple[IdentifierDecl, ...] = ()
    relations: tuple[RelationDecl, ...] = ()

    kind = DeclarationKind.ENTITY


@dataclass
class DeclarationSet:
    """All declarations of one compilation run, in source order."""

    models: list[ModelDecl] = field(default_factory=list)
    entities: list[EntityDecl] = field(default_factory=list)
    enums: list[EnumDecl] = field(default_factory=list)
    structures: list[StructureDecl] = field(default_factory=list)

    def __iter__(self):
        yield from self.enums
        yield from self.structures
        yield from self.models
        yield from self.entities

    def __len__(self) -> int:
        return len(self.models) + len(self.entities) + len(self.enums) + len(self.structures)
