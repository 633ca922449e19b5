"""
IR (Intermediate Representation) node definitions.

These nodes form the Intermediate Model Graph: every reference is
resolved, every relation has a canonical kind and every entity field
carries its pre-walked indirection path. All nodes are frozen and the
graph exposes read-only mappings, so backends can share it freely.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar

ATOMIC_TYPES = frozenset(
    {
        "UUID",
        "AutoIncrement",
        "String",
        "Integer",
        "Float",
        "Boolean",
        "Time",
        "Date",
        "Protected",
        "Sealed",
    }
)

ENUM_REPRESENTATIONS = ("String", "Integer", "Float")

OPTIONAL = "optional"
IMMUTABLE = "immutable"


class TypeKind(Enum):
    """Kind of a resolved field type."""

    ATOMIC = "atomic"
    ENUM = "enum"
    UNRESOLVED = "unresolved"  # Reference error already reported


@dataclass(frozen=True)
class TypeRef:
    """A resolved field type."""

    kind: TypeKind = TypeKind.UNRESOLVED
    name: str = ""

    @property
    def is_atomic(self) -> bool:
        return self.kind == TypeKind.ATOMIC

    @property
    def is_enum(self) -> bool:
        return self.kind == TypeKind.ENUM

    @property
    def is_resolved(self) -> bool:
        return self.kind != TypeKind.UNRESOLVED


class Ownership(Enum):
    FOR = "For"
    HAS = "Has"


class Cardinality(Enum):
    ONE = "One"
    MANY = "Many"


class RelationKind(Enum):
    """The eight canonical relation kinds."""

    HAS_ONE = "HasOne"
    HAS_MANY = "HasMany"
    FOR_ONE = "ForOne"
    FOR_MANY = "ForMany"
    HAS_ONE_POLY = "HasOnePoly"
    HAS_MANY_POLY = "HasManyPoly"
    FOR_ONE_POLY = "ForOnePoly"
    FOR_MANY_POLY = "ForManyPoly"

    @property
    def ownership(self) -> Ownership:
        return Ownership(self.value[:3])

    @property
    def cardinality(self) -> Cardinality:
        return Cardinality.MANY if "Many" in self.value else Cardinality.ONE

    @property
    def polymorphic(self) -> bool:
        return self.value.endswith("Poly")

    @classmethod
    def from_parts(cls, ownership: Ownership, cardinality: Cardinality, polymorphic: bool = False) -> RelationKind:
        return cls(f"{ownership.value}{cardinality.value}{'Poly' if polymorphic else ''}")


@dataclass(frozen=True)
class PathStep:
    """One relation hop of an indirection path."""

    model: str  # Model the hop starts from
    relation: str  # Declared relation name on that model
    target: str  # Model the hop lands on (alias already applied)


@dataclass(frozen=True)
class IndirectionPath:
    """A pre-walked entity field path: root model, relation hops, terminal field."""

    root: str
    steps: tuple[PathStep, ...] = ()
    terminal_model: str = ""
    terminal_field: str = ""

    @property
    def dotted(self) -> str:
        return ".".join([self.root, *(step.relation for step in self.steps), self.terminal_field])

    @property
    def models(self) -> tuple[str, ...]:
        """Every model visited, root first."""
        return (self.root, *(step.target for step in self.steps))


@dataclass(frozen=True)
class FieldDef:
    """A resolved field."""

    KNOWN_ATTRIBUTES: ClassVar[tuple[str, ...]] = (OPTIONAL, IMMUTABLE)

    name: str = ""
    type_ref: TypeRef = field(default_factory=TypeRef)
    attributes: tuple[str, ...] = ()
    optional: bool = False

    # Entity fields only
    path: IndirectionPath | None = None

    # Set on fields copied from a polymorphic base
    inherited_from: str | None = None

    # Discriminator field added for a base that did not declare one
    synthesized: bool = False

    @property
    def immutable(self) -> bool:
        return IMMUTABLE in self.attributes

    @property
    def pass_through_attributes(self) -> tuple[str, ...]:
        return tuple(a for a in self.attributes if a not in self.KNOWN_ATTRIBUTES)


@dataclass(frozen=True)
class IdentifierDef:
    """A named, ordered set of field names."""

    name: str = ""
    fields: tuple[str, ...] = ()

    @property
    def is_primary(self) -> bool:
        return self.name == "primary"

    @property
    def is_composite(self) -> bool:
        return len(self.fields) > 1


@dataclass(frozen=True)
class RelationDef:
    """A relation with its canonical kind and resolved target(s).

    `name` is always the declared name; `target` is the alias target for
    aliased relations. For*Poly relations have no single target but a set
    of `candidates`.
    """

    name: str = ""
    kind: RelationKind = RelationKind.HAS_ONE
    owner: str = ""
    target: str | None = None
    target_kind: str = "model"  # Kind of declaration `target` names: "model" or "entity"
    candidates: tuple[str, ...] = ()
    through: str | None = None
    aliased: bool = False
    unique: bool = False
    inherited_from: str | None = None

    @property
    def is_resolved(self) -> bool:
        return self.target is not None or bool(self.candidates)

    @property
    def to_many(self) -> bool:
        return self.kind.cardinality == Cardinality.MANY

    @property
    def is_for_poly(self) -> bool:
        return self.kind.polymorphic and self.kind.ownership == Ownership.FOR

    @property
    def is_has_poly(self) -> bool:
        return self.kind.polymorphic and self.kind.ownership == Ownership.HAS

    @property
    def targets(self) -> tuple[str, ...]:
        """Every declaration this relation may point to."""
        if self.is_for_poly:
            return self.candidates
        return (self.target,) if self.target else ()


@dataclass(frozen=True)
class EnumDef:
    """An enum with its ordered symbol -> literal members."""

    kind: ClassVar[str] = "enum"

    name: str = ""
    value_type: str = "String"
    members: tuple[tuple[str, Any], ...] = ()

    @property
    def symbols(self) -> tuple[str, ...]:
        return tuple(symbol for symbol, _ in self.members)

    @property
    def values(self) -> tuple[Any, ...]:
        return tuple(value for _, value in self.members)


@dataclass(frozen=True)
class _FieldOwner:
    """Lookup helpers for declarations holding fields."""

    name: str = ""
    fields: tuple[FieldDef, ...] = ()

    def field(self, name: str) -> FieldDef | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None


@dataclass(frozen=True)
class StructureDef(_FieldOwner):
    """A relation-less field grouping."""

    kind: ClassVar[str] = "structure"


@dataclass(frozen=True)
class _Identified(_FieldOwner):
    """Lookup helpers for declarations holding identifiers and relations."""

    identifiers: tuple[IdentifierDef, ...] = ()
    relations: tuple[RelationDef, ...] = ()

    @property
    def primary(self) -> IdentifierDef | None:
        for identifier in self.identifiers:
            if identifier.is_primary:
                return identifier
        return None

    def relation(self, name: str) -> RelationDef | None:
        for relation in self.relations:
            if relation.name == name:
                return relation
        return None


@dataclass(frozen=True)
class ModelDef(_Identified):
    """A resolved Model.

    For subclasses, `fields`, `identifiers` and `relations` already contain
    the members inherited from the base (marked with `inherited_from`).
    """

    kind: ClassVar[str] = "model"

    base: str | None = None
    identity: Any = None
    discriminator: str | None = None

    @property
    def is_subclass(self) -> bool:
        return self.base is not None

    @property
    def is_polymorphic_base(self) -> bool:
        return self.discriminator is not None

    @property
    def own_fields(self) -> tuple[FieldDef, ...]:
        return tuple(f for f in self.fields if f.inherited_from is None)

    @property
    def own_relations(self) -> tuple[RelationDef, ...]:
        return tuple(r for r in self.relations if r.inherited_from is None)


@dataclass(frozen=True)
class EntityDef(_Identified):
    """A resolved Entity; every field carries its indirection path."""

    kind: ClassVar[str] = "entity"

    @property
    def roots(self) -> tuple[str, ...]:
        """Distinct root models of the entity's paths, in field order."""
        roots: list[str] = []
        for f in self.fields:
            if f.path and f.path.root not in roots:
                roots.append(f.path.root)
        return tuple(roots)


@dataclass(frozen=True)
class PolymorphicHierarchy:
    """A base Model and its closed set of subclass variants keyed by identity."""

    base: str = ""
    discriminator: str = ""
    variants: tuple[tuple[Any, str], ...] = ()  # (identity, subclass name)

    @property
    def identities(self) -> tuple[Any, ...]:
        return tuple(identity for identity, _ in self.variants)

    @property
    def variant_names(self) -> tuple[str, ...]:
        return tuple(name for _, name in self.variants)

    def identity_of(self, model_name: str) -> Any:
        for identity, name in self.variants:
            if name == model_name:
                return identity
        return None


@dataclass(frozen=True)
class ModelGraph:
    """The complete, read-only Intermediate Model Graph."""

    enums: Mapping[str, EnumDef] = field(default_factory=dict)
    structures: Mapping[str, StructureDef] = field(default_factory=dict)
    models: Mapping[str, ModelDef] = field(default_factory=dict)
    entities: Mapping[str, EntityDef] = field(default_factory=dict)
    hierarchies: Mapping[str, PolymorphicHierarchy] = field(default_factory=dict)

    def __post_init__(self):
        for name in ("enums", "structures", "models", "entities", "hierarchies"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    def declarations(self):
        """Every declaration, enums first and entities last."""
        yield from self.enums.values()
        yield from self.structures.values()
        yield from self.models.values()
        yield from self.entities.values()

    def relation_target(self, relation: RelationDef) -> ModelDef | EntityDef | None:
        """The declaration a non-For*Poly relation points to.

        Models and entities have separate namespaces, so the target is
        looked up in the one its owner relates to.
        """
        if relation.target is None:
            return None
        if relation.target_kind == "entity":
            return self.entities.get(relation.target)
        return self.models.get(relation.target)

    def hierarchy_of(self, model_name: str) -> PolymorphicHierarchy | None:
        """The hierarchy a model belongs to, as base or as variant."""
        model = self.models.get(model_name)
        if model is None:
            return None
        return self.hierarchies.get(model.base or model.name)

    def storage_model(self, model_name: str) -> ModelDef | None:
        """The model whose storage holds instances of `model_name` (the base for subclasses)."""
        model = self.models.get(model_name)
        if model is not None and model.base and model.base in self.hierarchies:
            return self.models.get(model.base)
        return model

    def primary_fields(self, declaration: ModelDef | EntityDef) -> tuple[FieldDef, ...]:
        """The fields of a declaration's primary identifier, in identifier order."""
        primary = declaration.primary
        if primary is None:
            return ()
        return tuple(f for f in (declaration.field(name) for name in primary.fields) if f is not None)
