"""
Reference resolver.

Phase 2 of the pipeline: every declaration is already registered, so
references are resolved by lookup and declaration order never matters.
Builds the frozen Intermediate Model Graph.

Reference errors are fatal to the referencing member only: a field
keeps an UNRESOLVED type, a relation keeps no target, and resolution
carries on so that one run reports every problem.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace

from ...errors import (
    BrokenIndirectionPath,
    CyclicIndirection,
    DanglingPolymorphicBase,
    Diagnostic,
    DuplicateIdentity,
    InvalidRelation,
    NestedPolymorphicHierarchy,
    SchemaError,
    UnknownDeclaration,
    UnknownEnum,
)
from ..declarations.nodes import (
    DeclarationKind,
    EntityDecl,
    EnumDecl,
    FieldDecl,
    IdentifierDecl,
    ModelDecl,
    RelationDecl,
    StructureDecl,
)
from .ir_nodes import (
    ATOMIC_TYPES,
    IMMUTABLE,
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
from .registry import SchemaRegistry

logger = logging.getLogger(__name__)


@dataclass
class ResolutionResult:
    """The graph built by the resolver and the reference errors it found."""

    graph: ModelGraph
    diagnostics: list[Diagnostic] = field(default_factory=list)


@dataclass
class _OwnMembers:
    """A model's own resolved members, before inheritance is applied."""

    fields: tuple[FieldDef, ...] = ()
    identifiers: tuple[IdentifierDef, ...] = ()
    relations: tuple[RelationDef, ...] = ()


class ReferenceResolver:
    """Resolves every inter-declaration reference into a ModelGraph."""

    def __init__(self, registry: SchemaRegistry):
        """
        Initialize the resolver.

        Args:
            registry: A fully populated registry
        """
        self.registry = registry
        self.diagnostics: list[Diagnostic] = []

        # Will be set during resolution
        self._own_members: dict[str, _OwnMembers] = {}
        self._linked_bases: dict[str, str] = {}  # subclass -> base
        self._models: dict[str, ModelDef] = {}

    def resolve(self) -> ResolutionResult:
        """
        Resolve all registered declarations.

        Returns:
            ResolutionResult with the graph and every reference error found
        """
        self.diagnostics = []
        self._own_members = {}
        self._linked_bases = {}
        self._models = {}

        enums = {decl.name: self._resolve_enum(decl) for decl in self.registry.declarations(DeclarationKind.ENUM)}
        structures = {decl.name: self._resolve_structure(decl) for decl in self.registry.declarations(DeclarationKind.STRUCTURE)}

        model_decls: list[ModelDecl] = self.registry.declarations(DeclarationKind.MODEL)

        # First pass: own members of every model
        for decl in model_decls:
            self._own_members[decl.name] = self._resolve_own_members(decl)

        # Second pass: polymorphic hierarchies
        hierarchies = self._resolve_hierarchies(model_decls)

        # Third pass: assemble models, applying inheritance
        for decl in model_decls:
            self._models[decl.name] = self._assemble_model(decl)

        # Entities last: their paths walk the assembled models
        entities = {decl.name: self._resolve_entity(decl) for decl in self.registry.declarations(DeclarationKind.ENTITY)}

        graph = ModelGraph(
            enums=enums,
            structures=structures,
            models=self._models,
            entities=entities,
            hierarchies=hierarchies,
        )
        logger.debug(
            "Resolved %d enum(s), %d structure(s), %d model(s), %d entit(y/ies) with %d reference error(s)",
            len(enums),
            len(structures),
            len(self._models),
            len(entities),
            len(self.diagnostics),
        )
        return ResolutionResult(graph=graph, diagnostics=list(self.diagnostics))

    def _report(self, error: SchemaError) -> None:
        logger.debug("Reference error: %s", error.message)
        self.diagnostics.append(error.to_diagnostic())

    def _lookup_reference(self, kind: DeclarationKind, name: str, owner: str, owner_kind: DeclarationKind, **context) -> None:
        """Check that a referenced declaration exists, attributing the error to the referencing owner."""
        if self.registry.find(kind, name) is None:
            raise UnknownDeclaration(f"Reference to unknown {kind.value} '{name}'", owner, owner_kind.value, **context)

    # -- types and fields -------------------------------------------------

    def resolve_type(self, token: str, owner: str = "", owner_kind: DeclarationKind = DeclarationKind.MODEL, field_name: str = "") -> TypeRef:
        """
        Classify and resolve a non-path type token.

        Raises:
            BrokenIndirectionPath: for dotted tokens outside entities
            UnknownEnum: if the token is neither atomic nor a registered enum
        """
        if token in ATOMIC_TYPES:
            return TypeRef(kind=TypeKind.ATOMIC, name=token)

        if "." in token:
            raise BrokenIndirectionPath(
                f"Indirection path '{token}' is only allowed in entity fields",
                owner,
                owner_kind.value,
                field=field_name,
                path=token,
            )

        if self.registry.find(DeclarationKind.ENUM, token) is None:
            raise UnknownEnum(f"Field type '{token}' is neither an atomic type nor a known enum", owner, owner_kind.value, field=field_name)

        return TypeRef(kind=TypeKind.ENUM, name=token)

    def _resolve_fields(self, decls: tuple[FieldDecl, ...], owner: str, owner_kind: DeclarationKind) -> tuple[FieldDef, ...]:
        fields = []
        for decl in decls:
            try:
                type_ref = self.resolve_type(decl.type_token, owner, owner_kind, decl.name)
            except SchemaError as e:
                self._report(e)
                type_ref = TypeRef()
            fields.append(FieldDef(name=decl.name, type_ref=type_ref, attributes=decl.attributes, optional=decl.is_optional))
        return tuple(fields)

    def _resolve_identifiers(self, decls: tuple[IdentifierDecl, ...]) -> tuple[IdentifierDef, ...]:
        return tuple(IdentifierDef(name=decl.name, fields=decl.fields) for decl in decls)

    # -- relations --------------------------------------------------------

    def canonicalize(self, decl: RelationDecl, owner: str = "", owner_kind: DeclarationKind = DeclarationKind.MODEL) -> RelationKind:
        """
        Map a relation declaration to its canonical kind, checking its shape.

        Raises:
            InvalidRelation: for unknown kinds or misplaced through/for/unique
        """
        try:
            kind = RelationKind(decl.type_token)
        except ValueError:
            valid = ", ".join(k.value for k in RelationKind)
            raise InvalidRelation(
                f"Unknown relation type '{decl.type_token}' (expected one of {valid})",
                owner,
                owner_kind.value,
                relation=decl.name,
            ) from None

        context = {"relation": decl.name}
        is_for_poly = kind.polymorphic and kind.ownership == Ownership.FOR
        is_has_poly = kind.polymorphic and kind.ownership == Ownership.HAS

        if is_for_poly:
            if not decl.for_:
                raise InvalidRelation(f"{kind.value} relation needs a 'for' list of candidate targets", owner, owner_kind.value, **context)
            if decl.aliased or decl.through:
                raise InvalidRelation(f"{kind.value} relation takes neither 'aliased' nor 'through'", owner, owner_kind.value, **context)
        elif decl.for_:
            raise InvalidRelation("Only For*Poly relations take a 'for' list", owner, owner_kind.value, **context)

        if is_has_poly and not decl.through:
            raise InvalidRelation(f"{kind.value} relation needs a 'through' interface name", owner, owner_kind.value, **context)
        if decl.through and not is_has_poly:
            raise InvalidRelation("Only Has*Poly relations take 'through'", owner, owner_kind.value, **context)

        if decl.unique and kind not in (RelationKind.FOR_MANY, RelationKind.FOR_MANY_POLY):
            raise InvalidRelation("Only ForMany relations can be constrained 'unique'", owner, owner_kind.value, **context)

        return kind

    def _resolve_relations(self, decls: tuple[RelationDecl, ...], owner: str, owner_kind: DeclarationKind) -> tuple[RelationDef, ...]:
        target_kind = DeclarationKind.ENTITY if owner_kind == DeclarationKind.ENTITY else DeclarationKind.MODEL
        relations = []
        for decl in decls:
            try:
                kind = self.canonicalize(decl, owner, owner_kind)
            except InvalidRelation as e:
                # No canonical kind: the relation is dropped from the graph
                self._report(e)
                continue

            relation = RelationDef(
                name=decl.name,
                kind=kind,
                owner=owner,
                target_kind=target_kind.value,
                through=decl.through,
                aliased=decl.aliased is not None,
                unique=decl.unique,
            )
            try:
                if relation.is_for_poly:
                    for candidate in decl.for_:
                        self._lookup_reference(target_kind, candidate, owner, owner_kind, relation=decl.name)
                    relation = replace(relation, candidates=decl.for_)
                else:
                    target = decl.aliased or decl.name
                    self._lookup_reference(target_kind, target, owner, owner_kind, relation=decl.name)
                    relation = replace(relation, target=target)
            except SchemaError as e:
                self._report(e)
            relations.append(relation)
        return tuple(relations)

    # -- declarations -----------------------------------------------------

    def _resolve_enum(self, decl: EnumDecl) -> EnumDef:
        return EnumDef(name=decl.name, value_type=decl.value_type, members=tuple(decl.entries))

    def _resolve_structure(self, decl: StructureDecl) -> StructureDef:
        return StructureDef(name=decl.name, fields=self._resolve_fields(decl.fields, decl.name, DeclarationKind.STRUCTURE))

    def _resolve_own_members(self, decl: ModelDecl) -> _OwnMembers:
        fields = self._resolve_fields(decl.fields, decl.name, DeclarationKind.MODEL)
        if decl.discriminator and not any(f.name == decl.discriminator for f in fields):
            discriminator = FieldDef(
                name=decl.discriminator,
                type_ref=TypeRef(kind=TypeKind.ATOMIC, name="String"),
                attributes=(IMMUTABLE,),
                synthesized=True,
            )
            fields = (*fields, discriminator)

        return _OwnMembers(
            fields=fields,
            identifiers=self._resolve_identifiers(decl.identifiers),
            relations=self._resolve_relations(decl.relations, decl.name, DeclarationKind.MODEL),
        )

    def _resolve_hierarchies(self, model_decls: list[ModelDecl]) -> dict[str, PolymorphicHierarchy]:
        """Group subclasses by their base, building the base -> variants map."""
        variants: dict[str, list[tuple[object, str]]] = {decl.name: [] for decl in model_decls if decl.discriminator}

        for decl in model_decls:
            if decl.extends is None:
                continue
            try:
                base = self.registry.find(DeclarationKind.MODEL, decl.extends)
                if base is None:
                    raise UnknownDeclaration(
                        f"Model extends unknown model '{decl.extends}'",
                        decl.name,
                        DeclarationKind.MODEL.value,
                        extends=decl.extends,
                    )
                if base.extends is not None:
                    raise NestedPolymorphicHierarchy(
                        f"Model extends '{base.name}', which itself extends '{base.extends}'",
                        decl.name,
                        DeclarationKind.MODEL.value,
                        extends=base.name,
                    )
                if not base.discriminator:
                    raise DanglingPolymorphicBase(
                        f"Base model '{base.name}' declares no polymorphic discriminator",
                        decl.name,
                        DeclarationKind.MODEL.value,
                        extends=base.name,
                    )
                if decl.identity is not None:
                    for identity, other in variants[base.name]:
                        if identity == decl.identity:
                            raise DuplicateIdentity(
                                f"Identity {decl.identity!r} is already used by '{other}' in hierarchy '{base.name}'",
                                decl.name,
                                DeclarationKind.MODEL.value,
                                identity=decl.identity,
                                base=base.name,
                                other=other,
                            )
                    variants[base.name].append((decl.identity, decl.name))
                self._linked_bases[decl.name] = base.name
            except SchemaError as e:
                self._report(e)

        by_name = {decl.name: decl for decl in model_decls}
        return {
            base: PolymorphicHierarchy(base=base, discriminator=by_name[base].discriminator, variants=tuple(members))
            for base, members in variants.items()
        }

    def _assemble_model(self, decl: ModelDecl) -> ModelDef:
        own = self._own_members[decl.name]
        fields, identifiers, relations = own.fields, own.identifiers, own.relations

        base_name = self._linked_bases.get(decl.name)
        if base_name is not None:
            base = self._own_members[base_name]
            fields = tuple(replace(f, inherited_from=base_name) for f in base.fields) + fields
            identifiers = base.identifiers + identifiers
            relations = tuple(replace(r, owner=decl.name, inherited_from=base_name) for r in base.relations) + relations

        return ModelDef(
            name=decl.name,
            fields=fields,
            identifiers=identifiers,
            relations=relations,
            base=base_name if base_name is not None else decl.extends,
            identity=decl.identity,
            discriminator=decl.discriminator,
        )

    def _resolve_entity(self, decl: EntityDecl) -> EntityDef:
        fields = []
        for field_decl in decl.fields:
            try:
                path, terminal = self.resolve_path(field_decl.type_token, decl.name, field_decl.name)
            except SchemaError as e:
                self._report(e)
                fields.append(FieldDef(name=field_decl.name, attributes=field_decl.attributes, optional=field_decl.is_optional))
                continue
            fields.append(
                FieldDef(
                    name=field_decl.name,
                    type_ref=terminal.type_ref,
                    attributes=field_decl.attributes,
                    optional=field_decl.is_optional or terminal.optional,
                    path=path,
                )
            )

        return EntityDef(
            name=decl.name,
            fields=tuple(fields),
            identifiers=self._resolve_identifiers(decl.identifiers),
            relations=self._resolve_relations(decl.relations, decl.name, DeclarationKind.ENTITY),
        )

    # -- indirection paths ------------------------------------------------

    def resolve_path(self, token: str, owner: str = "", field_name: str = "") -> tuple[IndirectionPath, FieldDef]:
        """
        Walk an entity field path `Root.Rel1...RelN.Field`.

        Each relation hop is resolved against the current model's own
        relation table (aliases included), so the walk never depends on
        how an earlier hop was aliased.

        Returns:
            The pre-walked path and the terminal field

        Raises:
            BrokenIndirectionPath: if a segment does not resolve
            CyclicIndirection: if the path revisits a model
        """
        kind = DeclarationKind.ENTITY.value
        segments = token.split(".")
        if len(segments) < 2 or not all(segments):
            raise BrokenIndirectionPath(f"'{token}' is not a path of the form Model.Field", owner, kind, field=field_name, path=token)

        def broken(message: str, segment: str) -> BrokenIndirectionPath:
            return BrokenIndirectionPath(message, owner, kind, field=field_name, path=token, segment=segment)

        root = segments[0]
        model = self._models.get(root)
        if model is None:
            raise broken(f"Path root '{root}' is not a known model", root)

        visited = [model.name]
        steps = []
        for segment in segments[1:-1]:
            relation = model.relation(segment)
            if relation is None:
                raise broken(f"Model '{model.name}' has no relation '{segment}'", segment)
            if relation.is_for_poly:
                raise broken(f"Relation '{model.name}.{segment}' is polymorphic and has no single target", segment)
            if relation.to_many:
                raise broken(f"Relation '{model.name}.{segment}' is to-many and cannot be traversed", segment)
            target = self._models.get(relation.target) if relation.target else None
            if target is None:
                raise broken(f"Relation '{model.name}.{segment}' has no resolved target", segment)
            if target.name in visited:
                raise CyclicIndirection(
                    f"Path '{token}' revisits model '{target.name}'",
                    owner,
                    kind,
                    field=field_name,
                    path=token,
                    cycle=" -> ".join([*visited, target.name]),
                )
            steps.append(PathStep(model=model.name, relation=relation.name, target=target.name))
            visited.append(target.name)
            model = target

        terminal = model.field(segments[-1])
        if terminal is None:
            raise broken(f"Model '{model.name}' has no field '{segments[-1]}'", segments[-1])
        if not terminal.type_ref.is_resolved:
            raise broken(f"Field '{model.name}.{terminal.name}' has an unresolved type", segments[-1])

        path = IndirectionPath(root=root, steps=tuple(steps), terminal_model=model.name, terminal_field=terminal.name)
        return path, terminal
