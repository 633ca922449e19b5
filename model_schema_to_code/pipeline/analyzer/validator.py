"""
Invariant validation for the Intermediate Model Graph.

Runs every structural rule over the resolved graph and returns the full
list of violations; it never stops at the first problem. A non-empty
result blocks all generation for the run.

Members whose references could not be resolved (UNRESOLVED field types,
relations without target) were already reported by the resolver and are
skipped here.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from ...errors import Diagnostic
from .ir_nodes import (
    ENUM_REPRESENTATIONS,
    EntityDef,
    EnumDef,
    ModelDef,
    ModelGraph,
    PolymorphicHierarchy,
    StructureDef,
)

logger = logging.getLogger(__name__)


class InvariantValidator:
    """Checks the graph invariants, collecting every violation."""

    def __init__(self):
        self.graph: ModelGraph | None = None
        self.diagnostics: list[Diagnostic] = []

    def validate(self, graph: ModelGraph) -> list[Diagnostic]:
        """
        Validate a resolved graph.

        Args:
            graph: The graph built by the ReferenceResolver

        Returns:
            Every violation found (empty when the graph is valid)
        """
        self.graph = graph
        self.diagnostics = []

        for enum in graph.enums.values():
            self._check_enum(enum)

        for structure in graph.structures.values():
            self._check_fields(structure)

        for model in graph.models.values():
            self._check_fields(model)
            self._check_identifiers(model)
            self._check_relations(model)
            self._check_materialized_names(model)
            self._check_polymorphism(model)

        for entity in graph.entities.values():
            self._check_fields(entity)
            self._check_identifiers(entity)
            self._check_relations(entity)
            self._check_materialized_names(entity)
            self._check_indirection(entity)

        for hierarchy in graph.hierarchies.values():
            self._check_hierarchy(hierarchy)

        logger.debug("Validation found %d violation(s)", len(self.diagnostics))
        return list(self.diagnostics)

    def _violation(self, declaration, rule: str, message: str, **context: Any) -> None:
        self.diagnostics.append(
            Diagnostic(
                declaration=declaration.name,
                rule=rule,
                message=message,
                kind=declaration.kind,
                context=context,
            )
        )

    # -- fields -------------------------------------------------------------

    def _check_fields(self, declaration: StructureDef | ModelDef | EntityDef) -> None:
        fields = declaration.fields
        if isinstance(declaration, ModelDef) and declaration.is_subclass:
            inherited = {f.name for f in declaration.fields if f.inherited_from}
            fields = declaration.own_fields
            for f in fields:
                if f.name in inherited:
                    self._violation(
                        declaration,
                        "ShadowedBaseField",
                        f"Field '{f.name}' shadows a field inherited from '{declaration.base}'",
                        field=f.name,
                    )

        counts = Counter(f.name for f in fields)
        for name, count in counts.items():
            if count > 1:
                self._violation(declaration, "DuplicateField", f"Field '{name}' is declared {count} times", field=name)

        for f in fields:
            if f.type_ref.is_enum and f.type_ref.name not in self.graph.enums:
                self._violation(declaration, "UnknownEnum", f"Field '{f.name}' references unknown enum '{f.type_ref.name}'", field=f.name)

    # -- identifiers --------------------------------------------------------

    def _own_identifiers(self, declaration: ModelDef | EntityDef):
        if isinstance(declaration, ModelDef) and declaration.is_subclass:
            base = self.graph.models.get(declaration.base)
            if base is not None:
                return tuple(i for i in declaration.identifiers if i not in base.identifiers)
        return declaration.identifiers

    def _check_identifiers(self, declaration: ModelDef | EntityDef) -> None:
        primaries = [i for i in declaration.identifiers if i.is_primary]
        if not primaries:
            self._violation(declaration, "MissingPrimaryIdentifier", "No identifier named 'primary' is declared")
        elif len(primaries) > 1:
            self._violation(
                declaration,
                "DuplicatePrimaryIdentifier",
                f"{len(primaries)} identifiers are named 'primary'" + (f" (one is inherited from '{declaration.base}')" if getattr(declaration, "base", None) else ""),
            )

        own = self._own_identifiers(declaration)
        counts = Counter(i.name for i in own if not i.is_primary)
        for name, count in counts.items():
            if count > 1:
                self._violation(declaration, "DuplicateIdentifier", f"Identifier '{name}' is declared {count} times", identifier=name)

        for identifier in own:
            if not identifier.fields:
                self._violation(declaration, "UnknownIdentifierField", f"Identifier '{identifier.name}' lists no fields", identifier=identifier.name)
            for field_name in identifier.fields:
                f = declaration.field(field_name)
                if f is None:
                    self._violation(
                        declaration,
                        "UnknownIdentifierField",
                        f"Identifier '{identifier.name}' references unknown field '{field_name}'",
                        identifier=identifier.name,
                        field=field_name,
                    )
                elif identifier.is_primary and f.optional and isinstance(declaration, ModelDef):
                    self._violation(
                        declaration,
                        "OptionalIdentifierField",
                        f"Primary identifier field '{field_name}' cannot be optional",
                        identifier=identifier.name,
                        field=field_name,
                    )

    # -- relations ----------------------------------------------------------

    def _own_relations(self, declaration: ModelDef | EntityDef):
        if isinstance(declaration, ModelDef):
            return declaration.own_relations
        return declaration.relations

    def _check_relations(self, declaration: ModelDef | EntityDef) -> None:
        targets = self.graph.entities if isinstance(declaration, EntityDef) else self.graph.models
        for relation in self._own_relations(declaration):
            if not relation.is_resolved:
                continue

            for target in relation.targets:
                if target not in targets:
                    self._violation(
                        declaration,
                        "UnknownDeclaration",
                        f"Relation '{relation.name}' targets unknown {'entity' if targets is self.graph.entities else 'model'} '{target}'",
                        relation=relation.name,
                        target=target,
                    )

            if relation.is_has_poly:
                self._check_through(declaration, relation)

    def _check_through(self, declaration, relation) -> None:
        target = self.graph.models.get(relation.target)
        if target is None:
            return
        interface = target.relation(relation.through)
        owners = {declaration.name, getattr(declaration, "base", None)}
        if interface is None or not interface.is_for_poly:
            self._violation(
                declaration,
                "PolymorphicThroughMismatch",
                f"Relation '{relation.name}' goes through '{relation.through}', which is not a For*Poly relation of '{target.name}'",
                relation=relation.name,
                through=relation.through,
            )
        elif not owners & set(interface.candidates):
            self._violation(
                declaration,
                "PolymorphicThroughMismatch",
                f"'{target.name}.{interface.name}' does not list '{declaration.name}' among its candidates",
                relation=relation.name,
                through=relation.through,
            )

    def _check_materialized_names(self, declaration: ModelDef | EntityDef) -> None:
        """Aliased relations materialize under their declared name; those names must be unambiguous."""
        relations = self._own_relations(declaration)
        field_names = {f.name for f in declaration.fields}

        counts = Counter(r.name for r in relations)
        for name, count in counts.items():
            if count > 1:
                self._violation(
                    declaration,
                    "AmbiguousAliasTarget",
                    f"Relation name '{name}' is declared {count} times and cannot be materialized unambiguously",
                    relation=name,
                )

        for relation in relations:
            if relation.name in field_names:
                self._violation(
                    declaration,
                    "AmbiguousAliasTarget",
                    f"Relation '{relation.name}' has the same name as a field",
                    relation=relation.name,
                )
                continue

            if relation.to_many or relation.kind.polymorphic or not relation.is_resolved:
                continue
            target = self.graph.relation_target(relation)
            if target is None:
                continue
            for key_field in self.graph.primary_fields(target):
                key_name = f"{relation.name}{key_field.name}"
                if key_name in field_names:
                    self._violation(
                        declaration,
                        "AmbiguousAliasTarget",
                        f"Key member '{key_name}' of relation '{relation.name}' collides with a field",
                        relation=relation.name,
                        field=key_name,
                    )

    # -- polymorphism -------------------------------------------------------

    def _check_polymorphism(self, model: ModelDef) -> None:
        if model.is_subclass and model.identity is None:
            self._violation(model, "MissingPolymorphicIdentity", f"Model extends '{model.base}' but declares no polymorphic identity")
        if model.identity is not None and not model.is_subclass:
            self._violation(model, "OrphanPolymorphicIdentity", "Model declares a polymorphic identity but extends no base", identity=model.identity)
        if model.identity is not None and not isinstance(model.identity, str):
            self._violation(model, "InvalidDiscriminator", "Polymorphic identity must be a string", identity=model.identity)

        if model.discriminator is None:
            return
        if model.is_subclass:
            self._violation(model, "InvalidDiscriminator", "A subclass cannot declare a discriminator", discriminator=model.discriminator)
        discriminator = model.field(model.discriminator)
        if discriminator is not None and discriminator.type_ref.is_resolved:
            if discriminator.type_ref.name != "String" or discriminator.optional:
                self._violation(
                    model,
                    "InvalidDiscriminator",
                    f"Discriminator field '{discriminator.name}' must be a required String",
                    field=discriminator.name,
                )

    def _check_hierarchy(self, hierarchy: PolymorphicHierarchy) -> None:
        base = self.graph.models.get(hierarchy.base)
        if base is None:
            return

        counts = Counter(hierarchy.identities)
        for identity, count in counts.items():
            if count > 1:
                self._violation(base, "DuplicateIdentity", f"Identity {identity!r} is used by {count} subclasses", identity=identity)

        for identity, name in hierarchy.variants:
            variant = self.graph.models.get(name)
            if variant is None or variant.base != hierarchy.base or variant.identity != identity:
                self._violation(
                    base,
                    "InvalidDiscriminator",
                    f"Subclass '{name}' does not resolve to identity {identity!r} of this hierarchy",
                    subclass=name,
                    identity=identity,
                )

    # -- indirection --------------------------------------------------------

    def _check_indirection(self, entity: EntityDef) -> None:
        for f in entity.fields:
            if f.path is None:
                continue
            for step in f.path.steps:
                model = self.graph.models.get(step.model)
                relation = model.relation(step.relation) if model else None
                if relation is None or relation.target != step.target:
                    self._violation(
                        entity,
                        "InconsistentIndirectionType",
                        f"Path '{f.path.dotted}' hop '{step.relation}' no longer lands on '{step.target}'",
                        field=f.name,
                        path=f.path.dotted,
                    )
                    break
            else:
                terminal_model = self.graph.models.get(f.path.terminal_model)
                terminal = terminal_model.field(f.path.terminal_field) if terminal_model else None
                if terminal is None or terminal.type_ref != f.type_ref:
                    self._violation(
                        entity,
                        "InconsistentIndirectionType",
                        f"Field type does not match terminal field '{f.path.dotted}'",
                        field=f.name,
                        path=f.path.dotted,
                    )

    # -- enums --------------------------------------------------------------

    def _check_enum(self, enum: EnumDef) -> None:
        if enum.value_type not in ENUM_REPRESENTATIONS:
            self._violation(
                enum,
                "InvalidEnumType",
                f"Enum representation '{enum.value_type}' must be one of {', '.join(ENUM_REPRESENTATIONS)}",
                type=enum.value_type,
            )

        if not enum.members:
            self._violation(enum, "EmptyEnum", "Enum declares no entries")
            return

        for symbol, count in Counter(enum.symbols).items():
            if count > 1:
                self._violation(enum, "DuplicateEnumSymbol", f"Symbol '{symbol}' is declared {count} times", symbol=symbol)

        seen: dict[Any, str] = {}
        for symbol, value in enum.members:
            if value in seen:
                self._violation(
                    enum,
                    "DuplicateEnumValue",
                    f"Value {value!r} of '{symbol}' is already used by '{seen[value]}'",
                    symbol=symbol,
                    value=value,
                )
            else:
                seen[value] = symbol

            if not self._conforms(value, enum.value_type):
                self._violation(
                    enum,
                    "InvalidEnumValue",
                    f"Value {value!r} of '{symbol}' is not a valid {enum.value_type}",
                    symbol=symbol,
                    value=value,
                )

    @staticmethod
    def _conforms(value: Any, value_type: str) -> bool:
        if value_type not in ENUM_REPRESENTATIONS:
            # Representation itself is invalid; reported separately
            return True
        if isinstance(value, bool):
            return False
        if value_type == "String":
            return isinstance(value, str)
        if value_type == "Integer":
            return isinstance(value, int)
        return isinstance(value, (int, float))
