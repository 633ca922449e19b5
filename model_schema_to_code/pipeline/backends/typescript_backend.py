"""
TypeScript code generation backend.

Generates TypeScript interfaces from the model graph. Polymorphic
hierarchies become a discriminated union with one type guard per variant.
"""

from __future__ import annotations

import json
from typing import Any

from ...utils import pluralize, singularize, to_camel_case
from ..analyzer.ir_nodes import (
    EntityDef,
    EnumDef,
    FieldDef,
    ModelDef,
    RelationDef,
    StructureDef,
    TypeRef,
)
from ..config import CodeGeneratorConfig
from .base import Artifact, CodeBackend


def ts_literal(value: Any) -> str:
    if isinstance(value, str):
        return json.dumps(value)
    return repr(value)


class TypeScriptBackend(CodeBackend):
    """TypeScript code generation backend."""

    TARGET = "typescript"
    TEMPLATE_LANG = "typescript"
    FILE_EXTENSION = "ts"
    TEMPLATES = ("interface", "enum", "union")

    TYPE_MAP = {
        "UUID": "string",
        "AutoIncrement": "number",
        "String": "string",
        "Integer": "number",
        "Float": "number",
        "Boolean": "boolean",
        "Time": "Date",
        "Date": "Date",
        "Protected": "string",
        "Sealed": "string",
    }

    def __init__(self, config: CodeGeneratorConfig | None = None):
        super().__init__(config)
        self.emitted_unions: set[str] = set()
        self.needs_polymorphic_ref = False

    def reset(self) -> None:
        self.emitted_unions = set()
        self.needs_polymorphic_ref = False

    def translate_type(self, type_ref: TypeRef) -> str:
        """Translate IR type to TypeScript type string."""
        if type_ref.is_enum:
            return type_ref.name
        return self.TYPE_MAP.get(type_ref.name, "unknown")

    # -- members ------------------------------------------------------------

    @staticmethod
    def _member(name: str, ts_type: str, optional: bool, readonly: bool = False, docs: tuple[str, ...] = (), comment: str = "") -> list[str]:
        lines = []
        if docs:
            lines.append(f"/** {' '.join(docs)} */")
        line = f"{'readonly ' if readonly else ''}{name}{'?' if optional else ''}: {ts_type};"
        if comment:
            line += f" // {comment}"
        lines.append(line)
        return lines

    def _field_member(self, f: FieldDef, literal: str | None = None) -> list[str]:
        docs = ()
        if self.config.emit_pass_through_attributes:
            docs = tuple(f"@{a}" for a in f.pass_through_attributes)
        return self._member(
            to_camel_case(f.name),
            literal or self.translate_type(f.type_ref),
            f.optional and literal is None,
            readonly=f.immutable and self.config.typescript_readonly_immutable,
            docs=docs,
            comment=f.path.dotted if f.path is not None else "",
        )

    def _relation_members(self, owner, relation: RelationDef) -> list[str]:
        if not relation.is_resolved:
            return []
        name = to_camel_case(relation.name)

        if relation.is_for_poly:
            key = self.poly_key_field(owner, relation)
            key_type = self.translate_type(key.type_ref)
            type_names = " | ".join(ts_literal(n) for n in self.poly_type_names(relation))
            if relation.to_many:
                self.needs_polymorphic_ref = True
                return self._member(name, f"PolymorphicRef<{type_names}, {key_type}>[]", True)
            return [
                *self._member(f"{name}Type", type_names, True),
                *self._member(to_camel_case(f"{relation.name}{key.name}"), key_type, True),
                *self._member(name, self.poly_name(owner, relation), True),
            ]

        target = self.graph.relation_target(relation)
        if relation.is_has_poly:
            if relation.to_many:
                return self._member(to_camel_case(pluralize(relation.name)), f"{target.name}[]", True)
            return self._member(name, target.name, True)

        fields = self.graph.primary_fields(target)
        if len(fields) > 1:
            raise self.unsupported(
                owner,
                f"Relation '{relation.name}' references the composite key of '{target.name}', which has no TypeScript key member",
                relation=relation.name,
                target=target.name,
            )

        members = []
        if relation.to_many:
            if fields:
                key = fields[0]
                members += self._member(to_camel_case(f"{singularize(relation.name)}{key.name}s"), f"{self.translate_type(key.type_ref)}[]", True)
            members += self._member(to_camel_case(pluralize(relation.name)), f"{target.name}[]", True)
        else:
            if fields:
                key = fields[0]
                members += self._member(to_camel_case(f"{relation.name}{key.name}"), self.translate_type(key.type_ref), True)
            members += self._member(name, target.name, True)
        return members

    def _interface(self, name: str, members: list[str], blocks: list[str] | None = None) -> str:
        return self.render("interface", name=name, members=members, blocks=blocks or [])

    def _poly_union_blocks(self, model: ModelDef) -> list[str]:
        blocks = []
        for relation in model.own_relations:
            if not relation.is_for_poly or relation.to_many or not relation.is_resolved:
                continue
            name = self.poly_name(model, relation)
            if name in self.emitted_unions:
                continue
            self.emitted_unions.add(name)
            blocks.append(self.render("union", name=name, members=list(relation.candidates), guards=[]))
        return blocks

    # -- declarations -------------------------------------------------------

    def materialize_enum(self, enum: EnumDef) -> Artifact:
        members = [(symbol, ts_literal(value)) for symbol, value in enum.members]
        return Artifact(declaration=enum.name, kind=enum.kind, content=self.render("enum", name=enum.name, members=members))

    def materialize_structure(self, structure: StructureDef) -> Artifact:
        members = [line for f in structure.fields for line in self._field_member(f)]
        return Artifact(declaration=structure.name, kind=structure.kind, content=self._interface(structure.name, members))

    def materialize_model(self, model: ModelDef) -> Artifact:
        if model.name in self.graph.hierarchies:
            return self._materialize_base(model)

        hierarchy = self.graph.hierarchies.get(model.base) if model.is_subclass else None
        members = []
        for f in model.fields:
            literal = None
            if hierarchy is not None and f.name == hierarchy.discriminator:
                literal = ts_literal(model.identity)
            members += self._field_member(f, literal)
        for relation in model.relations:
            members += self._relation_members(model, relation)

        return Artifact(declaration=model.name, kind=model.kind, content=self._interface(model.name, members, self._poly_union_blocks(model)))

    def _materialize_base(self, base: ModelDef) -> Artifact:
        """A polymorphic base becomes the union of its variants with one type guard each."""
        hierarchy = self.graph.hierarchies[base.name]
        union = self.render(
            "union",
            name=base.name,
            members=list(hierarchy.variant_names),
            discriminator=hierarchy.discriminator,
            guards=[(name, ts_literal(identity)) for identity, name in hierarchy.variants],
        )
        content = "\n\n".join([union, *self._poly_union_blocks(base)])
        return Artifact(declaration=base.name, kind=base.kind, content=content)

    def materialize_entity(self, entity: EntityDef) -> Artifact:
        members = [line for f in entity.fields for line in self._field_member(f)]
        for relation in entity.relations:
            members += self._relation_members(entity, relation)
        return Artifact(declaration=entity.name, kind=entity.kind, content=self._interface(entity.name, members))

    def prefix_context(self) -> dict[str, Any]:
        context = super().prefix_context()
        context["polymorphic_ref"] = self.needs_polymorphic_ref
        return context
