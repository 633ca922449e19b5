"""
Go code generation backend.

Generates Go structs from the model graph. Polymorphic hierarchies become
an interface implemented by one struct per variant; For*Poly relations
become an interface implemented by every candidate.
"""

from __future__ import annotations

import json
from typing import Any

from ...utils import pluralize, singularize, to_camel_case, to_pascal_case
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

STDLIB_PACKAGES = {"fmt", "time"}


def go_name(name: str) -> str:
    """Exported form of a declared name."""
    return name[:1].upper() + name[1:]


def go_literal(value: Any) -> str:
    if isinstance(value, str):
        return json.dumps(value)
    return repr(value)


def align(rows: list[list[str]]) -> list[str]:
    """Align columns the way gofmt does for consecutive single-line members."""
    if not rows:
        return []
    widths = [max(len(row[i]) for row in rows) for i in range(len(rows[0]))]
    lines = []
    for row in rows:
        cells = list(row)
        while cells and not cells[-1]:
            cells.pop()
        lines.append(" ".join(cell if i == len(cells) - 1 else cell.ljust(widths[i]) for i, cell in enumerate(cells)))
    return lines


class GoBackend(CodeBackend):
    """Go code generation backend."""

    TARGET = "go"
    TEMPLATE_LANG = "go"
    FILE_EXTENSION = "go"
    TEMPLATES = ("struct", "enum", "interface", "factory")

    TYPE_MAP = {
        "UUID": "uuid.UUID",
        "AutoIncrement": "uint",
        "String": "string",
        "Integer": "int",
        "Float": "float64",
        "Boolean": "bool",
        "Time": "time.Time",
        "Date": "time.Time",
        "Protected": "string",
        "Sealed": "[]byte",
    }

    TYPE_IMPORTS = {
        "UUID": "github.com/google/uuid",
        "Time": "time",
        "Date": "time",
    }

    ENUM_BASE_TYPES = {
        "String": "string",
        "Integer": "int",
        "Float": "float64",
    }

    def __init__(self, config: CodeGeneratorConfig | None = None):
        super().__init__(config)
        self.imports: set[str] = set()
        self.key_structs: dict[str, tuple[FieldDef, ...]] = {}
        self.emitted_interfaces: set[str] = set()
        self.needs_polymorphic_ref = False

    def reset(self) -> None:
        # Reset import tracking
        self.imports = set()
        self.key_structs = {}
        self.needs_polymorphic_ref = False
        self.emitted_interfaces = set()

    def translate_type(self, type_ref: TypeRef) -> str:
        """Translate IR type to Go type string."""
        if type_ref.is_enum:
            return type_ref.name
        if type_ref.name in self.TYPE_IMPORTS:
            self.imports.add(self.TYPE_IMPORTS[type_ref.name])
        return self.TYPE_MAP.get(type_ref.name, "any")

    # -- members ------------------------------------------------------------

    def _member(self, name: str, go_type: str, optional: bool, attributes: tuple[str, ...] = (), comments: tuple[str, ...] = ()) -> list[str]:
        json_name = to_camel_case(name)
        if optional:
            json_name += ",omitempty"
        tag = f'json:"{json_name}"'
        if attributes and self.config.emit_pass_through_attributes:
            tag += f' schema:"{",".join(attributes)}"'
        comment = f"// {'; '.join(comments)}" if comments else ""
        return [name, go_type, f"`{tag}`", comment]

    def _field_member(self, f: FieldDef) -> list[str]:
        go_type = self.translate_type(f.type_ref)
        if f.optional and not go_type.startswith("[]"):
            go_type = f"*{go_type}"

        comments = []
        if f.path is not None:
            comments.append(f.path.dotted)
        if f.immutable:
            comments.append("immutable")
        return self._member(go_name(f.name), go_type, f.optional, f.pass_through_attributes, tuple(comments))

    def _nested_type(self, target: ModelDef | EntityDef, to_many: bool) -> str:
        # A hierarchy base is an interface: never behind a pointer
        if target.name in self.graph.hierarchies:
            return f"[]{target.name}" if to_many else target.name
        return f"[]{target.name}" if to_many else f"*{target.name}"

    def _relation_members(self, owner, relation: RelationDef) -> list[list[str]]:
        if not relation.is_resolved:
            return []
        name = go_name(relation.name)

        if relation.is_for_poly:
            key = self.poly_key_field(owner, relation)
            key_type = self.translate_type(key.type_ref)
            if relation.to_many:
                self.needs_polymorphic_ref = True
                return [self._member(name, f"[]PolymorphicRef[{key_type}]", True)]
            return [
                self._member(f"{name}Type", "*string", True),
                self._member(f"{name}{go_name(key.name)}", f"*{key_type}", True),
                self._member(name, self.poly_name(owner, relation), True),
            ]

        target = self.graph.relation_target(relation)
        if relation.is_has_poly:
            member_name = pluralize(name) if relation.to_many else name
            return [self._member(member_name, self._nested_type(target, relation.to_many), True)]

        rows = []
        fields = self.graph.primary_fields(target)
        if len(fields) > 1:
            key_struct = self._key_struct(target)
            if relation.to_many:
                rows.append(self._member(f"{singularize(name)}Keys", f"[]{key_struct}", True))
            else:
                rows.append(self._member(f"{name}Key", f"*{key_struct}", True))
        elif fields:
            key = fields[0]
            key_type = self.translate_type(key.type_ref)
            if relation.to_many:
                rows.append(self._member(f"{singularize(name)}{go_name(key.name)}s", f"[]{key_type}", True))
            else:
                rows.append(self._member(f"{name}{go_name(key.name)}", f"*{key_type}", True))

        member_name = pluralize(name) if relation.to_many else name
        rows.append(self._member(member_name, self._nested_type(target, relation.to_many), True))
        return rows

    def _key_struct(self, target: ModelDef | EntityDef) -> str:
        name = f"{target.name}Key"
        self.key_structs[name] = self.graph.primary_fields(target)
        return name

    def _struct(self, name: str, rows: list[list[str]], comment: str = "", blocks: list[str] | None = None) -> str:
        return self.render("struct", name=name, comment=comment, members=align(rows), blocks=blocks or [])

    # -- polymorphic interfaces ---------------------------------------------

    def _poly_interface_blocks(self, model: ModelDef, emitted: set[str]) -> list[str]:
        blocks = []
        for relation in model.own_relations:
            if not relation.is_for_poly or relation.to_many or not relation.is_resolved:
                continue
            name = self.poly_name(model, relation)
            if name in emitted:
                continue
            emitted.add(name)
            implementers = self.poly_type_names(relation)
            blocks.append(
                self.render(
                    "interface",
                    name=name,
                    description=f"every model a {model.name}.{relation.name} relation may point to",
                    methods=[f"is{name}()"],
                    implementers=[f"func (*{implementer}) is{name}() {{}}" for implementer in implementers],
                )
            )
        return blocks

    # -- declarations -------------------------------------------------------

    def materialize_enum(self, enum: EnumDef) -> Artifact:
        rows = [[f"{enum.name}{to_pascal_case(symbol)}", enum.name, f"= {go_literal(value)}"] for symbol, value in enum.members]
        content = self.render("enum", name=enum.name, base_type=self.ENUM_BASE_TYPES.get(enum.value_type, "string"), constants=align(rows))
        return Artifact(declaration=enum.name, kind=enum.kind, content=content)

    def materialize_structure(self, structure: StructureDef) -> Artifact:
        rows = [self._field_member(f) for f in structure.fields]
        return Artifact(declaration=structure.name, kind=structure.kind, content=self._struct(structure.name, rows))

    def materialize_model(self, model: ModelDef) -> Artifact:
        if model.name in self.graph.hierarchies:
            return self._materialize_base(model)

        rows = [self._field_member(f) for f in model.fields]
        for relation in model.relations:
            rows.extend(self._relation_members(model, relation))

        blocks = self._poly_interface_blocks(model, self.emitted_interfaces)
        hierarchy = self.graph.hierarchies.get(model.base) if model.is_subclass else None
        if hierarchy is not None:
            blocks.insert(0, self._variant_methods(model))

        return Artifact(declaration=model.name, kind=model.kind, content=self._struct(model.name, rows, blocks=blocks))

    def _materialize_base(self, base: ModelDef) -> Artifact:
        """A polymorphic base becomes an interface plus a factory keyed by discriminator."""
        hierarchy = self.graph.hierarchies[base.name]
        discriminator = go_name(hierarchy.discriminator)
        param = "discriminator"
        self.imports.add("fmt")

        interface = self.render(
            "interface",
            name=base.name,
            description=f"every {base.name} variant",
            methods=[f"is{base.name}()", "Discriminator() string"],
            implementers=[],
        )
        factory = self.render(
            "factory",
            base=base.name,
            param=param,
            cases=[(go_literal(identity), f"&{name}{{{discriminator}: {go_literal(identity)}}}") for identity, name in hierarchy.variants],
        )
        blocks = [interface, factory, *self._poly_interface_blocks(base, self.emitted_interfaces)]
        return Artifact(declaration=base.name, kind=base.kind, content="\n\n".join(blocks))

    def _variant_methods(self, variant: ModelDef) -> str:
        identity = go_literal(variant.identity)
        return "\n\n".join(
            [
                f"func (*{variant.name}) is{variant.base}() {{}}",
                f"// Discriminator returns the {variant.base} discriminator value of {variant.name}.\n"
                f"func (*{variant.name}) Discriminator() string {{ return {identity} }}",
            ]
        )

    def materialize_entity(self, entity: EntityDef) -> Artifact:
        rows = [self._field_member(f) for f in entity.fields]
        for relation in entity.relations:
            rows.extend(self._relation_members(entity, relation))
        return Artifact(declaration=entity.name, kind=entity.kind, content=self._struct(entity.name, rows))

    # -- document -----------------------------------------------------------

    def _assemble_imports(self) -> list[str]:
        """Standard library packages first, then third-party packages."""
        stdlib = sorted(i for i in self.imports if i in STDLIB_PACKAGES)
        third_party = sorted(i for i in self.imports if i not in STDLIB_PACKAGES)
        assembled = [f'"{i}"' for i in stdlib]
        if stdlib and third_party:
            assembled.append("")
        assembled.extend(f'"{i}"' for i in third_party)
        return assembled

    def prefix_context(self) -> dict[str, Any]:
        context = super().prefix_context()
        key_structs = []
        for name, fields in sorted(self.key_structs.items()):
            rows = [self._member(go_name(f.name), self.translate_type(f.type_ref), False) for f in fields]
            key_structs.append(self._struct(name, rows, comment=f"{name} holds the composite primary key of {name[:-3]}."))
        context.update(
            package=self.config.go_package,
            imports=self._assemble_imports(),
            polymorphic_ref=self.needs_polymorphic_ref,
            key_structs=key_structs,
        )
        return context
