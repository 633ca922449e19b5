"""
PostgreSQL DDL generation backend.

Models become tables, enums become lookup tables, entities become views
and polymorphic hierarchies share one table per base. Foreign keys are
emitted as trailing ALTER TABLE statements, so neither declaration order
nor relation cycles matter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ...utils import pluralize, to_snake_case
from ..analyzer.ir_nodes import (
    EntityDef,
    EnumDef,
    FieldDef,
    ModelDef,
    PathStep,
    RelationDef,
    RelationKind,
    StructureDef,
    TypeRef,
)
from ..config import CodeGeneratorConfig
from .base import Artifact, CodeBackend
from .constraint_names import CHECK, FOREIGN_KEY, INDEX, UNIQUE, ConstraintNamer

logger = logging.getLogger(__name__)

# PostgreSQL reserved key words; identifiers matching one are double-quoted
SQL_RESERVED_WORDS = frozenset(
    {
        "all",
        "analyse",
        "analyze",
        "and",
        "any",
        "array",
        "as",
        "asc",
        "asymmetric",
        "both",
        "case",
        "cast",
        "check",
        "collate",
        "column",
        "constraint",
        "create",
        "current_catalog",
        "current_date",
        "current_role",
        "current_time",
        "current_timestamp",
        "current_user",
        "default",
        "deferrable",
        "desc",
        "distinct",
        "do",
        "else",
        "end",
        "except",
        "false",
        "fetch",
        "for",
        "foreign",
        "from",
        "grant",
        "group",
        "having",
        "in",
        "initially",
        "intersect",
        "into",
        "key",
        "lateral",
        "leading",
        "limit",
        "localtime",
        "localtimestamp",
        "not",
        "null",
        "offset",
        "on",
        "only",
        "or",
        "order",
        "placing",
        "primary",
        "references",
        "returning",
        "select",
        "session_user",
        "some",
        "symmetric",
        "table",
        "then",
        "to",
        "trailing",
        "true",
        "union",
        "unique",
        "user",
        "using",
        "variadic",
        "when",
        "where",
        "window",
        "with",
    }
)


def quote(identifier: str) -> str:
    """Double-quote an identifier that is a reserved word."""
    if identifier.lower() in SQL_RESERVED_WORDS:
        return f'"{identifier}"'
    return identifier


def column_list(columns) -> str:
    return ", ".join(quote(c) for c in columns)


def sql_literal(value: Any) -> str:
    """Format a literal value for SQL."""
    if isinstance(value, str):
        escaped = value.replace("'", "''")
        return f"'{escaped}'"
    return repr(value)


@dataclass
class Column:
    name: str
    sql_type: str
    nullable: bool = True
    origin: str = ""  # Declaration the column was materialized for

    def render(self) -> str:
        line = f"{quote(self.name)} {self.sql_type}"
        if not self.nullable:
            line += " NOT NULL"
        return line


@dataclass
class Table:
    """A table being assembled: columns, inline constraints and trailing statements."""

    name: str
    columns: list[Column] = field(default_factory=list)
    constraints: list[str] = field(default_factory=list)
    statements: list[str] = field(default_factory=list)  # Indexes and comments
    foreign_keys: list[str] = field(default_factory=list)

    def column(self, name: str) -> Column | None:
        for column in self.columns:
            if column.name == name:
                return column
        return None


class PostgresBackend(CodeBackend):
    """PostgreSQL DDL generation backend."""

    TARGET = "postgres"
    TEMPLATE_LANG = "postgres"
    FILE_EXTENSION = "sql"
    TEMPLATES = ("table", "enum", "view")

    TYPE_MAP = {
        "UUID": "UUID",
        "AutoIncrement": "SERIAL",
        "String": "TEXT",
        "Integer": "INTEGER",
        "Float": "DOUBLE PRECISION",
        "Boolean": "BOOLEAN",
        "Time": "TIMESTAMPTZ",
        "Date": "DATE",
        "Protected": "TEXT",
        "Sealed": "BYTEA",
    }

    # Types of columns that reference a key of another table
    REFERENCE_TYPE_MAP = {
        "AutoIncrement": "INTEGER",
    }

    ENUM_VALUE_TYPES = {
        "String": "TEXT",
        "Integer": "INTEGER",
        "Float": "DOUBLE PRECISION",
    }

    def __init__(self, config: CodeGeneratorConfig | None = None):
        super().__init__(config)
        self.namer = ConstraintNamer(self.config.identifier_max_length)
        self.back_references: dict[str, list[tuple[ModelDef, RelationDef]]] = {}

    def reset(self) -> None:
        self.namer = ConstraintNamer(self.config.identifier_max_length)
        self.back_references = self._collect_back_references()

    # -- naming -------------------------------------------------------------

    @staticmethod
    def table_name(declaration_name: str) -> str:
        return to_snake_case(pluralize(declaration_name))

    def output_name(self, declaration) -> str | None:
        # Tables, lookup tables and views share the schema namespace
        if isinstance(declaration, StructureDef):
            return None
        if isinstance(declaration, ModelDef) and declaration.is_subclass and declaration.base in self.graph.hierarchies:
            return None
        return self.table_name(declaration.name)

    def storage_table(self, model_name: str) -> str:
        return self.table_name(self.graph.storage_model(model_name).name)

    @staticmethod
    def field_column(f: FieldDef) -> str:
        """Column name of a field; enum fields hold the lookup table id."""
        column = to_snake_case(f.name)
        if f.type_ref.is_enum:
            column += "_id"
        return column

    def translate_type(self, type_ref: TypeRef) -> str:
        if type_ref.is_enum:
            return "INTEGER"
        return self.TYPE_MAP.get(type_ref.name, "TEXT")

    def key_type(self, type_ref: TypeRef) -> str:
        if type_ref.is_atomic and type_ref.name in self.REFERENCE_TYPE_MAP:
            return self.REFERENCE_TYPE_MAP[type_ref.name]
        return self.translate_type(type_ref)

    def _reference_columns(self, prefix: str, fields: tuple[FieldDef, ...]) -> list[str]:
        return [f"{prefix}_{self.field_column(f)}" for f in fields]

    # -- statements ---------------------------------------------------------

    def _add_column(self, table: Table, owner, column: Column, shareable: bool = False) -> Column:
        """Add a column, sharing an identical column declared by a sibling variant."""
        existing = table.column(column.name)
        if existing is None:
            table.columns.append(column)
            return column
        if existing.sql_type != column.sql_type:
            raise self.unsupported(
                owner,
                f"Column '{column.name}' of table '{table.name}' is materialized with conflicting types {existing.sql_type} and {column.sql_type}",
                column=column.name,
            )
        if not shareable or existing.origin == column.origin:
            raise self.unsupported(
                owner,
                f"Column '{column.name}' of table '{table.name}' is materialized twice",
                column=column.name,
            )
        return existing

    def _add_index(self, table: Table, columns: list[str]) -> None:
        name = self.namer.name(INDEX, table.name, columns)
        table.statements.append(f"CREATE INDEX {name} ON {quote(table.name)} ({column_list(columns)});")

    def _add_foreign_key(self, table: Table, columns: list[str], target_table: str, target_columns: list[str], on_delete: str = "") -> None:
        name = self.namer.name(FOREIGN_KEY, table.name, columns)
        statement = (
            f"ALTER TABLE {quote(table.name)} ADD CONSTRAINT {name} "
            f"FOREIGN KEY ({column_list(columns)}) REFERENCES {quote(target_table)} ({column_list(target_columns)})"
        )
        if on_delete:
            statement += f" ON DELETE {on_delete}"
        table.foreign_keys.append(statement + ";")

    def _add_unique(self, table: Table, columns: list[str]) -> None:
        name = self.namer.name(UNIQUE, table.name, columns)
        table.constraints.append(f"CONSTRAINT {name} UNIQUE ({column_list(columns)})")

    def _add_check(self, table: Table, tokens: list[str], expression: str) -> None:
        name = self.namer.name(CHECK, table.name, tokens)
        table.constraints.append(f"CONSTRAINT {name} CHECK ({expression})")

    def _render_table(self, table: Table) -> str:
        lines = [c.render() for c in table.columns] + table.constraints
        return self.render("table", table=quote(table.name), lines=lines, statements=table.statements)

    # -- enums and structures -----------------------------------------------

    def materialize_enum(self, enum: EnumDef) -> Artifact:
        table = self.table_name(enum.name)
        rows = [f"({i}, {sql_literal(symbol)}, {sql_literal(value)})" for i, (symbol, value) in enumerate(enum.members, start=1)]
        content = self.render(
            "enum",
            table=quote(table),
            value_type=self.ENUM_VALUE_TYPES.get(enum.value_type, "TEXT"),
            key_constraint=self.namer.name(UNIQUE, table, ["key"]),
            value_constraint=self.namer.name(UNIQUE, table, ["value"]),
            rows=rows,
        )
        return Artifact(declaration=enum.name, kind=enum.kind, content=content)

    def materialize_structure(self, structure: StructureDef) -> None:
        # Structures only group fields for the structural targets
        return None

    # -- models -------------------------------------------------------------

    def materialize_model(self, model: ModelDef) -> Artifact | None:
        if model.is_subclass and model.base in self.graph.hierarchies:
            # Stored in the base table
            return None

        table = Table(name=self.table_name(model.name))
        junctions: list[Table] = []

        for f in model.fields:
            self._add_field(table, model, f, nullable=f.optional)
        self._add_identifiers(table, model, model.identifiers)

        for relation in model.own_relations:
            self._add_relation(table, model, relation, junctions)

        if model.name in self.graph.hierarchies:
            self._add_variants(table, model, junctions)

        for owner, relation in self.back_references.get(model.name, []):
            self._add_back_reference(table, model, owner, relation)

        content = "\n\n".join([self._render_table(table), *(self._render_table(j) for j in junctions)])
        deferred = "\n".join([*table.foreign_keys, *(fk for j in junctions for fk in j.foreign_keys)])
        return Artifact(declaration=model.name, kind=model.kind, content=content, deferred=deferred)

    def _add_field(self, table: Table, owner: ModelDef, f: FieldDef, nullable: bool, shareable: bool = False) -> None:
        column = self._add_column(
            table,
            owner,
            Column(name=self.field_column(f), sql_type=self.translate_type(f.type_ref), nullable=nullable, origin=owner.name),
            shareable=shareable,
        )
        if column.origin != owner.name:
            # Shared with a sibling variant; constraints already emitted
            return

        if f.type_ref.is_enum:
            self._add_foreign_key(table, [column.name], self.table_name(f.type_ref.name), ["id"])
        if f.immutable:
            table.statements.append(f"COMMENT ON COLUMN {quote(table.name)}.{quote(column.name)} IS 'immutable';")

    def _identifier_columns(self, owner: ModelDef, fields: tuple[str, ...]) -> list[str]:
        return [self.field_column(owner.field(name)) for name in fields]

    def _add_identifiers(self, table: Table, owner: ModelDef, identifiers) -> None:
        for identifier in identifiers:
            columns = self._identifier_columns(owner, identifier.fields)
            if identifier.is_primary:
                table.constraints.insert(0, f"PRIMARY KEY ({column_list(columns)})")
            else:
                self._add_unique(table, columns)

    def _add_relation(self, table: Table, owner: ModelDef, relation: RelationDef, junctions: list[Table]) -> None:
        if not relation.is_resolved:
            return

        if relation.kind in (RelationKind.HAS_ONE, RelationKind.FOR_ONE):
            self._add_to_one(table, owner, relation)
        elif relation.kind == RelationKind.FOR_MANY:
            junctions.append(self._junction(owner, relation))
        elif relation.kind == RelationKind.FOR_ONE_POLY:
            self._add_poly_reference(table, owner, relation)
        elif relation.kind == RelationKind.FOR_MANY_POLY:
            junctions.append(self._poly_junction(owner, relation))
        # HasMany is stored as a back-reference on the target table,
        # Has*Poly by the target's For*Poly columns

    def _add_to_one(self, table: Table, owner: ModelDef, relation: RelationDef) -> None:
        fields = self.key_fields(relation)
        columns = self._reference_columns(to_snake_case(relation.name), fields)
        for column, key in zip(columns, fields):
            self._add_column(table, owner, Column(name=column, sql_type=self.key_type(key.type_ref), origin=owner.name))
        self._add_index(table, columns)
        self._add_foreign_key(
            table,
            columns,
            self.storage_table(relation.target),
            [self.field_column(f) for f in fields],
            on_delete="SET NULL",
        )

    def _add_poly_reference(self, table: Table, owner: ModelDef, relation: RelationDef) -> None:
        key = self.poly_key_field(owner, relation)
        prefix = to_snake_case(relation.name)
        type_column, id_column = f"{prefix}_type", f"{prefix}_id"
        self._add_column(table, owner, Column(name=type_column, sql_type="TEXT", origin=owner.name))
        self._add_column(table, owner, Column(name=id_column, sql_type=self.key_type(key.type_ref), origin=owner.name))
        self._add_poly_type_check(table, relation, type_column)
        self._add_index(table, [type_column, id_column])

    def _add_poly_type_check(self, table: Table, relation: RelationDef, type_column: str) -> None:
        names = ", ".join(sql_literal(n) for n in self.poly_type_names(relation))
        self._add_check(table, [type_column], f"{quote(type_column)} IN ({names})")

    def _junction_name(self, owner: ModelDef, relation: RelationDef) -> str:
        return f"{to_snake_case(owner.name)}_{to_snake_case(pluralize(relation.name))}"

    def _owner_columns(self, owner: ModelDef) -> tuple[list[str], tuple[FieldDef, ...]]:
        fields = self.graph.primary_fields(owner)
        return self._reference_columns(to_snake_case(owner.name), fields), fields

    def _junction(self, owner: ModelDef, relation: RelationDef) -> Table:
        junction = Table(name=self._junction_name(owner, relation))
        owner_columns, owner_fields = self._owner_columns(owner)
        target_fields = self.key_fields(relation)
        target_columns = self._reference_columns(to_snake_case(relation.name), target_fields)
        if set(owner_columns) & set(target_columns):
            target_columns = [f"related_{c}" for c in target_columns]

        for column, key in zip(owner_columns + target_columns, owner_fields + target_fields):
            self._add_column(junction, owner, Column(name=column, sql_type=self.key_type(key.type_ref), nullable=False, origin=owner.name))

        junction.constraints.append(f"PRIMARY KEY ({column_list(owner_columns + target_columns)})")
        if relation.unique:
            self._add_unique(junction, target_columns)
        self._add_index(junction, target_columns)

        self._add_foreign_key(junction, owner_columns, self.storage_table(owner.name), [self.field_column(f) for f in owner_fields], on_delete="CASCADE")
        self._add_foreign_key(
            junction,
            target_columns,
            self.storage_table(relation.target),
            [self.field_column(f) for f in target_fields],
            on_delete="CASCADE",
        )
        return junction

    def _poly_junction(self, owner: ModelDef, relation: RelationDef) -> Table:
        key = self.poly_key_field(owner, relation)
        junction = Table(name=self._junction_name(owner, relation))
        owner_columns, owner_fields = self._owner_columns(owner)
        prefix = to_snake_case(relation.name)
        type_column, id_column = f"{prefix}_type", f"{prefix}_id"

        for column, owner_key in zip(owner_columns, owner_fields):
            self._add_column(junction, owner, Column(name=column, sql_type=self.key_type(owner_key.type_ref), nullable=False, origin=owner.name))
        self._add_column(junction, owner, Column(name=type_column, sql_type="TEXT", nullable=False, origin=owner.name))
        self._add_column(junction, owner, Column(name=id_column, sql_type=self.key_type(key.type_ref), nullable=False, origin=owner.name))

        junction.constraints.append(f"PRIMARY KEY ({column_list(owner_columns + [type_column, id_column])})")
        if relation.unique:
            self._add_unique(junction, [type_column, id_column])
        self._add_poly_type_check(junction, relation, type_column)
        self._add_index(junction, [type_column, id_column])
        self._add_foreign_key(junction, owner_columns, self.storage_table(owner.name), [self.field_column(f) for f in owner_fields], on_delete="CASCADE")
        return junction

    # -- back-references ----------------------------------------------------

    def _collect_back_references(self) -> dict[str, list[tuple[ModelDef, RelationDef]]]:
        """HasMany relations, keyed by the model whose table stores the reference."""
        back_references: dict[str, list[tuple[ModelDef, RelationDef]]] = {}
        for owner in self.graph.models.values():
            for relation in owner.own_relations:
                if relation.kind != RelationKind.HAS_MANY or relation.target not in self.graph.models:
                    continue
                target = self.graph.models[relation.target]
                if self._refers_back(target, owner):
                    continue
                storage = self.graph.storage_model(target.name)
                back_references.setdefault(storage.name, []).append((owner, relation))
        return back_references

    @staticmethod
    def _refers_back(target: ModelDef, owner: ModelDef) -> bool:
        """Whether the target already stores a to-one reference to the owner."""
        return any(
            r.kind in (RelationKind.HAS_ONE, RelationKind.FOR_ONE) and r.target in (owner.name, owner.base)
            for r in target.relations
        )

    def _add_back_reference(self, table: Table, target: ModelDef, owner: ModelDef, relation: RelationDef) -> None:
        columns, fields = self._owner_columns(owner)
        if any(table.column(c) for c in columns):
            columns = self._reference_columns(f"{to_snake_case(owner.name)}_{to_snake_case(relation.name)}", fields)
        origin = f"{owner.name}.{relation.name}"
        for column, key in zip(columns, fields):
            self._add_column(table, target, Column(name=column, sql_type=self.key_type(key.type_ref), origin=origin))
        self._add_index(table, columns)
        self._add_foreign_key(table, columns, self.storage_table(owner.name), [self.field_column(f) for f in fields], on_delete="SET NULL")

    # -- polymorphic hierarchies --------------------------------------------

    def _add_variants(self, table: Table, base: ModelDef, junctions: list[Table]) -> None:
        """Fold every variant of a hierarchy into its base table."""
        hierarchy = self.graph.hierarchies[base.name]
        discriminator = quote(to_snake_case(hierarchy.discriminator))

        if hierarchy.identities:
            identities = ", ".join(sql_literal(i) for i in hierarchy.identities)
            self._add_check(table, [to_snake_case(hierarchy.discriminator)], f"{discriminator} IN ({identities})")

        for variant in self.hierarchy_members(base):
            identity = sql_literal(variant.identity)
            for f in variant.own_fields:
                self._add_field(table, variant, f, nullable=True, shareable=True)
                if not f.optional:
                    column = self.field_column(f)
                    self._add_check(
                        table,
                        [to_snake_case(variant.name), column],
                        f"{discriminator} <> {identity} OR {quote(column)} IS NOT NULL",
                    )

            own_identifiers = tuple(i for i in variant.identifiers if i not in base.identifiers and not i.is_primary)
            self._add_identifiers(table, variant, own_identifiers)

            for relation in variant.own_relations:
                self._add_relation(table, variant, relation, junctions)

    # -- entities -----------------------------------------------------------

    def materialize_entity(self, entity: EntityDef) -> Artifact:
        roots = entity.roots
        if len(roots) != 1:
            raise self.unsupported(
                entity,
                f"A view needs exactly one root model, found {len(roots)} ({', '.join(roots) or 'none'})",
                roots=", ".join(roots),
            )

        aliases: dict[tuple[str, ...], str] = {(): "t0"}
        joins: list[str] = []
        columns: list[str] = []
        for f in entity.fields:
            alias, key = "t0", ()
            for step in f.path.steps:
                key = (*key, step.relation)
                if key not in aliases:
                    aliases[key] = f"t{len(aliases)}"
                    joins.append(self._join(step, alias, aliases[key]))
                alias = aliases[key]
            terminal = self.graph.models[f.path.terminal_model].field(f.path.terminal_field)
            columns.append(f"{alias}.{quote(self.field_column(terminal))} AS {quote(self.field_column(f))}")

        source = [f"FROM {quote(self.storage_table(roots[0]))} t0", *joins]
        variant = self._variant_condition(roots[0], "t0")
        if variant:
            source.append(f"WHERE {variant}")
        content = self.render("view", view=quote(self.table_name(entity.name)), columns=columns, source=source)
        return Artifact(declaration=entity.name, kind=entity.kind, content=content)

    def _join(self, step: PathStep, alias: str, joined: str) -> str:
        owner = self.graph.models[step.model]
        relation = owner.relation(step.relation)
        target = self.graph.models[step.target]
        table = quote(self.storage_table(target.name))

        if relation.is_has_poly:
            interface = target.relation(relation.through)
            prefix = to_snake_case(interface.name)
            key = self.graph.primary_fields(owner)[0]
            hierarchy = self.graph.hierarchies.get(owner.name)
            names = hierarchy.variant_names if hierarchy else (owner.name,)
            if len(names) == 1:
                type_condition = f"{joined}.{prefix}_type = {sql_literal(names[0])}"
            else:
                type_condition = f"{joined}.{prefix}_type IN ({', '.join(sql_literal(n) for n in names)})"
            conditions = [type_condition, f"{joined}.{prefix}_id = {alias}.{quote(self.field_column(key))}"]
        else:
            fields = self.graph.primary_fields(target)
            prefix = to_snake_case(relation.name)
            conditions = [f"{joined}.{quote(self.field_column(f))} = {alias}.{quote(f'{prefix}_{self.field_column(f)}')}" for f in fields]

        variant = self._variant_condition(target.name, joined)
        if variant:
            conditions.append(variant)

        return f"LEFT JOIN {table} {joined} ON {' AND '.join(conditions)}"

    def _variant_condition(self, model_name: str, alias: str) -> str | None:
        """Restrict rows of a shared hierarchy table to one variant."""
        storage = self.graph.storage_model(model_name)
        if storage is None or storage.name == model_name:
            return None
        hierarchy = self.graph.hierarchies[storage.name]
        identity = hierarchy.identity_of(model_name)
        return f"{alias}.{quote(to_snake_case(hierarchy.discriminator))} = {sql_literal(identity)}"
