"""
Declaration parser.

Turns the structured (JSON-shaped) declaration set produced by the
notation front-end into declaration nodes, without resolving any
reference. Malformed input raises DeclarationError immediately.

Accepted shape:

    {
        "enums": [{"name": "Nationality", "type": "String", "values": {"US": "American"}}],
        "structures": [{"name": "Point", "fields": {"X": "Float", "Y": "Float"}}],
        "models": [{
            "name": "Person",
            "fields": {"ID": "AutoIncrement", "Name": "String optional"},
            "identifiers": {"primary": ["ID"]},
            "relations": {"ContactInfo": {"type": "HasOne"}},
            "extends": "Base", "polymorphic": {"identity": "person"}
        }],
        "entities": [{"name": "PersonCard", "fields": {"Email": "Person.ContactInfo.Email"}}]
    }
"""

from __future__ import annotations

import logging
from typing import Any

from ...errors import DeclarationError
from .nodes import (
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

logger = logging.getLogger(__name__)

# Literal types allowed for enum values and polymorphic identities
SCALARS = (str, int, float, bool, type(None))


class DeclarationParser:
    """Parses a structured declaration set into declaration nodes."""

    SECTIONS = {
        "models": DeclarationKind.MODEL,
        "entities": DeclarationKind.ENTITY,
        "enums": DeclarationKind.ENUM,
        "structures": DeclarationKind.STRUCTURE,
    }

    def parse(self, schema: dict[str, Any]) -> DeclarationSet:
        """
        Parse a structured declaration set.

        Args:
            schema: Dictionary with "models", "entities", "enums", "structures" lists

        Returns:
            DeclarationSet in source order
        """
        if not isinstance(schema, dict):
            raise DeclarationError(f"Declaration set must be an object, got {type(schema).__name__}")

        unknown = set(schema) - set(self.SECTIONS)
        if unknown:
            raise DeclarationError(f"Unknown declaration section(s): {', '.join(sorted(unknown))}")

        result = DeclarationSet()
        for section, kind in self.SECTIONS.items():
            for raw in self._section_items(schema.get(section) or [], section):
                if kind == DeclarationKind.MODEL:
                    result.models.append(self._parse_model(raw))
                elif kind == DeclarationKind.ENTITY:
                    result.entities.append(self._parse_entity(raw))
                elif kind == DeclarationKind.ENUM:
                    result.enums.append(self._parse_enum(raw))
                else:
                    result.structures.append(self._parse_structure(raw))

        logger.debug("Parsed %d declaration(s)", len(result))
        return result

    def _section_items(self, items: Any, section: str) -> list[dict[str, Any]]:
        """Accept a list of objects, or a mapping of name -> object."""
        if isinstance(items, dict):
            return [{"name": name, **(body or {})} for name, body in items.items()]
        if not isinstance(items, list):
            raise DeclarationError(f"Section '{section}' must be a list or an object")
        for raw in items:
            if not isinstance(raw, dict):
                raise DeclarationError(f"Entries of '{section}' must be objects, got {raw!r}")
        return items

    def _declaration_name(self, raw: dict[str, Any], kind: DeclarationKind) -> str:
        name = raw.get("name")
        if not isinstance(name, str) or not name:
            raise DeclarationError(f"A {kind.value} declaration is missing its name", kind=kind.value)
        return name

    def _parse_enum(self, raw: dict[str, Any]) -> EnumDecl:
        name = self._declaration_name(raw, DeclarationKind.ENUM)
        values = raw.get("values", {})
        if isinstance(values, dict):
            entries = tuple(values.items())
        elif isinstance(values, list):
            entries = []
            for entry in values:
                if isinstance(entry, dict) and "symbol" in entry:
                    entries.append((entry["symbol"], entry.get("value")))
                elif isinstance(entry, (list, tuple)) and len(entry) == 2:
                    entries.append((entry[0], entry[1]))
                else:
                    raise DeclarationError(f"Invalid enum entry {entry!r}", name, DeclarationKind.ENUM.value)
            entries = tuple(entries)
        else:
            raise DeclarationError("Enum values must be an object or a list", name, DeclarationKind.ENUM.value)

        for symbol, value in entries:
            if not isinstance(symbol, str):
                raise DeclarationError(f"Enum symbol {symbol!r} must be a string", name, DeclarationKind.ENUM.value)
            if not isinstance(value, SCALARS):
                raise DeclarationError(f"Enum value {value!r} of '{symbol}' must be a scalar", name, DeclarationKind.ENUM.value, symbol=symbol)

        return EnumDecl(name=name, value_type=raw.get("type", "String"), entries=entries)

    def _parse_structure(self, raw: dict[str, Any]) -> StructureDecl:
        name = self._declaration_name(raw, DeclarationKind.STRUCTURE)
        for forbidden in ("identifiers", "relations"):
            if raw.get(forbidden):
                raise DeclarationError(f"Structures cannot declare {forbidden}", name, DeclarationKind.STRUCTURE.value)
        return StructureDecl(name=name, fields=self._parse_fields(raw.get("fields"), name, DeclarationKind.STRUCTURE))

    def _parse_model(self, raw: dict[str, Any]) -> ModelDecl:
        name = self._declaration_name(raw, DeclarationKind.MODEL)
        polymorphic = raw.get("polymorphic") or {}
        if not isinstance(polymorphic, dict):
            raise DeclarationError("'polymorphic' must be an object", name, DeclarationKind.MODEL.value)
        if not isinstance(polymorphic.get("identity"), SCALARS):
            raise DeclarationError(f"Polymorphic identity {polymorphic['identity']!r} must be a scalar", name, DeclarationKind.MODEL.value)
        for key, value in (("extends", raw.get("extends")), ("discriminator", polymorphic.get("discriminator"))):
            if value is not None and not isinstance(value, str):
                raise DeclarationError(f"'{key}' must be a name, got {value!r}", name, DeclarationKind.MODEL.value)

        return ModelDecl(
            name=name,
            fields=self._parse_fields(raw.get("fields"), name, DeclarationKind.MODEL),
            identifiers=self._parse_identifiers(raw.get("identifiers"), name, DeclarationKind.MODEL),
            relations=self._parse_relations(raw.get("relations"), name, DeclarationKind.MODEL),
            extends=raw.get("extends"),
            identity=polymorphic.get("identity"),
            discriminator=polymorphic.get("discriminator"),
        )

    def _parse_entity(self, raw: dict[str, Any]) -> EntityDecl:
        name = self._declaration_name(raw, DeclarationKind.ENTITY)
        return EntityDecl(
            name=name,
            fields=self._parse_fields(raw.get("fields"), name, DeclarationKind.ENTITY),
            identifiers=self._parse_identifiers(raw.get("identifiers"), name, DeclarationKind.ENTITY),
            relations=self._parse_relations(raw.get("relations"), name, DeclarationKind.ENTITY),
        )

    def _parse_fields(self, raw_fields: Any, owner: str, kind: DeclarationKind) -> tuple[FieldDecl, ...]:
        if raw_fields is None:
            return ()

        if isinstance(raw_fields, dict):
            items = list(raw_fields.items())
        elif isinstance(raw_fields, list):
            items = []
            for raw in raw_fields:
                if not isinstance(raw, dict) or "name" not in raw:
                    raise DeclarationError(f"Invalid field entry {raw!r}", owner, kind.value)
                items.append((raw["name"], raw))
        else:
            raise DeclarationError("Fields must be an object or a list", owner, kind.value)

        return tuple(self._parse_field(name, definition, owner, kind) for name, definition in items)

    def _parse_field(self, name: str, definition: Any, owner: str, kind: DeclarationKind) -> FieldDecl:
        if isinstance(definition, str):
            # Shorthand: "String optional immutable"
            parts = definition.split()
            if not parts:
                raise DeclarationError("Field type is empty", owner, kind.value, field=name)
            return FieldDecl(name=name, type_token=parts[0], attributes=tuple(parts[1:]))

        if isinstance(definition, dict):
            type_token = definition.get("type")
            if not isinstance(type_token, str) or not type_token:
                raise DeclarationError("Field type is missing", owner, kind.value, field=name)
            attributes = definition.get("attributes") or []
            if isinstance(attributes, str):
                attributes = attributes.split()
            if definition.get("optional") and "optional" not in attributes:
                attributes = [*attributes, "optional"]
            return FieldDecl(name=name, type_token=type_token, attributes=tuple(attributes))

        raise DeclarationError(f"Invalid field declaration {definition!r}", owner, kind.value, field=name)

    def _parse_identifiers(self, raw_ids: Any, owner: str, kind: DeclarationKind) -> tuple[IdentifierDecl, ...]:
        if raw_ids is None:
            return ()

        if isinstance(raw_ids, dict):
            items = list(raw_ids.items())
        elif isinstance(raw_ids, list):
            items = []
            for raw in raw_ids:
                if not isinstance(raw, dict) or "name" not in raw:
                    raise DeclarationError(f"Invalid identifier entry {raw!r}", owner, kind.value)
                items.append((raw["name"], raw.get("fields", [])))
        else:
            raise DeclarationError("Identifiers must be an object or a list", owner, kind.value)

        identifiers = []
        for name, fields in items:
            if isinstance(fields, str):
                fields = [fields]
            identifiers.append(IdentifierDecl(name=name, fields=tuple(fields)))
        return tuple(identifiers)

    def _parse_relations(self, raw_relations: Any, owner: str, kind: DeclarationKind) -> tuple[RelationDecl, ...]:
        if raw_relations is None:
            return ()

        if isinstance(raw_relations, dict):
            items = list(raw_relations.items())
        elif isinstance(raw_relations, list):
            items = []
            for raw in raw_relations:
                if not isinstance(raw, dict) or "name" not in raw:
                    raise DeclarationError(f"Invalid relation entry {raw!r}", owner, kind.value)
                items.append((raw["name"], raw))
        else:
            raise DeclarationError("Relations must be an object or a list", owner, kind.value)

        relations = []
        for name, definition in items:
            if isinstance(definition, str):
                definition = {"type": definition}
            if not isinstance(definition, dict) or not isinstance(definition.get("type"), str):
                raise DeclarationError("Relation type is missing", owner, kind.value, relation=name)
            candidates = definition.get("for") or []
            if isinstance(candidates, str):
                candidates = [candidates]
            relations.append(
                RelationDecl(
                    name=name,
                    type_token=definition["type"],
                    through=definition.get("through"),
                    for_=tuple(candidates),
                    aliased=definition.get("aliased"),
                    unique=bool(definition.get("unique", False)),
                )
            )
        return tuple(relations)
