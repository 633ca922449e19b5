import pytest

from model_schema_to_code.errors import DuplicateDeclaration, UnknownDeclaration
from model_schema_to_code.pipeline.analyzer import SchemaRegistry
from model_schema_to_code.pipeline.declarations.nodes import (
    DeclarationKind,
    EntityDecl,
    EnumDecl,
    ModelDecl,
)


class TestSchemaRegistry:
    def test_register_and_lookup(self):
        registry = SchemaRegistry()
        person = ModelDecl(name="Person")
        registry.register(DeclarationKind.MODEL, person)

        assert registry.lookup(DeclarationKind.MODEL, "Person") is person
        assert (DeclarationKind.MODEL, "Person") in registry
        assert len(registry) == 1

    def test_lookup_unknown_raises(self):
        registry = SchemaRegistry()
        with pytest.raises(UnknownDeclaration) as excinfo:
            registry.lookup(DeclarationKind.ENUM, "Color")
        assert excinfo.value.declaration == "Color"
        assert excinfo.value.kind == "enum"

    def test_find_returns_none_when_absent(self):
        assert SchemaRegistry().find(DeclarationKind.MODEL, "Person") is None

    def test_duplicate_in_same_kind_raises(self):
        registry = SchemaRegistry()
        registry.register(DeclarationKind.MODEL, ModelDecl(name="Person"))
        with pytest.raises(DuplicateDeclaration):
            registry.register(DeclarationKind.MODEL, ModelDecl(name="Person"))

    def test_kinds_have_separate_namespaces(self):
        registry = SchemaRegistry()
        registry.register(DeclarationKind.MODEL, ModelDecl(name="Card"))
        registry.register(DeclarationKind.ENTITY, EntityDecl(name="Card"))

        assert isinstance(registry.lookup(DeclarationKind.MODEL, "Card"), ModelDecl)
        assert isinstance(registry.lookup(DeclarationKind.ENTITY, "Card"), EntityDecl)
        assert (DeclarationKind.ENUM, "Card") not in registry

    def test_register_all_collects_duplicates_and_keeps_first(self):
        registry = SchemaRegistry()
        first = EnumDecl(name="Color", entries=(("RED", "red"),))
        second = EnumDecl(name="Color", entries=(("BLUE", "blue"),))

        diagnostics = registry.register_all([first, ModelDecl(name="Person"), second])

        assert [d.rule for d in diagnostics] == ["DuplicateDeclaration"]
        assert diagnostics[0].declaration == "Color"
        assert registry.lookup(DeclarationKind.ENUM, "Color") is first
        assert len(registry) == 2

    def test_declarations_keep_registration_order(self):
        registry = SchemaRegistry()
        registry.register_all([ModelDecl(name="B"), ModelDecl(name="A"), ModelDecl(name="C")])
        assert [d.name for d in registry.declarations(DeclarationKind.MODEL)] == ["B", "A", "C"]
        assert [d.name for d in registry] == ["B", "A", "C"]
