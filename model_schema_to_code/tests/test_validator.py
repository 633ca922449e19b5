"""
Tests for the graph invariant rules.

Each test compiles a small declaration set and checks the rule names of
the diagnostics that block generation.
"""

import unittest

from model_schema_to_code.errors import CompilationError
from model_schema_to_code.pipeline import PipelineGenerator
from model_schema_to_code.pipeline.analyzer import (
    EntityDef,
    FieldDef,
    IdentifierDef,
    IndirectionPath,
    InvariantValidator,
    ModelDef,
    ModelGraph,
    TypeKind,
    TypeRef,
)


def model(name, fields=None, primary=("ID",), **extra):
    body = {"name": name, "fields": fields if fields is not None else {"ID": "AutoIncrement"}}
    if primary:
        body["identifiers"] = {"primary": list(primary)}
    body.update(extra)
    return body


class ValidatorTestCase(unittest.TestCase):
    def diagnostics(self, schema):
        with self.assertRaises(CompilationError) as ctx:
            PipelineGenerator(schema).compile()
        return ctx.exception.diagnostics

    def assertRules(self, schema, *expected):
        self.assertEqual(sorted(d.rule for d in self.diagnostics(schema)), sorted(expected))


class TestValidSchemas(ValidatorTestCase):
    def test_valid_schema_compiles(self):
        schema = {
            "enums": [{"name": "Status", "type": "Integer", "values": {"ACTIVE": 1, "CLOSED": 2}}],
            "models": [
                model("Account", {"ID": "UUID", "Status": "Status", "Email": "String"}, identifiers={"primary": ["ID"], "email": ["Email"]}),
            ],
        }
        graph = PipelineGenerator(schema).compile()
        self.assertIn("Account", graph.models)

    def test_compile_is_cached(self):
        generator = PipelineGenerator({"models": [model("A")]})
        self.assertIs(generator.compile(), generator.compile())


class TestFieldRules(ValidatorTestCase):
    def test_duplicate_field(self):
        fields = [{"name": "ID", "type": "UUID"}, {"name": "ID", "type": "String"}]
        self.assertRules({"models": [model("A", fields)]}, "DuplicateField")

    def test_subclass_cannot_shadow_base_field(self):
        schema = {
            "models": [
                model("Vehicle", {"ID": "UUID", "Name": "String"}, polymorphic={"discriminator": "Kind"}),
                model("Car", {"Name": "String"}, primary=(), extends="Vehicle", polymorphic={"identity": "car"}),
            ]
        }
        self.assertRules(schema, "ShadowedBaseField")


class TestIdentifierRules(ValidatorTestCase):
    def test_missing_primary(self):
        self.assertRules({"models": [model("A", primary=())]}, "MissingPrimaryIdentifier")

    def test_unknown_identifier_field(self):
        self.assertRules({"models": [model("A", primary=("Nope",))]}, "UnknownIdentifierField")

    def test_empty_identifier(self):
        schema = {"models": [model("A", identifiers={"primary": ["ID"], "code": []})]}
        self.assertRules(schema, "UnknownIdentifierField")

    def test_optional_primary_field(self):
        self.assertRules({"models": [model("A", {"ID": "UUID optional"})]}, "OptionalIdentifierField")

    def test_duplicate_identifier(self):
        identifiers = [
            {"name": "primary", "fields": ["ID"]},
            {"name": "code", "fields": ["ID"]},
            {"name": "code", "fields": ["ID"]},
        ]
        self.assertRules({"models": [model("A", primary=(), identifiers=identifiers)]}, "DuplicateIdentifier")

    def test_entity_needs_primary(self):
        schema = {
            "models": [model("A", {"ID": "UUID", "Name": "String"})],
            "entities": [{"name": "Card", "fields": {"Name": "A.Name"}}],
        }
        self.assertRules(schema, "MissingPrimaryIdentifier")


class TestRelationRules(ValidatorTestCase):
    def test_relation_named_like_a_field(self):
        schema = {"models": [model("A", {"ID": "UUID", "B": "String"}, relations={"B": "ForOne"}), model("B")]}
        self.assertRules(schema, "AmbiguousAliasTarget")

    def test_relation_declared_twice(self):
        relations = [{"name": "Contact", "type": "ForOne"}, {"name": "Contact", "type": "HasOne"}]
        schema = {"models": [model("A", relations=relations), model("Contact")]}
        self.assertRules(schema, "AmbiguousAliasTarget")

    def test_reference_key_collides_with_field(self):
        schema = {"models": [model("A", {"ID": "UUID", "ContactID": "Integer"}, relations={"Contact": "ForOne"}), model("Contact")]}
        self.assertRules(schema, "AmbiguousAliasTarget")

    def test_has_poly_through_unknown_interface(self):
        schema = {
            "models": [
                model("Post", relations={"Comments": {"type": "HasManyPoly", "through": "Subject", "aliased": "Comment"}}),
                model("Comment"),
            ]
        }
        self.assertRules(schema, "PolymorphicThroughMismatch")

    def test_has_poly_through_interface_without_owner(self):
        schema = {
            "models": [
                model("Post", relations={"Comments": {"type": "HasManyPoly", "through": "Subject", "aliased": "Comment"}}),
                model("Photo"),
                model("Comment", relations={"Subject": {"type": "ForOnePoly", "for": ["Photo"]}}),
            ]
        }
        self.assertRules(schema, "PolymorphicThroughMismatch")

    def test_has_poly_through_matching_interface(self):
        schema = {
            "models": [
                model("Post", relations={"Comments": {"type": "HasManyPoly", "through": "Subject", "aliased": "Comment"}}),
                model("Comment", relations={"Subject": {"type": "ForOnePoly", "for": ["Post"]}}),
            ]
        }
        graph = PipelineGenerator(schema).compile()
        self.assertTrue(graph.models["Post"].relation("Comments").is_has_poly)


class TestPolymorphismRules(ValidatorTestCase):
    def base(self, **polymorphic):
        return model("Vehicle", {"ID": "UUID"}, polymorphic=polymorphic or {"discriminator": "Kind"})

    def test_subclass_without_identity(self):
        schema = {"models": [self.base(), model("Car", {}, primary=(), extends="Vehicle")]}
        self.assertRules(schema, "MissingPolymorphicIdentity")

    def test_identity_without_base(self):
        schema = {"models": [model("Car", polymorphic={"identity": "car"})]}
        self.assertRules(schema, "OrphanPolymorphicIdentity")

    def test_identity_must_be_a_string(self):
        schema = {"models": [self.base(), model("Car", {}, primary=(), extends="Vehicle", polymorphic={"identity": 1})]}
        self.assertIn("InvalidDiscriminator", [d.rule for d in self.diagnostics(schema)])

    def test_discriminator_must_be_a_required_string(self):
        schema = {
            "models": [
                model("Vehicle", {"ID": "UUID", "Kind": "Integer"}, polymorphic={"discriminator": "Kind"}),
                model("Car", {}, primary=(), extends="Vehicle", polymorphic={"identity": "car"}),
            ]
        }
        self.assertRules(schema, "InvalidDiscriminator")

    def test_declared_discriminator_field_is_accepted(self):
        schema = {
            "models": [
                model("Vehicle", {"ID": "UUID", "Kind": "String"}, polymorphic={"discriminator": "Kind"}),
                model("Car", {}, primary=(), extends="Vehicle", polymorphic={"identity": "car"}),
            ]
        }
        graph = PipelineGenerator(schema).compile()
        self.assertFalse(graph.models["Vehicle"].field("Kind").synthesized)


class TestEnumRules(ValidatorTestCase):
    def test_empty_enum(self):
        self.assertRules({"enums": [{"name": "E", "values": {}}]}, "EmptyEnum")

    def test_duplicate_symbol(self):
        self.assertRules({"enums": [{"name": "E", "type": "Integer", "values": [["A", 1], ["A", 2]]}]}, "DuplicateEnumSymbol")

    def test_duplicate_value(self):
        self.assertRules({"enums": [{"name": "E", "values": {"A": "x", "B": "x"}}]}, "DuplicateEnumValue")

    def test_value_must_conform_to_representation(self):
        self.assertRules({"enums": [{"name": "E", "type": "Integer", "values": {"A": "x", "B": True}}]}, "InvalidEnumValue", "InvalidEnumValue")

    def test_float_enum_accepts_integers(self):
        graph = PipelineGenerator({"enums": [{"name": "E", "type": "Float", "values": {"HALF": 0.5, "ONE": 1}}]}).compile()
        self.assertEqual(graph.enums["E"].values, (0.5, 1))

    def test_unsupported_representation(self):
        self.assertRules({"enums": [{"name": "E", "type": "Boolean", "values": {"YES": True}}]}, "InvalidEnumType")


class TestCollection(ValidatorTestCase):
    def test_every_problem_is_reported(self):
        schema = {
            "enums": [{"name": "E", "values": {}}],
            "models": [
                model("A", primary=()),
                model("B", {"ID": "UUID", "Color": "Colour"}),
                model("A"),
            ],
        }
        self.assertRules(schema, "EmptyEnum", "MissingPrimaryIdentifier", "UnknownEnum", "DuplicateDeclaration")


class TestIndirectionRule(unittest.TestCase):
    def test_entity_field_type_must_match_terminal(self):
        string, integer = TypeRef(TypeKind.ATOMIC, "String"), TypeRef(TypeKind.ATOMIC, "Integer")
        graph = ModelGraph(
            models={"A": ModelDef(name="A", fields=(FieldDef(name="X", type_ref=string),), identifiers=(IdentifierDef("primary", ("X",)),))},
            entities={
                "E": EntityDef(
                    name="E",
                    fields=(FieldDef(name="X", type_ref=integer, path=IndirectionPath(root="A", terminal_model="A", terminal_field="X")),),
                    identifiers=(IdentifierDef("primary", ("X",)),),
                )
            },
        )
        diagnostics = InvariantValidator().validate(graph)
        self.assertEqual([d.rule for d in diagnostics], ["InconsistentIndirectionType"])
        self.assertEqual(diagnostics[0].declaration, "E")


if __name__ == "__main__":
    unittest.main()
