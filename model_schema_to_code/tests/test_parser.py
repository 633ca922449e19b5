"""
Tests for the structured declaration parser.
"""

import unittest

from model_schema_to_code.errors import DeclarationError
from model_schema_to_code.pipeline.declarations import (
    DeclarationParser,
    FieldDecl,
    IdentifierDecl,
    RelationDecl,
)


class TestDeclarationParser(unittest.TestCase):
    def setUp(self):
        self.parser = DeclarationParser()

    def test_field_shorthand_splits_type_and_attributes(self):
        result = self.parser.parse({"models": [{"name": "Person", "fields": {"Name": "String optional immutable"}}]})
        field = result.models[0].fields[0]
        self.assertEqual(field, FieldDecl(name="Name", type_token="String", attributes=("optional", "immutable")))
        self.assertTrue(field.is_optional)

    def test_field_object_and_list_forms(self):
        result = self.parser.parse(
            {
                "models": [
                    {"name": "A", "fields": {"X": {"type": "Integer", "optional": True, "attributes": "indexed"}}},
                    {"name": "B", "fields": [{"name": "Y", "type": "Float", "attributes": ["immutable"]}]},
                ]
            }
        )
        self.assertEqual(result.models[0].fields[0].attributes, ("indexed", "optional"))
        self.assertEqual(result.models[1].fields[0], FieldDecl(name="Y", type_token="Float", attributes=("immutable",)))

    def test_sections_accept_name_mapping(self):
        result = self.parser.parse({"models": {"Person": {"fields": {"ID": "AutoIncrement"}}}})
        self.assertEqual(result.models[0].name, "Person")
        self.assertEqual(result.models[0].fields[0].type_token, "AutoIncrement")

    def test_identifiers(self):
        result = self.parser.parse(
            {
                "models": [
                    {"name": "A", "identifiers": {"primary": ["ID"], "code": "Code"}},
                    {"name": "B", "identifiers": [{"name": "primary", "fields": ["X", "Y"]}]},
                ]
            }
        )
        self.assertEqual(
            result.models[0].identifiers,
            (IdentifierDecl(name="primary", fields=("ID",)), IdentifierDecl(name="code", fields=("Code",))),
        )
        self.assertEqual(result.models[1].identifiers[0].fields, ("X", "Y"))

    def test_relations(self):
        result = self.parser.parse(
            {
                "models": [
                    {
                        "name": "Comment",
                        "relations": {
                            "Author": "ForOne",
                            "Subject": {"type": "ForOnePoly", "for": ["Post", "Photo"]},
                            "Reviewer": {"type": "ForOne", "aliased": "Person"},
                            "Tags": {"type": "ForMany", "unique": True},
                            "Replies": {"type": "HasManyPoly", "through": "Parent", "for": "Comment"},
                        },
                    }
                ]
            }
        )
        relations = {r.name: r for r in result.models[0].relations}
        self.assertEqual(relations["Author"], RelationDecl(name="Author", type_token="ForOne"))
        self.assertEqual(relations["Subject"].for_, ("Post", "Photo"))
        self.assertEqual(relations["Reviewer"].aliased, "Person")
        self.assertTrue(relations["Tags"].unique)
        self.assertEqual(relations["Replies"].through, "Parent")
        self.assertEqual(relations["Replies"].for_, ("Comment",))

    def test_polymorphic_model(self):
        result = self.parser.parse(
            {
                "models": [
                    {"name": "Vehicle", "polymorphic": {"discriminator": "Kind"}},
                    {"name": "Car", "extends": "Vehicle", "polymorphic": {"identity": "car"}},
                ]
            }
        )
        vehicle, car = result.models
        self.assertEqual(vehicle.discriminator, "Kind")
        self.assertIsNone(vehicle.extends)
        self.assertEqual(car.extends, "Vehicle")
        self.assertEqual(car.identity, "car")

    def test_enum_value_forms(self):
        result = self.parser.parse(
            {
                "enums": [
                    {"name": "A", "values": {"US": "American"}},
                    {"name": "B", "type": "Integer", "values": [{"symbol": "ONE", "value": 1}, ["TWO", 2]]},
                ]
            }
        )
        a, b = result.enums
        self.assertEqual(a.value_type, "String")
        self.assertEqual(a.entries, (("US", "American"),))
        self.assertEqual(b.value_type, "Integer")
        self.assertEqual(b.entries, (("ONE", 1), ("TWO", 2)))

    def test_iteration_order_is_enums_structures_models_entities(self):
        result = self.parser.parse(
            {
                "entities": [{"name": "E"}],
                "models": [{"name": "M"}],
                "structures": [{"name": "S"}],
                "enums": [{"name": "N", "values": {"A": "a"}}],
            }
        )
        self.assertEqual([d.name for d in result], ["N", "S", "M", "E"])
        self.assertEqual(len(result), 4)

    def test_unknown_section_is_rejected(self):
        with self.assertRaises(DeclarationError) as ctx:
            self.parser.parse({"models": [], "tables": []})
        self.assertIn("tables", ctx.exception.message)

    def test_missing_name_is_rejected(self):
        with self.assertRaises(DeclarationError):
            self.parser.parse({"models": [{"fields": {}}]})

    def test_structure_cannot_declare_relations(self):
        with self.assertRaises(DeclarationError) as ctx:
            self.parser.parse({"structures": [{"name": "Point", "relations": {"Owner": "ForOne"}}]})
        self.assertEqual(ctx.exception.declaration, "Point")
        self.assertEqual(ctx.exception.kind, "structure")

    def test_field_without_type_is_rejected(self):
        with self.assertRaises(DeclarationError) as ctx:
            self.parser.parse({"models": [{"name": "A", "fields": {"X": {"optional": True}}}]})
        self.assertEqual(ctx.exception.context, {"field": "X"})

    def test_relation_without_type_is_rejected(self):
        with self.assertRaises(DeclarationError):
            self.parser.parse({"models": [{"name": "A", "relations": {"B": {"aliased": "C"}}}]})

    def test_invalid_enum_entry_is_rejected(self):
        with self.assertRaises(DeclarationError):
            self.parser.parse({"enums": [{"name": "A", "values": ["LONELY"]}]})

    def test_unhashable_enum_value_is_rejected(self):
        with self.assertRaises(DeclarationError) as ctx:
            self.parser.parse({"enums": [{"name": "A", "values": {"X": ["x"]}}]})
        self.assertEqual(ctx.exception.declaration, "A")
        self.assertEqual(ctx.exception.context, {"symbol": "X"})

    def test_non_string_enum_symbol_is_rejected(self):
        with self.assertRaises(DeclarationError):
            self.parser.parse({"enums": [{"name": "A", "values": [[["X"], 1]]}]})

    def test_unhashable_identity_is_rejected(self):
        schema = {
            "models": [
                {"name": "Vehicle", "polymorphic": {"discriminator": "Kind"}},
                {"name": "Car", "extends": "Vehicle", "polymorphic": {"identity": ["car"]}},
            ]
        }
        with self.assertRaises(DeclarationError) as ctx:
            self.parser.parse(schema)
        self.assertEqual(ctx.exception.declaration, "Car")
        self.assertEqual(ctx.exception.kind, "model")

    def test_non_string_extends_is_rejected(self):
        with self.assertRaises(DeclarationError):
            self.parser.parse({"models": [{"name": "Car", "extends": {"name": "Vehicle"}}]})

    def test_non_object_input_is_rejected(self):
        with self.assertRaises(DeclarationError):
            self.parser.parse(["models"])


if __name__ == "__main__":
    unittest.main()
