import pytest

from model_schema_to_code.utils import (
    pluralize,
    singularize,
    split_words,
    to_camel_case,
    to_pascal_case,
    to_snake_case,
)


class TestNaming:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("ContactInfo", "contact_info"),
            ("ContactInfoID", "contact_info_id"),
            ("UUID", "uuid"),
            ("HTTPServer", "http_server"),
            ("already_snake", "already_snake"),
            ("Address2", "address_2"),
        ],
    )
    def test_snake_case(self, name, expected):
        assert to_snake_case(name) == expected

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("ContactInfo", "contactInfo"),
            ("ContactInfoID", "contactInfoID"),
            ("ID", "id"),
            ("HTTPServer", "httpServer"),
            ("FriendsIDs", "friendsIDs"),
        ],
    )
    def test_camel_case(self, name, expected):
        assert to_camel_case(name) == expected

    def test_camel_case_of_empty_string(self):
        assert to_camel_case("") == ""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("first_name", "FirstName"),
            ("contactInfoID", "ContactInfoID"),
            ("US", "US"),
            ("in-progress", "InProgress"),
        ],
    )
    def test_pascal_case(self, name, expected):
        assert to_pascal_case(name) == expected

    def test_split_words_keeps_acronyms_together(self):
        assert split_words("ContactInfoID") == ["Contact", "Info", "ID"]


class TestPluralize:
    @pytest.mark.parametrize(
        "word,expected",
        [
            ("Person", "People"),
            ("ContactInfo", "ContactInfos"),
            ("Company", "Companies"),
            ("Key", "Keys"),
            ("Box", "Boxes"),
            ("Address", "Addresses"),
            ("Knife", "Knives"),
            ("PersonCard", "PersonCards"),
            ("Friends", "Friends"),
            ("", ""),
        ],
    )
    def test_pluralize(self, word, expected):
        assert pluralize(word) == expected

    def test_irregular_plural_keeps_lower_case(self):
        assert pluralize("child") == "children"


class TestSingularize:
    @pytest.mark.parametrize(
        "word,expected",
        [
            ("People", "Person"),
            ("ContactInfos", "ContactInfo"),
            ("Companies", "Company"),
            ("Contacts", "Contact"),
            ("Boxes", "Box"),
            ("Addresses", "Address"),
            ("Friend", "Friend"),
            ("Status", "Status"),
            ("", ""),
        ],
    )
    def test_singularize(self, word, expected):
        assert singularize(word) == expected
