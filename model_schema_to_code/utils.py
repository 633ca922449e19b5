"""
Naming utilities shared by the resolver and the generation backends.
"""

import re

# Splits identifiers into words, keeping acronyms ("ContactInfoID" -> Contact, Info, ID)
_WORD_PATTERN = re.compile(r"[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+|[A-Z]+|[0-9]+")

_IRREGULAR_PLURALS = {
    "person": "people",
    "child": "children",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "datum": "data",
    "medium": "media",
    "criterion": "criteria",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "status": "statuses",
    "address": "addresses",
}


def _normalize_separators(text: str) -> str:
    """Normalize separators (underscores, hyphens) to spaces."""
    return text.replace("_", " ").replace("-", " ")


def split_words(text: str) -> list[str]:
    """Split text into words, handling camelCase boundaries and acronyms."""
    return _WORD_PATTERN.findall(_normalize_separators(text))


def to_snake_case(text: str) -> str:
    """Convert a PascalCase declared name to snake_case.

    Examples:
        "ContactInfo" -> "contact_info"
        "ContactInfoID" -> "contact_info_id"
        "UUID" -> "uuid"
    """
    return "_".join(word.lower() for word in split_words(text))


def to_camel_case(text: str) -> str:
    """Convert a PascalCase declared name to camelCase.

    Acronyms after the first word are preserved ("ContactInfoID" -> "contactInfoID"),
    a leading acronym is lowered ("ID" -> "id", "HTTPServer" -> "httpServer").
    """
    words = split_words(text)
    if not words:
        return ""
    return words[0].lower() + "".join(word if word.isupper() else word.capitalize() for word in words[1:])


def to_pascal_case(text: str) -> str:
    """Convert snake_case, camelCase, or space-separated text to PascalCase.

    Examples:
        "first_name" -> "FirstName"
        "contactInfoID" -> "ContactInfoID"
    """
    return "".join(word if word.isupper() else word.capitalize() for word in split_words(text))


def pluralize(word: str) -> str:
    """Convert a singular English word to its plural form.

    Only the last word of a PascalCase name is inflected ("ContactInfo" -> "ContactInfos").
    Words that already look plural ("Friends") are returned unchanged.
    """
    if not word:
        return word

    lower_word = word.lower()
    if lower_word in _IRREGULAR_PLURALS:
        plural = _IRREGULAR_PLURALS[lower_word]
        if word[0].isupper():
            return plural.capitalize()
        return plural

    camel_match = re.match(r"^(.+?)([A-Z][a-z]+)$", word)
    if camel_match:
        prefix, last_word = camel_match.groups()
        return prefix + pluralize(last_word)

    if lower_word.endswith("s") and not lower_word.endswith(("ss", "us", "is")):
        return word
    if lower_word.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    if lower_word.endswith("y"):
        if len(word) > 1 and lower_word[-2] in "aeiou":
            return word + "s"
        return word[:-1] + "ies"
    if lower_word.endswith("fe"):
        return word[:-2] + "ves"
    if lower_word.endswith(("elf", "alf", "olf", "eaf", "oaf", "arf")):
        return word[:-1] + "ves"
    if lower_word.endswith(("hero", "potato", "tomato", "echo", "veto")):
        return word + "es"
    return word + "s"


_IRREGULAR_SINGULARS = {plural: singular for singular, plural in _IRREGULAR_PLURALS.items()}


def singularize(word: str) -> str:
    """Convert a plural English word to its singular form.

    Only the last word of a PascalCase name is inflected ("ContactInfos" -> "ContactInfo").
    Words that do not look plural are returned unchanged.
    """
    if not word:
        return word

    lower_word = word.lower()
    if lower_word in _IRREGULAR_SINGULARS:
        singular = _IRREGULAR_SINGULARS[lower_word]
        if word[0].isupper():
            return singular.capitalize()
        return singular

    camel_match = re.match(r"^(.+?)([A-Z][a-z]+)$", word)
    if camel_match:
        prefix, last_word = camel_match.groups()
        return prefix + singularize(last_word)

    if lower_word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if lower_word.endswith(("sses", "shes", "ches", "xes", "zes")):
        return word[:-2]
    if lower_word.endswith("s") and not lower_word.endswith(("ss", "us", "is")):
        return word[:-1]
    return word
