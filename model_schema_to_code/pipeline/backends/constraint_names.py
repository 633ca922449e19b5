"""
Constraint and index naming for relational targets.

Names are built as `<prefix>_<table>_<columns>`. Names longer than the
identifier limit are abbreviated to the first letter of every underscore
word of each token; a name that still collides or is still too long gets
a short hash of the full name appended.
"""

from __future__ import annotations

import hashlib

FOREIGN_KEY = "fk"
UNIQUE = "uk"
INDEX = "idx"
CHECK = "ck"

HASH_LENGTH = 8


def abbreviate(token: str) -> str:
    """First letter of every underscore word ("contact_info_id" -> "cii")."""
    return "".join(word[0] for word in token.split("_") if word)


class ConstraintNamer:
    """Hands out unique, length-limited constraint names for one document."""

    def __init__(self, max_length: int = 63):
        self.max_length = max_length
        self.used: set[str] = set()

    def name(self, prefix: str, table: str, columns: list[str] | tuple[str, ...] = ()) -> str:
        """
        Build a constraint name and reserve it.

        Args:
            prefix: One of fk, uk, idx, ck
            table: Table the constraint belongs to
            columns: Columns (or other qualifying tokens) of the constraint

        Returns:
            A name no longer than max_length, unique within this namer
        """
        full = "_".join([prefix, table, *columns])
        candidate = full
        if len(candidate) > self.max_length:
            candidate = "_".join([prefix, abbreviate(table), *(abbreviate(c) for c in columns)])

        if candidate in self.used or len(candidate) > self.max_length:
            digest = hashlib.sha1(full.encode("utf-8")).hexdigest()[:HASH_LENGTH]
            head = candidate[: self.max_length - HASH_LENGTH - 1]
            candidate = f"{head}_{digest}"
            counter = 1
            while candidate in self.used:
                suffix = f"{digest}{counter}"
                candidate = f"{head[: self.max_length - len(suffix) - 1]}_{suffix}"
                counter += 1

        self.used.add(candidate)
        return candidate
