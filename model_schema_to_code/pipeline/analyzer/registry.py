"""
Schema registry.

A purely name -> declaration index, one namespace per declaration kind.
No type or relationship checking happens here.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

from ...errors import Diagnostic, DuplicateDeclaration, UnknownDeclaration
from ..declarations.nodes import Declaration, DeclarationKind

logger = logging.getLogger(__name__)


class SchemaRegistry:
    """Holds raw declarations keyed by kind and name."""

    def __init__(self):
        self._declarations: dict[DeclarationKind, dict[str, Declaration]] = {kind: {} for kind in DeclarationKind}

    def register(self, kind: DeclarationKind, declaration: Declaration) -> None:
        """
        Register a declaration.

        Args:
            kind: Namespace to register into
            declaration: The declaration to store

        Raises:
            DuplicateDeclaration: if the kind already holds a declaration with that name
        """
        kind = DeclarationKind(kind)
        namespace = self._declarations[kind]
        if declaration.name in namespace:
            raise DuplicateDeclaration(
                f"{kind.value.capitalize()} '{declaration.name}' is declared more than once",
                declaration.name,
                kind.value,
            )
        namespace[declaration.name] = declaration
        logger.debug("Registered %s %s", kind.value, declaration.name)

    def register_all(self, declarations: Iterable[Declaration]) -> list[Diagnostic]:
        """Register every declaration, collecting duplicates instead of stopping.

        The first declaration of a given kind and name wins.
        """
        diagnostics = []
        for declaration in declarations:
            try:
                self.register(declaration.kind, declaration)
            except DuplicateDeclaration as e:
                logger.debug("Duplicate %s %s", declaration.kind.value, declaration.name)
                diagnostics.append(e.to_diagnostic())
        return diagnostics

    def lookup(self, kind: DeclarationKind, name: str) -> Declaration:
        """
        Look up a declaration.

        Raises:
            UnknownDeclaration: if no declaration of that kind has the name
        """
        kind = DeclarationKind(kind)
        declaration = self._declarations[kind].get(name)
        if declaration is None:
            raise UnknownDeclaration(f"No {kind.value} named '{name}'", name, kind.value)
        return declaration

    def find(self, kind: DeclarationKind, name: str) -> Declaration | None:
        """Look up a declaration, returning None when absent."""
        return self._declarations[DeclarationKind(kind)].get(name)

    def declarations(self, kind: DeclarationKind) -> list[Declaration]:
        """All declarations of a kind, in registration order."""
        return list(self._declarations[DeclarationKind(kind)].values())

    def __contains__(self, item: tuple[DeclarationKind, str]) -> bool:
        kind, name = item
        return name in self._declarations[DeclarationKind(kind)]

    def __iter__(self) -> Iterator[Declaration]:
        for namespace in self._declarations.values():
            yield from namespace.values()

    def __len__(self) -> int:
        return sum(len(namespace) for namespace in self._declarations.values())
