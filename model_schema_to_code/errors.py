"""
Error types for declaration registration, reference resolution,
validation and generation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Diagnostic:
    """A single problem found while compiling a declaration set.

    Attributes:
        declaration: Name of the declaration the problem belongs to
        rule: Rule or error code (e.g. "UnknownEnum", "MissingPrimaryIdentifier")
        message: Human-readable description
        kind: Declaration kind ("model", "entity", "enum", "structure") when known
        context: Extra location data (field, relation, identity, ...)
    """

    declaration: str
    rule: str
    message: str
    kind: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def format(self) -> str:
        """Format as "kind Name: [Rule] message (key=value, ...)"."""
        owner = f"{self.kind} {self.declaration}" if self.kind else self.declaration
        text = f"{owner}: [{self.rule}] {self.message}"
        if self.context:
            details = ", ".join(f"{k}={v}" for k, v in self.context.items())
            text += f" ({details})"
        return text


class SchemaError(Exception):
    """Base exception for all schema errors."""

    def __init__(self, message: str, declaration: str = "", kind: str | None = None, **context: Any):
        self.message = message
        self.declaration = declaration
        self.kind = kind
        self.context = context
        super().__init__(message)

    @property
    def rule(self) -> str:
        return type(self).__name__

    def to_diagnostic(self) -> Diagnostic:
        """Convert the exception to a batched diagnostic."""
        return Diagnostic(
            declaration=self.declaration,
            rule=self.rule,
            message=self.message,
            kind=self.kind,
            context=dict(self.context),
        )


class DeclarationError(SchemaError):
    """Raised when the structured declaration input is malformed."""


class DuplicateDeclaration(SchemaError):
    """Raised when a declaration of the same kind and name is already registered."""


class UnknownDeclaration(SchemaError):
    """Raised when a referenced declaration does not exist."""


class UnknownEnum(SchemaError):
    """Raised when a field type names an enum that does not exist."""


class BrokenIndirectionPath(SchemaError):
    """Raised when a segment of an entity field path does not resolve."""


class CyclicIndirection(SchemaError):
    """Raised when an entity field path revisits a Model it already traversed."""


class InvalidRelation(SchemaError):
    """Raised when a relation declaration has an unknown kind or an invalid shape."""


class DanglingPolymorphicBase(SchemaError):
    """Raised when a subclass extends a Model that declares no discriminator."""


class DuplicateIdentity(SchemaError):
    """Raised when two subclasses of one hierarchy share an identity value."""


class NestedPolymorphicHierarchy(SchemaError):
    """Raised when a subclass extends a Model that is itself a subclass."""


class UnsupportedConstruct(SchemaError):
    """Raised by a backend that cannot express a construct in its target."""

    def __init__(self, message: str, declaration: str = "", kind: str | None = None, target: str = "", **context: Any):
        super().__init__(message, declaration, kind, **context)
        self.target = target


class CompilationError(SchemaError):
    """Raised when registration, resolution or validation produced diagnostics.

    No generation happens for a run that raises this error.
    """

    def __init__(self, diagnostics: list[Diagnostic]):
        self.diagnostics = list(diagnostics)
        lines = [f"{len(self.diagnostics)} problem(s) found:"]
        lines.extend(f"  - {d.format()}" for d in self.diagnostics)
        super().__init__("\n".join(lines))
