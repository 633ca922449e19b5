"""
Code generation backends.

Contains the target-specific code generators and the registry that maps
target names to them.
"""

from __future__ import annotations

from .base import Artifact, CodeBackend, GenerationResult
from .go_backend import GoBackend
from .postgres_backend import PostgresBackend
from .typescript_backend import TypeScriptBackend

BACKENDS: dict[str, type[CodeBackend]] = {
    PostgresBackend.TARGET: PostgresBackend,
    GoBackend.TARGET: GoBackend,
    TypeScriptBackend.TARGET: TypeScriptBackend,
}


def get_backend(target: str) -> type[CodeBackend]:
    """Look up a backend class by target name."""
    try:
        return BACKENDS[target]
    except KeyError:
        raise ValueError(f"Unknown target '{target}' (expected one of {', '.join(BACKENDS)})") from None


__all__ = [
    "Artifact",
    "BACKENDS",
    "CodeBackend",
    "GenerationResult",
    "GoBackend",
    "PostgresBackend",
    "TypeScriptBackend",
    "get_backend",
]
