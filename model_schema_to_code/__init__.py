"""Model Schema to Code Generator

A Python package for resolving declarative data models (models, entities,
enums, structures) and generating PostgreSQL DDL, Go and TypeScript code
from them.
"""

__version__ = "1.0.0"

from .errors import CompilationError, Diagnostic, SchemaError, UnsupportedConstruct
from .pipeline import (
    BACKENDS,
    Artifact,
    CodeGeneratorConfig,
    GenerationResult,
    PipelineGenerator,
)

__all__ = [
    "PipelineGenerator",
    "CodeGeneratorConfig",
    "GenerationResult",
    "Artifact",
    "BACKENDS",
    "CompilationError",
    "Diagnostic",
    "SchemaError",
    "UnsupportedConstruct",
]
