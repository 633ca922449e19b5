"""
Pipeline - declaration set to multi-target code generator.

This module provides a multi-phase architecture for generating code from
a declarative data model:

1. Phase 1 (Parser): Parse the structured declaration set
2. Phase 2 (Registry): Index declarations by kind and name
3. Phase 3 (Resolver): Resolve references and build the Intermediate Model Graph
4. Phase 4 (Validator): Check graph invariants; any violation blocks generation
5. Phase 5 (Backends): Generate PostgreSQL, Go and TypeScript code
"""

from __future__ import annotations

from .backends import BACKENDS, Artifact, GenerationResult
from .config import CodeGeneratorConfig
from .generator import PipelineGenerator

__all__ = [
    "PipelineGenerator",
    "CodeGeneratorConfig",
    "GenerationResult",
    "Artifact",
    "BACKENDS",
]
