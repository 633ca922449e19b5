"""
Pipeline generator.

Orchestrates the phases:

1. Parse the structured declaration set into declarations
2. Register every declaration (Schema Registry)
3. Resolve references into the Intermediate Model Graph
4. Validate the graph invariants (all-or-nothing gate)
5. Run the requested backends, independently of each other
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from ..errors import CompilationError
from .analyzer import InvariantValidator, ModelGraph, ReferenceResolver, SchemaRegistry
from .backends import CodeBackend, GenerationResult, get_backend
from .config import CodeGeneratorConfig
from .declarations import DeclarationParser

logger = logging.getLogger(__name__)


class PipelineGenerator:
    """Compiles a declaration set and generates code for one or more targets."""

    def __init__(self, schema: dict[str, Any], config: CodeGeneratorConfig | None = None):
        """
        Initialize the generator.

        Args:
            schema: The structured declaration set
            config: Code generation configuration
        """
        self.schema = schema
        self.config = config or CodeGeneratorConfig()

        # Will be set by compile()
        self._graph: ModelGraph | None = None

    def compile(self) -> ModelGraph:
        """
        Run registration, resolution and validation.

        Returns:
            The frozen Intermediate Model Graph

        Raises:
            DeclarationError: if the declaration set is malformed
            CompilationError: with every diagnostic, if any phase found a problem
        """
        if self._graph is not None:
            return self._graph

        declarations = DeclarationParser().parse(self.schema)

        registry = SchemaRegistry()
        diagnostics = registry.register_all(declarations)

        resolution = ReferenceResolver(registry).resolve()
        diagnostics.extend(resolution.diagnostics)
        diagnostics.extend(InvariantValidator().validate(resolution.graph))

        if diagnostics:
            logger.debug("Compilation failed with %d diagnostic(s)", len(diagnostics))
            raise CompilationError(diagnostics)

        self._graph = resolution.graph
        return self._graph

    def generate(self, targets: list[str] | None = None) -> dict[str, GenerationResult]:
        """
        Generate code for a set of targets.

        Args:
            targets: Target names; defaults to config.targets

        Returns:
            One GenerationResult per requested target, in request order

        Raises:
            ValueError: for an unknown target name
            CompilationError: if the declaration set does not compile
        """
        targets = list(targets if targets is not None else self.config.targets)
        backends = {target: get_backend(target) for target in targets}
        graph = self.compile()

        if self.config.parallel_backends and len(backends) > 1:
            with ThreadPoolExecutor(max_workers=len(backends)) as executor:
                futures = {target: executor.submit(self._run_backend, backend, graph) for target, backend in backends.items()}
                return {target: future.result() for target, future in futures.items()}

        return {target: self._run_backend(backend, graph) for target, backend in backends.items()}

    def generate_target(self, target: str) -> GenerationResult:
        """Generate code for a single target."""
        return self.generate([target])[target]

    def _run_backend(self, backend_class: type[CodeBackend], graph: ModelGraph) -> GenerationResult:
        # One backend instance per run: no buffers are shared between targets
        backend = backend_class(self.config)
        result = backend.generate(graph)
        logger.debug(
            "%s: %d artifact(s), %d error(s)",
            result.target,
            len(result.artifacts),
            len(result.errors),
        )
        return result
