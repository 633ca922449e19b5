"""
Configuration for the code generator pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_TARGETS = ["postgres", "go", "typescript"]


@dataclass
class CodeGeneratorConfig:
    """Configuration options for code generation."""

    # Backends to run when generate() is called without an explicit target list
    targets: list[str] = field(default_factory=lambda: list(DEFAULT_TARGETS))

    # Add generation comment at top of each generated document
    add_generation_comment: bool = True
    generation_comment: str = "Code generated by model_schema_to_code. DO NOT EDIT."

    # PostgreSQL identifier limit; longer constraint names are abbreviated
    identifier_max_length: int = 63

    # Go package clause of the generated file
    go_package: str = "models"

    # Mark immutable fields as readonly in TypeScript
    typescript_readonly_immutable: bool = True

    # Emit attributes other than optional/immutable (Go struct tags, TS JSDoc)
    emit_pass_through_attributes: bool = True

    # Run the requested backends on a thread pool
    parallel_backends: bool = True

    @staticmethod
    def from_dict(d: dict) -> CodeGeneratorConfig:
        """Create a config from a dictionary."""
        config = CodeGeneratorConfig()
        for k, v in d.items():
            if hasattr(config, k):
                setattr(config, k, v)
        return config

    def to_dict(self) -> dict:
        """Convert config to a dictionary."""
        return {
            "targets": list(self.targets),
            "add_generation_comment": self.add_generation_comment,
            "generation_comment": self.generation_comment,
            "identifier_max_length": self.identifier_max_length,
            "go_package": self.go_package,
            "typescript_readonly_immutable": self.typescript_readonly_immutable,
            "emit_pass_through_attributes": self.emit_pass_through_attributes,
            "parallel_backends": self.parallel_backends,
        }
