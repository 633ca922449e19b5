"""
Base class for code generation backends.

Defines the interface that all target-specific backends must implement.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jinja2

from ...errors import Diagnostic, UnsupportedConstruct
from ...utils import to_camel_case
from ..analyzer.ir_nodes import (
    EntityDef,
    EnumDef,
    FieldDef,
    ModelDef,
    ModelGraph,
    RelationDef,
    StructureDef,
    TypeRef,
)
from ..config import CodeGeneratorConfig

logger = logging.getLogger(__name__)


@dataclass
class Artifact:
    """The output materialized for one declaration.

    `deferred` holds statements that must come after every artifact body
    (foreign keys, for instance).
    """

    declaration: str
    kind: str
    content: str
    deferred: str = ""


@dataclass
class GenerationResult:
    """Everything one backend produced for one graph."""

    target: str
    artifacts: list[Artifact] = field(default_factory=list)
    errors: list[Diagnostic] = field(default_factory=list)
    content: str = ""

    @property
    def ok(self) -> bool:
        return not self.errors

    def artifact(self, declaration: str) -> Artifact | None:
        for artifact in self.artifacts:
            if artifact.declaration == declaration:
                return artifact
        return None


class CodeBackend(ABC):
    """Abstract base class for code generation backends."""

    # Registry name of the target
    TARGET: str = ""

    # Type mapping from atomic types to target types
    TYPE_MAP: dict[str, str] = {}

    # Template directory name
    TEMPLATE_LANG: str = ""

    # File extension
    FILE_EXTENSION: str = ""

    # Per-kind templates loaded from the template directory
    TEMPLATES: tuple[str, ...] = ()

    def __init__(self, config: CodeGeneratorConfig | None = None):
        """
        Initialize the backend.

        Args:
            config: Code generation configuration
        """
        self.config = config or CodeGeneratorConfig()
        self.graph: ModelGraph | None = None
        self.poly_names: dict[tuple[str, str], str] = {}
        self._setup_templates()

    def _setup_templates(self) -> None:
        """Set up Jinja2 templates."""
        template_dir = Path(__file__).parent.parent.parent / "templates" / self.TEMPLATE_LANG
        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            lstrip_blocks=True,
            trim_blocks=True,
        )
        # Add custom filters
        self.jinja_env.filters["camel"] = to_camel_case

        self.prefix_template = self.jinja_env.get_template(f"prefix.{self.FILE_EXTENSION}.jinja2")
        self.suffix_template = self.jinja_env.get_template(f"suffix.{self.FILE_EXTENSION}.jinja2")
        self.templates = {name: self.jinja_env.get_template(f"{name}.{self.FILE_EXTENSION}.jinja2") for name in self.TEMPLATES}

    def render(self, template: str, **context: Any) -> str:
        # Callers join rendered blocks themselves
        return self.templates[template].render(**context).rstrip("\n")

    def generate(self, graph: ModelGraph) -> GenerationResult:
        """
        Generate target code for a validated graph.

        A declaration the target cannot express is reported in
        `GenerationResult.errors` and left out; every other declaration is
        still generated.

        Args:
            graph: The validated Intermediate Model Graph

        Returns:
            GenerationResult with per-declaration artifacts and the assembled document
        """
        self.graph = graph
        self.poly_names = self.assign_poly_names()
        self.reset()
        result = GenerationResult(target=self.TARGET)
        claimed: dict[str, Any] = {}

        for declaration in graph.declarations():
            try:
                self.claim_name(declaration, claimed)
                artifact = self.materialize(declaration)
            except UnsupportedConstruct as e:
                e.target = e.target or self.TARGET
                logger.warning("%s: skipping %s %s: %s", self.TARGET, declaration.kind, declaration.name, e.message)
                result.errors.append(e.to_diagnostic())
                continue
            if artifact is not None:
                logger.debug("%s: materialized %s %s", self.TARGET, declaration.kind, declaration.name)
                result.artifacts.append(artifact)

        result.content = self.assemble(result.artifacts)
        return result

    def reset(self) -> None:
        """Reset per-run state before a graph is generated."""

    def output_name(self, declaration) -> str | None:
        """Name a declaration takes in the generated document, or None if it emits no named type."""
        return declaration.name

    def claim_name(self, declaration, claimed: dict[str, Any]) -> None:
        """
        Reserve the output name of a declaration.

        Each kind has its own namespace in the declaration set, but the
        generated document has only one.

        Raises:
            UnsupportedConstruct: if a declaration of another kind already claimed the name
        """
        name = self.output_name(declaration)
        if name is None:
            return
        owner = claimed.setdefault(name, declaration)
        if owner is not declaration:
            raise self.unsupported(
                declaration,
                f"'{name}' is already generated for {owner.kind} {owner.name}",
                name=name,
                clash=f"{owner.kind} {owner.name}",
            )

    def materialize(self, declaration: EnumDef | StructureDef | ModelDef | EntityDef) -> Artifact | None:
        """Dispatch a declaration to its kind-specific materializer."""
        if isinstance(declaration, EnumDef):
            return self.materialize_enum(declaration)
        if isinstance(declaration, StructureDef):
            return self.materialize_structure(declaration)
        if isinstance(declaration, ModelDef):
            return self.materialize_model(declaration)
        return self.materialize_entity(declaration)

    @abstractmethod
    def materialize_enum(self, enum: EnumDef) -> Artifact | None:
        """Materialize an enum."""

    @abstractmethod
    def materialize_structure(self, structure: StructureDef) -> Artifact | None:
        """Materialize a structure."""

    @abstractmethod
    def materialize_model(self, model: ModelDef) -> Artifact | None:
        """Materialize a model (a polymorphic base carries its whole hierarchy)."""

    @abstractmethod
    def materialize_entity(self, entity: EntityDef) -> Artifact | None:
        """Materialize an entity."""

    @abstractmethod
    def translate_type(self, type_ref: TypeRef) -> str:
        """
        Translate an IR type to a target type string.

        Args:
            type_ref: The type reference

        Returns:
            Target-specific type string
        """

    def assemble(self, artifacts: list[Artifact]) -> str:
        """Join the prefix, every artifact body, every deferred statement and the suffix."""
        parts = [self.prefix_template.render(**self.prefix_context())]
        parts.extend(a.content for a in artifacts if a.content)
        parts.extend(a.deferred for a in artifacts if a.deferred)
        parts.append(self.suffix_template.render())
        return "\n\n".join(p.strip("\n") for p in parts if p.strip()) + "\n"

    def prefix_context(self) -> dict[str, Any]:
        comment = self.config.generation_comment if self.config.add_generation_comment else ""
        return {"generation_comment": comment}

    # -- shared helpers -----------------------------------------------------

    def unsupported(self, declaration, message: str, **context: Any) -> UnsupportedConstruct:
        return UnsupportedConstruct(message, declaration.name, declaration.kind, target=self.TARGET, **context)

    def key_fields(self, relation: RelationDef) -> tuple[FieldDef, ...]:
        """Primary identifier fields of a non-For*Poly relation's target."""
        target = self.graph.relation_target(relation)
        if target is None:
            return ()
        return self.graph.primary_fields(target)

    def poly_type_names(self, relation: RelationDef) -> tuple[str, ...]:
        """Concrete type names a For*Poly relation can point to.

        A candidate that is a polymorphic base stands for its variants.
        """
        names: list[str] = []
        for candidate in relation.candidates:
            hierarchy = self.graph.hierarchies.get(candidate)
            for name in hierarchy.variant_names if hierarchy else (candidate,):
                if name not in names:
                    names.append(name)
        return tuple(names)

    def poly_key_field(self, owner, relation: RelationDef) -> FieldDef:
        """The single key field shared by every candidate of a For*Poly relation.

        Raises:
            UnsupportedConstruct: if a candidate has a composite key or the key types differ
        """
        key: FieldDef | None = None
        for candidate in relation.candidates:
            fields = self.graph.primary_fields(self.graph.models[candidate])
            if len(fields) != 1:
                raise self.unsupported(
                    owner,
                    f"Polymorphic relation '{relation.name}' needs single-column keys, but '{candidate}' has {len(fields)}",
                    relation=relation.name,
                    candidate=candidate,
                )
            if key is not None and self.key_type(fields[0].type_ref) != self.key_type(key.type_ref):
                raise self.unsupported(
                    owner,
                    f"Candidates of polymorphic relation '{relation.name}' do not share one key type",
                    relation=relation.name,
                    candidate=candidate,
                )
            key = key or fields[0]
        return key

    def key_type(self, type_ref: TypeRef) -> str:
        """Target type of a key column or member referencing another declaration."""
        return self.translate_type(type_ref)

    def assign_poly_names(self) -> dict[tuple[str, str], str]:
        """Name one target type per ForOnePoly relation, qualifying names that clash.

        A relation name clashing with a declaration, or reused with other
        candidates, is prefixed with its owner's name.
        """
        declared = {d.name for d in self.graph.declarations()}
        taken: dict[str, tuple[str, ...]] = {}
        names = {}
        for model in self.graph.models.values():
            for relation in model.own_relations:
                if not relation.is_for_poly or relation.to_many:
                    continue
                name = relation.name[:1].upper() + relation.name[1:]
                if name in declared or taken.get(name, relation.candidates) != relation.candidates:
                    name = f"{model.name}{name}"
                taken.setdefault(name, relation.candidates)
                names[(model.name, relation.name)] = name
        return names

    def poly_name(self, owner, relation: RelationDef) -> str:
        """Target type name of a ForOnePoly relation (inherited relations keep their base's name)."""
        return self.poly_names[(relation.inherited_from or owner.name, relation.name)]

    def hierarchy_members(self, base: ModelDef) -> list[ModelDef]:
        """Variant models of a polymorphic base, in identity order."""
        hierarchy = self.graph.hierarchies.get(base.name)
        if hierarchy is None:
            return []
        return [self.graph.models[name] for name in hierarchy.variant_names]
