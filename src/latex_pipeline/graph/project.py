"""Project facade: declare artifacts and expose the synthesized task graph."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from latex_pipeline.config import Settings
from latex_pipeline.files import FileResolver, LocalFileResolver
from latex_pipeline.graph.aggregates import AggregateWiring
from latex_pipeline.graph.models import Artifact, ArtifactSpec, Step, StepKind, step_name_for
from latex_pipeline.graph.registry import ArtifactRegistry
from latex_pipeline.graph.synthesizer import StepSynthesizer
from latex_pipeline.graph.tasks import InMemoryTaskRegistry, TaskRegistry
from latex_pipeline.graph.traversal import traverse

logger = logging.getLogger(__name__)


class LatexProject:
    """Holds the artifacts of one build configuration and their task graph.

    ``declare`` runs in two phases: the artifact registry validates and stores
    the artifact, then the synthesizer registers its steps. A failed
    declaration leaves both the registry and the task graph untouched.
    """

    def __init__(self, resolver: FileResolver, tasks: TaskRegistry | None = None) -> None:
        self.resolver = resolver
        self.tasks: TaskRegistry = tasks if tasks is not None else InMemoryTaskRegistry()
        self.artifacts = ArtifactRegistry(resolver)
        self.aggregates = AggregateWiring(self.tasks)
        self.synthesizer = StepSynthesizer(self.tasks, self.aggregates)
        # Aggregates exist even before the first declaration.
        self.aggregates.compile_all()
        self.aggregates.clean_all()

    @classmethod
    def from_settings(cls, settings: Settings) -> LatexProject:
        root = settings.project_root
        logger.info("Project %s using auxiliary directory %s", root, settings.resolved_aux_dir)
        return cls(LocalFileResolver(root, settings.tools.image_extensions))

    def declare(self, spec: ArtifactSpec) -> Artifact:
        artifact = self.artifacts.declare(spec)
        self.synthesizer.synthesize(artifact)
        return artifact

    def tex(self, source: str | Mapping[str, Any], **fields: Any) -> Artifact:
        """Declare an artifact from a source filename or a build-file style mapping."""

        if isinstance(source, Mapping):
            if fields:
                raise TypeError("Pass either a mapping or keyword fields, not both")
            return self.declare(ArtifactSpec.from_mapping(source))
        return self.declare(ArtifactSpec.from_mapping({"tex": source, **fields}))

    def artifact(self, name: str) -> Artifact:
        return self.artifacts.get(name)

    def compile_all(self) -> Step:
        return self.aggregates.compile_all()

    def clean_all(self) -> Step:
        return self.aggregates.clean_all()

    def compile_step(self, name: str) -> Step:
        return self.tasks.get(step_name_for(StepKind.COMPILE, self.artifact(name).name))

    def clean_step(self, name: str) -> Step:
        return self.tasks.get(step_name_for(StepKind.CLEAN, self.artifact(name).name))

    def traverse(self, name: str, operation: Callable[[Artifact], object]) -> list[Artifact]:
        return traverse(self.artifacts, name, operation)
